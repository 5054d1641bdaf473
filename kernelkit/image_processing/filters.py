"""Filters built on top of the convolution engine.

AIDEV-NOTE: GaussianBlur regenerates its kernel whenever size or sigma
changes. Sobel keeps the horizontal derivative kernel and derives the
vertical one by transposing it, so the pair can never drift apart.
"""

import math
from dataclasses import replace

import numpy as np
from numpy.typing import NDArray

from ..models import GaussianOptions, GradientField
from .convolution import convolve
from .raster import Kernel, Raster

# Horizontal derivative kernel; the vertical kernel is its transpose
SOBEL_X_WEIGHTS = (
    (1.0, 0.0, -1.0),
    (2.0, 0.0, -2.0),
    (1.0, 0.0, -1.0),
)


def gaussian(x: "NDArray | float", sigma: float = 1.0) -> "NDArray | float":
    """Zero-mean Gaussian density at x."""
    return (1.0 / (sigma * math.sqrt(2.0 * math.pi))) * np.exp(-0.5 * (x / sigma) ** 2)


def gaussian_kernel(size: int = 5, sigma: float = 1.0) -> Kernel:
    """Build a normalized size x size Gaussian kernel.

    The 1-D Gaussian is sampled at ``size`` evenly spaced points across
    [-2 sigma, 2 sigma] and normalized to sum to 1; the 2-D kernel is the
    outer product of that vector with itself.

    Raises:
        ConfigurationError: If size is not odd and >= 3 or sigma <= 0
    """
    GaussianOptions(size=size, sigma=sigma)

    samples = gaussian(np.linspace(-2.0 * sigma, 2.0 * sigma, size), sigma)
    samples = samples / samples.sum()
    return Kernel(size, size, np.outer(samples, samples).reshape(-1))


class GaussianBlur:
    """Gaussian blur with a regenerated kernel per option change.

    Args:
        options: Kernel size and sigma, defaults (5, 1.0) if None
    """

    def __init__(self, options: GaussianOptions | None = None):
        self._options = options or GaussianOptions()
        self._kernel = gaussian_kernel(self._options.size, self._options.sigma)

    @property
    def options(self) -> GaussianOptions:
        return self._options

    @property
    def kernel(self) -> Kernel:
        return self._kernel

    def set_options(self, **changes) -> GaussianOptions:
        """Update size and/or sigma and rebuild the kernel.

        Raises:
            ConfigurationError: If the new values are invalid; the previous
                options and kernel are kept
        """
        options = replace(self._options, **changes)
        self._kernel = gaussian_kernel(options.size, options.sigma)
        self._options = options
        return options

    def run(self, source: Raster) -> Raster:
        """Blur every channel of ``source`` with zero padding."""
        return convolve(source, self._kernel)


class Sobel:
    """Sobel gradient operator."""

    def __init__(self):
        self.dx_kernel = Kernel.from_rows(SOBEL_X_WEIGHTS)
        self.dy_kernel = self.dx_kernel.transpose()

    def run(self, source: Raster) -> GradientField:
        """Compute gradient magnitude and direction.

        Multi-channel sources are collapsed to intensity first.

        Returns:
            GradientField with magnitude sqrt(gx^2 + gy^2) and direction
            atan2(gy, gx) in (-pi, pi]
        """
        if source.channel_count > 1:
            source = source.to_grayscale()

        gx = convolve(source, self.dx_kernel).samples
        gy = convolve(source, self.dy_kernel).samples

        magnitude = np.sqrt(gx**2 + gy**2)
        direction = np.arctan2(gy, gx)
        # atan2(-0.0, x < 0) gives -pi
        direction[direction == -np.pi] = np.pi

        return GradientField(
            magnitude=Raster(source.width, source.height, 1, magnitude),
            direction=Raster(source.width, source.height, 1, direction),
        )
