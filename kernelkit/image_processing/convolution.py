"""Generic 2-D convolution of rasters with arbitrary kernels.

AIDEV-NOTE: This is the hottest loop in the package. Instead of visiting
pixels one by one, the kernel is applied one tap at a time: every tap adds a
shifted, weighted copy of the padded image into the accumulator. Cost is
O(width * height * rows * cols * channels) with a fixed pair of scratch
buffers per pass.
"""

import logging
from dataclasses import replace

import numpy as np

from ..errors import ConfigurationError
from ..models import BoundaryPolicy, ConvolutionOptions
from .raster import Kernel, Raster

logger = logging.getLogger(__name__)


def validate_kernel(kernel: Kernel) -> None:
    """Ensure a kernel can be center-aligned on a pixel.

    Raises:
        ConfigurationError: If a dimension is even
    """
    if not kernel.is_odd:
        raise ConfigurationError(
            f"Kernel dimensions must be odd, got {kernel.rows}x{kernel.cols}"
        )


def convolve(
    source: Raster,
    kernel: Kernel,
    options: ConvolutionOptions | None = None,
) -> Raster:
    """Apply a kernel to every pixel and channel of a raster.

    Output pixel (i, j) on channel c is the sum over kernel taps (m, n) of
    ``source[i - (rows - 1) / 2 + m, j - (cols - 1) / 2 + n, c] * kernel[m, n]``.

    Args:
        source: Input raster (not modified)
        kernel: Kernel with odd dimensions
        options: Boundary policy, normalization, factor and repeat count

    Returns:
        New raster with the same width, height and channel count

    Raises:
        ConfigurationError: If the kernel has even dimensions or
            normalization would divide by zero
    """
    options = options or ConvolutionOptions()
    validate_kernel(kernel)

    divisor = None
    if options.normalize:
        divisor = (
            options.normalization_sum
            if options.normalization_sum is not None
            else kernel.sum()
        )
        if divisor == 0:
            raise ConfigurationError(
                "Kernel weights sum to zero; set normalization_sum to normalize"
            )

    result = source
    for _ in range(options.repeat):
        result = _convolve_once(result, kernel, options.boundary, divisor, options.factor)

    logger.debug(
        "Convolved %dx%dx%d raster with %dx%d kernel (%d pass(es), %s boundary)",
        source.width,
        source.height,
        source.channel_count,
        kernel.rows,
        kernel.cols,
        options.repeat,
        options.boundary.value,
    )
    return result


def _convolve_once(
    source: Raster,
    kernel: Kernel,
    boundary: BoundaryPolicy,
    divisor: float | None,
    factor: float,
) -> Raster:
    pixels = source.as_array()
    height, width, _ = pixels.shape
    half_rows = (kernel.rows - 1) // 2
    half_cols = (kernel.cols - 1) // 2

    padded = np.pad(
        pixels,
        ((half_rows, half_rows), (half_cols, half_cols), (0, 0)),
        mode="constant",
        constant_values=0.0,
    )
    accumulator = np.zeros_like(pixels)
    scratch = np.empty_like(pixels)

    weights = kernel.as_array()
    for m in range(kernel.rows):
        for n in range(kernel.cols):
            weight = weights[m, n]
            if weight == 0:
                continue
            np.multiply(padded[m : m + height, n : n + width], weight, out=scratch)
            accumulator += scratch

    if divisor is not None:
        accumulator /= divisor
    if factor != 1:
        accumulator *= factor

    if boundary is BoundaryPolicy.PASS_THROUGH:
        # Pixels whose window leaves the image keep their source value
        accumulator[:half_rows] = pixels[:half_rows]
        accumulator[height - half_rows :] = pixels[height - half_rows :]
        accumulator[:, :half_cols] = pixels[:, :half_cols]
        accumulator[:, width - half_cols :] = pixels[:, width - half_cols :]

    return Raster(width, height, source.channel_count, accumulator.reshape(-1))


class ConvolutionFilter:
    """A kernel bound to a set of convolution options.

    Args:
        kernel: Kernel with odd dimensions
        options: Convolution options, defaults if None

    Raises:
        ConfigurationError: If the kernel has even dimensions
    """

    def __init__(self, kernel: Kernel, options: ConvolutionOptions | None = None):
        validate_kernel(kernel)
        self._kernel = kernel
        self._options = options or ConvolutionOptions()

    @property
    def kernel(self) -> Kernel:
        return self._kernel

    @property
    def options(self) -> ConvolutionOptions:
        return self._options

    def set_kernel(self, kernel: Kernel) -> None:
        validate_kernel(kernel)
        self._kernel = kernel

    def set_options(self, **changes) -> ConvolutionOptions:
        """Replace selected options; the old options stay if validation fails."""
        self._options = replace(self._options, **changes)
        return self._options

    def transpose(self) -> None:
        """Transpose the bound kernel in place."""
        self._kernel.transpose(in_place=True)

    def run(self, source: Raster) -> Raster:
        return convolve(source, self._kernel, self._options)
