"""Data models and option sets for the kernelkit toolkit.

AIDEV-NOTE: Every option class is a frozen dataclass validated in
__post_init__. Filters swap a whole options object with
dataclasses.replace() when a value changes, so a rejected update can never
leave a filter holding a half-applied configuration.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from .errors import ConfigurationError

if TYPE_CHECKING:
    from .image_processing.raster import Raster

# Configuration file path
CONFIG_FILE = Path.home() / ".kernelkit_config.json"

# Edge map values produced by the double threshold stage
WEAK_EDGE = 100.0
STRONG_EDGE = 255.0


class BoundaryPolicy(Enum):
    """How convolution treats kernel taps that fall outside the image."""

    ZERO = "zero"  # Out-of-range samples read as 0
    PASS_THROUGH = "pass_through"  # Border pixels keep their source value


class Operation(Enum):
    """Operations the image processor can run on a loaded image."""

    BLUR = "blur"
    SOBEL = "sobel"
    CANNY = "canny"
    SEGMENT = "segment"
    COMPRESS = "compress"
    CONVOLVE = "convolve"


def _require_int(name: str, value: object, minimum: int) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise ConfigurationError(f"{name} should be an integer, got {value!r}")
    if value < minimum:
        raise ConfigurationError(f"{name} should be at least {minimum}, got {value}")


def _require_finite(name: str, value: object) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float, np.number)):
        raise ConfigurationError(f"{name} should be a number, got {value!r}")
    if not math.isfinite(value):
        raise ConfigurationError(f"{name} should be finite, got {value}")


# --- Option sets ---


@dataclass(frozen=True)
class ConvolutionOptions:
    """Options for a generic kernel convolution."""

    boundary: BoundaryPolicy = BoundaryPolicy.ZERO
    normalize: bool = False
    # Divisor used when normalizing; None means the sum of the kernel weights
    normalization_sum: "float | None" = None
    factor: float = 1.0  # Multiplier applied to every output sample
    repeat: int = 1  # Number of passes, each consuming the previous output

    def __post_init__(self):
        if not isinstance(self.boundary, BoundaryPolicy):
            try:
                object.__setattr__(self, "boundary", BoundaryPolicy(self.boundary))
            except ValueError as e:
                raise ConfigurationError(
                    f"Unknown boundary policy {self.boundary!r}"
                ) from e
        _require_finite("factor", self.factor)
        _require_int("repeat", self.repeat, 1)
        if self.normalization_sum is not None:
            _require_finite("normalization_sum", self.normalization_sum)
            if self.normalization_sum == 0:
                raise ConfigurationError("normalization_sum cannot be zero")


@dataclass(frozen=True)
class GaussianOptions:
    """Gaussian blur kernel parameters."""

    size: int = 5  # Kernel width and height, odd and >= 3
    sigma: float = 1.0  # Standard deviation, > 0

    def __post_init__(self):
        if (
            isinstance(self.size, bool)
            or not isinstance(self.size, (int, np.integer))
            or self.size % 2 == 0
            or self.size < 3
        ):
            raise ConfigurationError(
                f"Kernel size should be an odd number of at least 3, got {self.size!r}"
            )
        _require_finite("sigma", self.sigma)
        if self.sigma <= 0:
            raise ConfigurationError(f"sigma should be positive, got {self.sigma}")


@dataclass(frozen=True)
class CannyOptions:
    """Canny edge detector parameters.

    The high threshold is a fraction of the brightest source pixel and the
    low threshold is a fraction of the high threshold.
    """

    low_threshold_ratio: float = 0.05
    high_threshold_ratio: float = 0.09
    gaussian: GaussianOptions = field(default_factory=GaussianOptions)

    def __post_init__(self):
        for name in ("low_threshold_ratio", "high_threshold_ratio"):
            value = getattr(self, name)
            _require_finite(name, value)
            if not 0 < value < 1:
                raise ConfigurationError(f"{name} should be in (0, 1), got {value}")
        if self.low_threshold_ratio >= self.high_threshold_ratio:
            raise ConfigurationError(
                f"low_threshold_ratio ({self.low_threshold_ratio}) must be < "
                f"high_threshold_ratio ({self.high_threshold_ratio})"
            )
        if not isinstance(self.gaussian, GaussianOptions):
            raise ConfigurationError("gaussian should be a GaussianOptions instance")


@dataclass(frozen=True)
class KMeansOptions:
    """K-Means clustering parameters."""

    cluster_count: int = 2
    max_iterations: int = 0  # 0 runs until assignments or centroids settle
    random_state: "int | None" = None  # Seed for the initial centroid draw

    def __post_init__(self):
        _require_int("cluster_count", self.cluster_count, 1)
        _require_int("max_iterations", self.max_iterations, 0)
        if self.random_state is not None:
            _require_int("random_state", self.random_state, 0)


@dataclass(frozen=True)
class SegmentationOptions:
    """K-Means image segmentation parameters.

    ``colors`` is either the number of segments (each painted with its mean
    color) or a palette of RGB triples (one segment per entry, painted with
    that entry).
    """

    colors: "int | tuple[tuple[float, float, float], ...]" = 3
    by_intensity: bool = False  # Cluster on grayscale instead of RGB
    max_iterations: int = 50
    random_state: "int | None" = None

    def __post_init__(self):
        if isinstance(self.colors, (int, np.integer)) and not isinstance(
            self.colors, bool
        ):
            _require_int("colors", self.colors, 1)
            object.__setattr__(self, "colors", int(self.colors))
        else:
            try:
                palette = tuple(tuple(float(v) for v in color) for color in self.colors)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(
                    "colors should be a segment count or a list of RGB triples"
                ) from e
            if not palette:
                raise ConfigurationError("colors palette cannot be empty")
            for color in palette:
                if len(color) != 3 or not all(math.isfinite(v) for v in color):
                    raise ConfigurationError(
                        f"Palette entries should be RGB triples, got {color!r}"
                    )
            object.__setattr__(self, "colors", palette)
        _require_int("max_iterations", self.max_iterations, 0)
        if self.random_state is not None:
            _require_int("random_state", self.random_state, 0)

    @property
    def palette(self) -> "tuple[tuple[float, float, float], ...] | None":
        return None if isinstance(self.colors, int) else self.colors

    @property
    def cluster_count(self) -> int:
        return self.colors if isinstance(self.colors, int) else len(self.colors)


@dataclass(frozen=True)
class ProcessingConfig:
    """Full option set used by the image processor and saved to disk."""

    convolution: ConvolutionOptions = field(default_factory=ConvolutionOptions)
    gaussian: GaussianOptions = field(default_factory=GaussianOptions)
    canny: CannyOptions = field(default_factory=CannyOptions)
    segmentation: SegmentationOptions = field(default_factory=SegmentationOptions)
    color_depth: int = 3  # Bits for the compress operation (2**depth colors)

    def __post_init__(self):
        _require_int("color_depth", self.color_depth, 0)
        if self.color_depth > 24:
            raise ConfigurationError(
                f"color_depth should be at most 24, got {self.color_depth}"
            )


# --- Results ---


@dataclass
class GradientField:
    """Per-pixel gradient from the Sobel operator.

    AIDEV-NOTE: direction is atan2(gy, gx) in radians, range (-pi, pi].
    """

    magnitude: "Raster"
    direction: "Raster"


@dataclass
class ClusterAssignment:
    """Result of a K-Means run."""

    labels: NDArray[np.intp]  # Cluster index for each sample
    centroids: NDArray[np.float64]  # (cluster_count, dimension_count)
    iterations: int = 0  # Iterations executed before stopping

    @property
    def cluster_count(self) -> int:
        return int(self.centroids.shape[0])


@dataclass
class ProcessedImage:
    """Result of an image processor run."""

    raster: "Raster"
    operation: Operation

    # Source image dimensions (pixels)
    source_width: int = 0
    source_height: int = 0

    # Colors used by segment/compress operations
    palette: "list[tuple[int, int, int]]" = field(default_factory=list)
