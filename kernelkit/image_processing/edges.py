"""Canny edge detection.

AIDEV-NOTE: The detector runs four stages in a fixed order and each stage
consumes the complete raster produced by the previous one:

1. SMOOTH     Gaussian blur
2. GRADIENT   Sobel magnitude and direction
3. SUPPRESS   non-maximum suppression along the gradient direction
4. THRESHOLD  double threshold followed by a single hysteresis pass

Hysteresis only looks at the 8 direct neighbours of a weak pixel. A weak
pixel that reaches a strong one only through other weak pixels is dropped.
"""

import logging
from dataclasses import replace
from enum import Enum

import numpy as np

from ..models import STRONG_EDGE, WEAK_EDGE, CannyOptions, GradientField
from .filters import GaussianBlur, Sobel
from .raster import Raster

logger = logging.getLogger(__name__)

# Pixels this close to the image edge are never considered edges
SUPPRESSION_BORDER = 2

# Offsets of the 8-connected neighbourhood
_NEIGHBOURS = [
    (-1, -1), (-1, 0), (-1, 1),
    (0, -1), (0, 1),
    (1, -1), (1, 0), (1, 1),
]


class CannyStage(Enum):
    """Pipeline stages, in execution order."""

    SMOOTH = "smooth"
    GRADIENT = "gradient"
    SUPPRESS = "suppress"
    THRESHOLD = "threshold"


def non_maximum_suppression(
    field: GradientField, border: int = SUPPRESSION_BORDER
) -> Raster:
    """Thin gradient ridges to one pixel along the gradient direction.

    The direction is bucketed into 0, 45, 90 or 135 degrees (negative angles
    wrapped by +180). A pixel keeps its magnitude only if it is >= both
    neighbours along that direction; everything else, including a ``border``
    pixel frame, becomes 0.

    Returns:
        Single-channel raster of suppressed magnitudes
    """
    magnitude = field.magnitude.as_array()[:, :, 0]
    direction = field.direction.as_array()[:, :, 0]
    height, width = magnitude.shape
    suppressed = np.zeros_like(magnitude)

    if height <= 2 * border or width <= 2 * border:
        return Raster(width, height, 1, suppressed.reshape(-1))

    def shifted(dr: int, dc: int) -> np.ndarray:
        return magnitude[
            border + dr : height - border + dr, border + dc : width - border + dc
        ]

    center = shifted(0, 0)
    angle = direction[border : height - border, border : width - border] * 180 / np.pi
    angle = np.where(angle < 0, angle + 180, angle)

    bins = [
        (angle < 22.5) | (angle >= 157.5),
        (angle >= 22.5) & (angle < 67.5),
        (angle >= 67.5) & (angle < 112.5),
        (angle >= 112.5) & (angle < 157.5),
    ]
    ahead = np.select(
        bins, [shifted(0, 1), shifted(1, 1), shifted(1, 0), shifted(-1, 1)]
    )
    behind = np.select(
        bins, [shifted(0, -1), shifted(-1, -1), shifted(-1, 0), shifted(1, -1)]
    )

    keep = (center >= ahead) & (center >= behind)
    suppressed[border : height - border, border : width - border] = np.where(
        keep, center, 0.0
    )
    return Raster(width, height, 1, suppressed.reshape(-1))


def classify_edges(suppressed: Raster, low_threshold: float, high_threshold: float) -> Raster:
    """Double threshold.

    Values below ``low_threshold`` become 0, values in [low, high) become
    WEAK_EDGE and values >= ``high_threshold`` become STRONG_EDGE. A zero
    magnitude is never an edge, even when both thresholds are 0.
    """
    values = suppressed.samples
    nonzero = values > 0
    strong = nonzero & (values >= high_threshold)
    weak = nonzero & ~strong & (values >= low_threshold)

    classified = np.zeros_like(values)
    classified[weak] = WEAK_EDGE
    classified[strong] = STRONG_EDGE
    return Raster(suppressed.width, suppressed.height, 1, classified)


def hysteresis(classified: Raster) -> Raster:
    """Promote WEAK_EDGE pixels next to a STRONG_EDGE pixel, drop the rest.

    Neighbours are read from ``classified`` as it was before any promotion,
    so this is one pass, not a flood fill.
    """
    grid = classified.as_array()[:, :, 0]
    height, width = grid.shape
    strong = grid == STRONG_EDGE
    weak = grid == WEAK_EDGE

    padded = np.pad(strong, 1, mode="constant", constant_values=False)
    touches_strong = np.zeros_like(strong)
    for dr, dc in _NEIGHBOURS:
        touches_strong |= padded[1 + dr : 1 + dr + height, 1 + dc : 1 + dc + width]

    edges = np.where(strong | (weak & touches_strong), STRONG_EDGE, 0.0)
    return Raster(width, height, 1, edges.reshape(-1))


class Canny:
    """Canny edge detector.

    Args:
        options: Threshold ratios and Gaussian parameters, defaults if None
    """

    def __init__(self, options: CannyOptions | None = None):
        self._options = options or CannyOptions()
        self._blur = GaussianBlur(self._options.gaussian)
        self._sobel = Sobel()

    @property
    def options(self) -> CannyOptions:
        return self._options

    def set_options(self, **changes) -> CannyOptions:
        """Replace selected options; the old options stay if validation fails."""
        options = replace(self._options, **changes)
        self._blur = GaussianBlur(options.gaussian)
        self._options = options
        return options

    def run(self, source: Raster) -> Raster:
        """Detect edges in ``source``.

        Multi-channel sources are converted to intensity first.

        Returns:
            Single-channel raster holding 0 (no edge) or 255 (edge)
        """
        intensity = source.to_grayscale() if source.channel_count > 1 else source

        smoothed = self._blur.run(intensity)
        self._log_stage(CannyStage.SMOOTH, smoothed)

        field = self._sobel.run(smoothed)
        self._log_stage(CannyStage.GRADIENT, field.magnitude)

        suppressed = non_maximum_suppression(field)
        self._log_stage(CannyStage.SUPPRESS, suppressed)

        high_threshold = intensity.max() * self._options.high_threshold_ratio
        low_threshold = high_threshold * self._options.low_threshold_ratio
        edges = hysteresis(classify_edges(suppressed, low_threshold, high_threshold))
        self._log_stage(CannyStage.THRESHOLD, edges)

        return edges

    @staticmethod
    def _log_stage(stage: CannyStage, output: Raster) -> None:
        logger.debug(
            "Canny %s stage complete (max value %.3f)", stage.value, output.max()
        )
