"""Color quantization and segmentation of rasters with K-Means.

AIDEV-NOTE: Pixels are clustered as vectors of their channel values (or of
their intensity when ``by_intensity`` is set). Each pixel is then repainted
with its cluster's centroid color, or with a caller supplied palette entry
indexed by cluster. Output is always a 3-channel raster.
"""

import logging
from dataclasses import replace

import numpy as np
from numpy.typing import NDArray

from ..models import KMeansOptions, SegmentationOptions
from .kmeans import KMeans
from .raster import RGB_CHANNELS, Raster

logger = logging.getLogger(__name__)


class RasterSamples:
    """Exposes a raster's pixels as K-Means samples, one per pixel."""

    def __init__(self, raster: Raster):
        self.raster = raster

    @property
    def length(self) -> int:
        return self.raster.width * self.raster.height

    @property
    def dimension_count(self) -> int:
        return self.raster.channel_count

    def get(self, index: int, dimension: int) -> float:
        return float(self.raster.samples[index * self.raster.channel_count + dimension])

    def to_matrix(self) -> NDArray[np.float64]:
        return self.raster.samples.reshape(-1, self.raster.channel_count)


def centroid_colors(centroids: NDArray[np.float64]) -> NDArray[np.float64]:
    """Map (K, D) centroids to (K, 3) RGB colors.

    A single dimension is replicated across R, G and B; otherwise the first
    three dimensions are used and missing ones are 0.
    """
    if centroids.shape[1] == 1:
        return np.repeat(centroids, RGB_CHANNELS, axis=1)
    colors = np.zeros((centroids.shape[0], RGB_CHANNELS), dtype=np.float64)
    copied = min(centroids.shape[1], RGB_CHANNELS)
    colors[:, :copied] = centroids[:, :copied]
    return colors


def segment_raster(
    source: Raster,
    options: SegmentationOptions | None = None,
) -> "tuple[Raster, list[tuple[int, int, int]]]":
    """Segment a raster into K-Means clusters and repaint it.

    Args:
        source: Input raster (not modified)
        options: Segment count or palette, intensity mode, iteration cap

    Returns:
        Tuple of (3-channel painted raster, palette list with one rounded
        RGB color per cluster)

    Raises:
        InsufficientSamplesError: If the image has fewer distinct colors
            than requested segments
        EmptyClusterError: If a segment loses all its pixels mid-run
    """
    options = options or SegmentationOptions()
    working = source.to_grayscale() if options.by_intensity else source

    kmeans = KMeans(
        KMeansOptions(
            cluster_count=options.cluster_count,
            max_iterations=options.max_iterations,
            random_state=options.random_state,
        )
    )
    assignment = kmeans.run(RasterSamples(working))

    if options.palette is None:
        colors = centroid_colors(assignment.centroids)
    else:
        colors = np.array(options.palette, dtype=np.float64)

    painted = colors[assignment.labels]
    result = Raster(source.width, source.height, RGB_CHANNELS, painted.reshape(-1))

    palette = [
        tuple(int(v) for v in color)
        for color in np.clip(np.rint(colors), 0, 255).astype(np.uint8)
    ]
    logger.debug(
        "Segmented %dx%d raster into %d clusters in %d iterations",
        source.width,
        source.height,
        assignment.cluster_count,
        assignment.iterations,
    )
    return result, palette


def reduce_color_depth(
    source: Raster,
    depth: int,
    random_state: int | None = None,
    max_iterations: int = 50,
) -> "tuple[Raster, list[tuple[int, int, int]]]":
    """Quantize a raster to 2**depth mean colors."""
    options = SegmentationOptions(
        colors=2**depth,
        max_iterations=max_iterations,
        random_state=random_state,
    )
    return segment_raster(source, options)


class KMeansSegmentation:
    """Reusable K-Means segmentation with fixed options.

    Args:
        options: Segmentation options, defaults if None
    """

    def __init__(self, options: SegmentationOptions | None = None):
        self._options = options or SegmentationOptions()

    @property
    def options(self) -> SegmentationOptions:
        return self._options

    def set_options(self, **changes) -> SegmentationOptions:
        """Replace selected options; the old options stay if validation fails."""
        self._options = replace(self._options, **changes)
        return self._options

    def run(self, source: Raster) -> Raster:
        """Segment ``source`` and return the repainted 3-channel raster."""
        result, _ = segment_raster(source, self._options)
        return result
