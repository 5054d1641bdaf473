"""Main image processor orchestrating load, filter and save.

AIDEV-NOTE: The processor owns one instance of every filter, built from a
ProcessingConfig. It is the seam used by the command line; the filters and
K-Means engine themselves know nothing about files.
"""

import logging
from pathlib import Path

from ..models import Operation, ProcessedImage, ProcessingConfig
from .convolution import ConvolutionFilter
from .edges import Canny
from .filters import GaussianBlur, Sobel
from .quantization import reduce_color_depth, segment_raster
from .raster import Kernel, Raster
from .utils import load_image, save_image

logger = logging.getLogger(__name__)

# Operations that work on intensity rather than color
_INTENSITY_OPERATIONS = {Operation.SOBEL, Operation.CANNY}


class ImageProcessor:
    """Runs toolkit operations on images."""

    def __init__(self, config: ProcessingConfig | None = None):
        self.config = config or ProcessingConfig()
        self.gaussian_blur = GaussianBlur(self.config.gaussian)
        self.sobel = Sobel()
        self.canny = Canny(self.config.canny)

    def load_image(self, file_path: str | Path, channel_count: int = 3) -> Raster:
        """Load an image file as a raster.

        Args:
            file_path: Path to image file (PNG, JPG, etc.)
            channel_count: 1 for intensity, 3 for RGB

        Returns:
            Raster with alpha discarded

        Raises:
            ValueError: If file cannot be loaded or is invalid
        """
        return load_image(file_path, channel_count)

    def blur(self, raster: Raster) -> Raster:
        return self.gaussian_blur.run(raster)

    def gradient_magnitude(self, raster: Raster) -> Raster:
        """Sobel gradient magnitude of ``raster``."""
        return self.sobel.run(raster).magnitude

    def detect_edges(self, raster: Raster) -> Raster:
        return self.canny.run(raster)

    def segment(self, raster: Raster) -> "tuple[Raster, list[tuple[int, int, int]]]":
        return segment_raster(raster, self.config.segmentation)

    def compress(self, raster: Raster) -> "tuple[Raster, list[tuple[int, int, int]]]":
        """Reduce ``raster`` to 2**color_depth colors."""
        return reduce_color_depth(
            raster,
            self.config.color_depth,
            random_state=self.config.segmentation.random_state,
            max_iterations=self.config.segmentation.max_iterations,
        )

    def convolve(self, raster: Raster, kernel: Kernel) -> Raster:
        return ConvolutionFilter(kernel, self.config.convolution).run(raster)

    def process(
        self,
        file_path: str | Path,
        operation: Operation,
        kernel: Kernel | None = None,
    ) -> ProcessedImage:
        """Load an image and run one operation on it.

        Args:
            file_path: Path to input image
            operation: Operation to run
            kernel: Kernel for Operation.CONVOLVE

        Returns:
            ProcessedImage with the output raster and palette (if any)

        Raises:
            ValueError: If the image cannot be loaded, or CONVOLVE is
                requested without a kernel
            ComputationError: If segmentation cannot complete
        """
        if operation is Operation.CONVOLVE and kernel is None:
            raise ValueError("The convolve operation needs a kernel")

        channel_count = 1 if operation in _INTENSITY_OPERATIONS else 3
        raster = self.load_image(file_path, channel_count)
        logger.info(
            "Loaded %s (%dx%d, %d channel(s))",
            file_path,
            raster.width,
            raster.height,
            raster.channel_count,
        )

        logger.info("Running %s...", operation.value)
        palette: "list[tuple[int, int, int]]" = []
        if operation is Operation.BLUR:
            result = self.blur(raster)
        elif operation is Operation.SOBEL:
            result = self.gradient_magnitude(raster)
        elif operation is Operation.CANNY:
            result = self.detect_edges(raster)
        elif operation is Operation.SEGMENT:
            result, palette = self.segment(raster)
        elif operation is Operation.COMPRESS:
            result, palette = self.compress(raster)
        else:
            result = self.convolve(raster, kernel)

        logger.info(
            "Finished %s: %dx%d, %d channel(s)",
            operation.value,
            result.width,
            result.height,
            result.channel_count,
        )
        return ProcessedImage(
            raster=result,
            operation=operation,
            source_width=raster.width,
            source_height=raster.height,
            palette=palette,
        )

    def save(self, processed: ProcessedImage, file_path: str | Path) -> None:
        save_image(processed.raster, file_path)
        logger.info("Saved %s output to %s", processed.operation.value, file_path)
