"""Image processing kernels and pipelines.

AIDEV-NOTE: Organized leaf-first:
- raster: Raster pixel buffer and Kernel weight matrix
- convolution: Generic kernel convolution engine
- filters: Gaussian blur and Sobel gradients
- edges: Canny edge detector
- kmeans: K-Means clustering over any Samples provider
- quantization: K-Means segmentation/quantization of rasters
- utils: Pillow and RGBA conversions
- processor: ImageProcessor orchestrator
"""

from .convolution import ConvolutionFilter, convolve
from .edges import Canny, CannyStage
from .filters import GaussianBlur, Sobel, gaussian_kernel
from .kmeans import ArraySamples, KMeans, Samples
from .processor import ImageProcessor
from .quantization import KMeansSegmentation, RasterSamples, reduce_color_depth, segment_raster
from .raster import Kernel, Raster

__all__ = [
    "ArraySamples",
    "Canny",
    "CannyStage",
    "ConvolutionFilter",
    "GaussianBlur",
    "ImageProcessor",
    "KMeans",
    "KMeansSegmentation",
    "Kernel",
    "Raster",
    "RasterSamples",
    "Samples",
    "Sobel",
    "convolve",
    "gaussian_kernel",
    "reduce_color_depth",
    "segment_raster",
]
