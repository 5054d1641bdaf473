"""kernelkit: convolution, edge detection and K-Means segmentation for images."""

from .errors import (
    ComputationError,
    ConfigurationError,
    EmptyClusterError,
    InsufficientSamplesError,
    KernelkitError,
)
from .image_processing import (
    ArraySamples,
    Canny,
    ConvolutionFilter,
    GaussianBlur,
    ImageProcessor,
    Kernel,
    KMeans,
    KMeansSegmentation,
    Raster,
    Sobel,
    convolve,
    gaussian_kernel,
)
from .models import (
    BoundaryPolicy,
    CannyOptions,
    ClusterAssignment,
    ConvolutionOptions,
    GaussianOptions,
    GradientField,
    KMeansOptions,
    ProcessingConfig,
    SegmentationOptions,
)

__version__ = "0.1.0"

__all__ = [
    "ArraySamples",
    "BoundaryPolicy",
    "Canny",
    "CannyOptions",
    "ClusterAssignment",
    "ComputationError",
    "ConfigurationError",
    "ConvolutionFilter",
    "ConvolutionOptions",
    "EmptyClusterError",
    "GaussianBlur",
    "GaussianOptions",
    "GradientField",
    "ImageProcessor",
    "InsufficientSamplesError",
    "KMeans",
    "KMeansOptions",
    "KMeansSegmentation",
    "Kernel",
    "KernelkitError",
    "ProcessingConfig",
    "Raster",
    "SegmentationOptions",
    "Sobel",
    "convolve",
    "gaussian_kernel",
]
