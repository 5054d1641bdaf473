"""Pixel buffers and kernel matrices shared by every algorithm.

AIDEV-NOTE: Raster is the only pixel container in the package. Samples are
stored flat and row-major as float64 so the filters can work on numpy views
without copying. Filters never mutate their input; they build a new Raster.
"""

from numbers import Real
from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from ..errors import ConfigurationError

# Channels copied from an RGBA buffer; alpha is always ignored.
RGB_CHANNELS = 3


class Raster:
    """Rectangular multi-channel pixel buffer.

    Args:
        width: Width in pixels
        height: Height in pixels
        channel_count: Values per pixel (1 for intensity, 3 for RGB)
        fill: Constant for every sample, or a flat sequence of
            width * height * channel_count samples

    Raises:
        ConfigurationError: If dimensions are not positive or the fill
            sequence does not match them
    """

    def __init__(
        self,
        width: int,
        height: int,
        channel_count: int = 1,
        fill: "Real | Sequence[float] | NDArray" = 0.0,
    ):
        if width < 1 or height < 1:
            raise ConfigurationError(
                f"Raster dimensions must be positive, got {width}x{height}"
            )
        if channel_count < 1:
            raise ConfigurationError(
                f"Channel count must be at least 1, got {channel_count}"
            )

        self.width = int(width)
        self.height = int(height)
        self.channel_count = int(channel_count)

        size = self.width * self.height * self.channel_count
        if isinstance(fill, Real):
            self.samples = np.full(size, float(fill), dtype=np.float64)
        else:
            samples = np.array(fill, dtype=np.float64)
            if samples.ndim != 1 or samples.size != size:
                raise ConfigurationError(
                    "Given pixel array does not match the dimension and the "
                    f"channel count: expected {size} samples, got {samples.size}"
                )
            self.samples = samples

    @classmethod
    def from_array(cls, array: "NDArray | Sequence") -> "Raster":
        """Build a raster from a (height, width) or (height, width, channels) array."""
        data = np.asarray(array, dtype=np.float64)
        if data.ndim == 2:
            data = data[:, :, np.newaxis]
        if data.ndim != 3:
            raise ConfigurationError(
                f"Expected a 2-D or 3-D pixel array, got shape {data.shape}"
            )
        height, width, channels = data.shape
        return cls(width, height, channels, data.reshape(-1))

    @classmethod
    def from_rgba(
        cls,
        data: "bytes | Sequence[int] | NDArray",
        width: int,
        height: int,
        channel_count: int = 1,
    ) -> "Raster":
        """Build a raster from a flat RGBA buffer.

        Args:
            data: width * height * 4 values in RGBA order
            width: Width in pixels
            height: Height in pixels
            channel_count: 1 averages R, G and B into an intensity channel;
                anything larger copies up to the first three channels

        Returns:
            New Raster; alpha is discarded
        """
        if isinstance(data, (bytes, bytearray, memoryview)):
            rgba = np.frombuffer(data, dtype=np.uint8)
        else:
            rgba = np.asarray(data)
        rgba = rgba.astype(np.float64).reshape(-1)

        if rgba.size != width * height * 4:
            raise ConfigurationError(
                f"RGBA buffer holds {rgba.size} values, expected "
                f"{width * height * 4} for a {width}x{height} image"
            )

        rgb = rgba.reshape(-1, 4)[:, :RGB_CHANNELS]
        if channel_count < 2:
            return cls(width, height, 1, rgb.sum(axis=1) / RGB_CHANNELS)

        pixels = np.zeros((width * height, channel_count), dtype=np.float64)
        copied = min(channel_count, RGB_CHANNELS)
        pixels[:, :copied] = rgb[:, :copied]
        return cls(width, height, channel_count, pixels.reshape(-1))

    def to_rgba(self) -> NDArray[np.uint8]:
        """Convert to a flat RGBA buffer.

        A single channel is replicated across R, G and B. Values are rounded
        and clamped to 0-255, alpha is always fully opaque.
        """
        pixels = self.samples.reshape(-1, self.channel_count)
        if self.channel_count > 1:
            rgb = np.zeros((pixels.shape[0], RGB_CHANNELS), dtype=np.float64)
            copied = min(self.channel_count, RGB_CHANNELS)
            rgb[:, :copied] = pixels[:, :copied]
        else:
            rgb = np.repeat(pixels, RGB_CHANNELS, axis=1)

        rgb = np.clip(np.rint(np.nan_to_num(rgb)), 0, 255)
        rgba = np.full((pixels.shape[0], 4), 255, dtype=np.uint8)
        rgba[:, :RGB_CHANNELS] = rgb.astype(np.uint8)
        return rgba.reshape(-1)

    @property
    def shape(self) -> "tuple[int, int, int]":
        return (self.height, self.width, self.channel_count)

    def as_array(self) -> NDArray[np.float64]:
        """Return a (height, width, channels) view of the samples."""
        return self.samples.reshape(self.shape)

    def _index(self, row: int, col: int, channel: int) -> int:
        if not (
            0 <= row < self.height
            and 0 <= col < self.width
            and 0 <= channel < self.channel_count
        ):
            raise IndexError(
                f"Pixel ({row}, {col}, {channel}) is outside a "
                f"{self.width}x{self.height}x{self.channel_count} raster"
            )
        return (row * self.width + col) * self.channel_count + channel

    def get(self, row: int, col: int, channel: int = 0) -> float:
        """Get one channel value of the pixel at (row, col)."""
        return float(self.samples[self._index(row, col, channel)])

    def set(self, row: int, col: int, value: float, channel: int = 0) -> None:
        """Set one channel value of the pixel at (row, col)."""
        self.samples[self._index(row, col, channel)] = value

    def max(self) -> float:
        """Global maximum over all samples."""
        return float(self.samples.max())

    def clone(self) -> "Raster":
        return Raster(self.width, self.height, self.channel_count, self.samples)

    def to_grayscale(self) -> "Raster":
        """Return an intensity raster (unweighted channel mean).

        A single-channel raster is cloned. The original is not modified.
        """
        if self.channel_count < 2:
            return self.clone()
        intensity = self.samples.reshape(-1, self.channel_count).mean(axis=1)
        return Raster(self.width, self.height, 1, intensity)

    def to_multi_channel(self, channel_count: int) -> "Raster":
        """Replicate a single channel into ``channel_count`` channels.

        Raises:
            ConfigurationError: If the raster already has several channels,
                since there is no unambiguous way to remap them
        """
        if self.channel_count > 1:
            raise ConfigurationError("Image is already multi channel")
        pixels = np.repeat(self.samples, channel_count)
        return Raster(self.width, self.height, channel_count, pixels)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Raster):
            return NotImplemented
        return self.shape == other.shape and np.array_equal(
            self.samples, other.samples
        )

    def __repr__(self) -> str:
        return (
            f"Raster(width={self.width}, height={self.height}, "
            f"channel_count={self.channel_count})"
        )


class Kernel:
    """Matrix of convolution weights.

    Args:
        rows: Number of rows
        cols: Number of columns
        weights: rows * cols weights in row-major order

    Raises:
        ConfigurationError: If the matrix is empty, the weight count does not
            match the shape, or a weight is not finite
    """

    def __init__(self, rows: int, cols: int, weights: "Sequence[float] | NDArray"):
        if rows < 1 or cols < 1:
            raise ConfigurationError(
                f"Kernel must have at least one row and column, got {rows}x{cols}"
            )
        values = np.array(weights, dtype=np.float64).reshape(-1)
        if values.size != rows * cols:
            raise ConfigurationError(
                f"Kernel of shape {rows}x{cols} needs {rows * cols} weights, "
                f"got {values.size}"
            )
        if not np.all(np.isfinite(values)):
            raise ConfigurationError("Kernel weights must be finite numbers")

        self.rows = int(rows)
        self.cols = int(cols)
        self.weights = values

    @classmethod
    def from_rows(cls, matrix: "Sequence[Sequence[float]] | NDArray") -> "Kernel":
        """Build a kernel from nested rows, e.g. ``[[1, 0, -1], [2, 0, -2]]``."""
        if len(matrix) == 0 or len(matrix[0]) == 0:
            raise ConfigurationError("Kernel must have at least one row and column")
        cols = len(matrix[0])
        if any(len(row) != cols for row in matrix):
            raise ConfigurationError("All kernel rows must have the same length")
        return cls(len(matrix), cols, np.asarray(matrix, dtype=np.float64).reshape(-1))

    @classmethod
    def identity(cls, size: int = 1) -> "Kernel":
        """Square kernel with a single 1 in the center."""
        weights = np.zeros(size * size, dtype=np.float64)
        weights[(size * size) // 2] = 1.0
        return cls(size, size, weights)

    @property
    def is_odd(self) -> bool:
        return self.rows % 2 == 1 and self.cols % 2 == 1

    def as_array(self) -> NDArray[np.float64]:
        """Return a (rows, cols) view of the weights."""
        return self.weights.reshape(self.rows, self.cols)

    def get(self, row: int, col: int) -> float:
        return float(self.as_array()[row, col])

    def set(self, row: int, col: int, value: float) -> None:
        self.as_array()[row, col] = value

    def sum(self) -> float:
        return float(self.weights.sum())

    def transpose(self, in_place: bool = False) -> "Kernel":
        """Swap rows and columns.

        Args:
            in_place: Transpose this kernel instead of returning a new one

        Returns:
            The transposed kernel (``self`` when ``in_place`` is set)
        """
        transposed = self.as_array().T.reshape(-1).copy()
        if not in_place:
            return Kernel(self.cols, self.rows, transposed)
        self.rows, self.cols = self.cols, self.rows
        self.weights = transposed
        return self

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Kernel):
            return NotImplemented
        return (self.rows, self.cols) == (other.rows, other.cols) and np.array_equal(
            self.weights, other.weights
        )

    def __repr__(self) -> str:
        return f"Kernel({self.as_array().tolist()})"
