"""Shared test fixtures."""

from __future__ import annotations

import numpy as np
import pytest
from PIL import Image

from kernelkit.image_processing.raster import Raster


def make_raster(array) -> Raster:
    return Raster.from_array(np.asarray(array, dtype=np.float64))


@pytest.fixture
def solid_5x5() -> Raster:
    return Raster(5, 5, 1, 128.0)


@pytest.fixture
def vertical_edge() -> Raster:
    """10x10 image, black on the left half and white on the right half."""
    pixels = np.zeros((10, 10))
    pixels[:, 5:] = 255.0
    return make_raster(pixels)


@pytest.fixture
def white_square() -> Raster:
    """20x20 black image with an 8x8 white square in the middle."""
    pixels = np.zeros((20, 20))
    pixels[6:14, 6:14] = 255.0
    return make_raster(pixels)


@pytest.fixture
def noisy_rgb() -> Raster:
    rng = np.random.default_rng(1234)
    return make_raster(rng.integers(0, 256, size=(12, 16, 3)))


@pytest.fixture
def two_blobs() -> np.ndarray:
    """20 points near (0, 0) followed by 20 points near (100, 100)."""
    rng = np.random.default_rng(0)
    blob_a = rng.normal(0.0, 1.0, size=(20, 2))
    blob_b = 100.0 + rng.normal(0.0, 1.0, size=(20, 2))
    return np.vstack([blob_a, blob_b])


@pytest.fixture
def three_color_png(tmp_path):
    """12x12 RGB PNG with three vertical color bands."""
    pixels = np.zeros((12, 12, 3), dtype=np.uint8)
    pixels[:, :4] = (200, 30, 30)
    pixels[:, 4:8] = (30, 200, 30)
    pixels[:, 8:] = (30, 30, 200)
    path = tmp_path / "bands.png"
    Image.fromarray(pixels).save(path)
    return path
