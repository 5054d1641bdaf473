"""Tests for K-Means segmentation and color quantization."""

from __future__ import annotations

import numpy as np
import pytest

from kernelkit.errors import ConfigurationError, InsufficientSamplesError
from kernelkit.image_processing.quantization import (
    KMeansSegmentation,
    RasterSamples,
    centroid_colors,
    reduce_color_depth,
    segment_raster,
)
from kernelkit.image_processing.raster import Raster
from kernelkit.models import SegmentationOptions
from tests.conftest import make_raster

DARK = (10.0, 20.0, 30.0)
LIGHT = (200.0, 100.0, 50.0)


@pytest.fixture
def two_tone() -> Raster:
    pixels = np.zeros((4, 6, 3))
    pixels[:, :3] = DARK
    pixels[:, 3:] = LIGHT
    return make_raster(pixels)


class TestRasterSamples:
    def test_pixels_become_samples(self):
        raster = Raster(2, 1, 3, [1.0, 2.0, 3.0, 4.0, 5.0, 6.0])
        samples = RasterSamples(raster)
        assert samples.length == 2
        assert samples.dimension_count == 3
        assert samples.get(1, 2) == 6.0
        assert samples.to_matrix().tolist() == [[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]]


class TestCentroidColors:
    def test_single_dimension_is_gray(self):
        assert centroid_colors(np.array([[7.0]])).tolist() == [[7.0, 7.0, 7.0]]

    def test_rgb_passes_through(self):
        assert centroid_colors(np.array([[1.0, 2.0, 3.0]])).tolist() == [[1.0, 2.0, 3.0]]


class TestSegmentation:
    def test_single_segment_is_mean_color(self, noisy_rgb):
        result, palette = segment_raster(noisy_rgb, SegmentationOptions(colors=1, random_state=0))
        mean = noisy_rgb.samples.reshape(-1, 3).mean(axis=0)
        pixels = result.samples.reshape(-1, 3)
        assert np.allclose(pixels, mean)
        assert len(palette) == 1
        assert palette[0] == tuple(int(v) for v in np.rint(mean))

    def test_quantization_recovers_two_colors(self, two_tone):
        result, palette = segment_raster(two_tone, SegmentationOptions(colors=2, random_state=1))
        assert result == two_tone
        assert set(palette) == {(10, 20, 30), (200, 100, 50)}

    def test_palette_mode_paints_given_colors(self, two_tone):
        red, blue = (255.0, 0.0, 0.0), (0.0, 0.0, 255.0)
        options = SegmentationOptions(colors=[red, blue], random_state=4)
        result = KMeansSegmentation(options).run(two_tone)

        pixels = result.as_array()
        left = {tuple(p) for p in pixels[:, :3].reshape(-1, 3)}
        right = {tuple(p) for p in pixels[:, 3:].reshape(-1, 3)}
        assert len(left) == 1 and len(right) == 1
        assert left | right == {red, blue}

    def test_by_intensity_produces_gray_rgb(self, two_tone):
        options = SegmentationOptions(colors=2, by_intensity=True, random_state=0)
        result = KMeansSegmentation(options).run(two_tone)
        assert result.channel_count == 3
        pixels = result.samples.reshape(-1, 3)
        assert np.all(pixels[:, 0] == pixels[:, 1])
        assert np.all(pixels[:, 1] == pixels[:, 2])
        assert set(np.round(pixels[:, 0], 6)) == {20.0, round(350.0 / 3, 6)}

    def test_single_channel_source_becomes_rgb(self):
        raster = make_raster([[0.0, 0.0, 255.0, 255.0]])
        result = KMeansSegmentation(SegmentationOptions(colors=2, random_state=0)).run(raster)
        assert result.channel_count == 3
        assert result.samples.reshape(-1, 3)[:, 0].tolist() == [0.0, 0.0, 255.0, 255.0]

    def test_source_is_not_modified(self, two_tone):
        before = two_tone.clone()
        segment_raster(two_tone, SegmentationOptions(colors=2, random_state=0))
        assert two_tone == before

    def test_too_few_colors(self):
        with pytest.raises(InsufficientSamplesError):
            segment_raster(Raster(4, 4, 3, 50.0), SegmentationOptions(colors=2))


class TestColorDepth:
    def test_one_bit_gives_two_colors(self, two_tone):
        result, palette = reduce_color_depth(two_tone, 1, random_state=0)
        assert len(palette) == 2
        assert result == two_tone

    def test_zero_bits_gives_mean(self, two_tone):
        result, palette = reduce_color_depth(two_tone, 0, random_state=0)
        assert len(palette) == 1
        assert np.allclose(result.samples.reshape(-1, 3), [105.0, 60.0, 40.0])


class TestSegmentationOptions:
    def test_palette_normalized_to_tuples(self):
        options = SegmentationOptions(colors=[[0, 0, 0], [255, 255, 255]])
        assert options.colors == ((0.0, 0.0, 0.0), (255.0, 255.0, 255.0))
        assert options.cluster_count == 2
        assert options.palette is not None

    def test_count_mode(self):
        options = SegmentationOptions(colors=5)
        assert options.palette is None
        assert options.cluster_count == 5

    @pytest.mark.parametrize("colors", [0, [], [[1, 2]], [[1, 2, "x"]], "abc"])
    def test_invalid_colors(self, colors):
        with pytest.raises(ConfigurationError):
            SegmentationOptions(colors=colors)

    def test_failed_update_keeps_previous_options(self):
        segmentation = KMeansSegmentation(SegmentationOptions(colors=3))
        with pytest.raises(ConfigurationError):
            segmentation.set_options(colors=0)
        assert segmentation.options.colors == 3
