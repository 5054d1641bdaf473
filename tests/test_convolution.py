"""Tests for the convolution engine."""

from __future__ import annotations

import numpy as np
import pytest

from kernelkit.errors import ConfigurationError
from kernelkit.image_processing.convolution import ConvolutionFilter, convolve
from kernelkit.image_processing.raster import Kernel, Raster
from kernelkit.models import BoundaryPolicy, ConvolutionOptions
from tests.conftest import make_raster

ONES_3X3 = Kernel.from_rows([[1, 1, 1], [1, 1, 1], [1, 1, 1]])


class TestIdentity:
    def test_one_by_one_kernel(self, noisy_rgb):
        result = convolve(noisy_rgb, Kernel.from_rows([[1]]))
        assert result == noisy_rgb

    def test_centered_three_by_three(self, noisy_rgb):
        assert convolve(noisy_rgb, Kernel.identity(3)) == noisy_rgb

    def test_shape_is_preserved(self, noisy_rgb):
        result = convolve(noisy_rgb, ONES_3X3)
        assert result.shape == noisy_rgb.shape

    def test_source_is_not_modified(self, noisy_rgb):
        before = noisy_rgb.clone()
        convolve(noisy_rgb, ONES_3X3)
        assert noisy_rgb == before


class TestBoundaries:
    def test_zero_padding(self):
        result = convolve(Raster(3, 3, 1, 1.0), ONES_3X3)
        assert result.as_array()[:, :, 0].tolist() == [
            [4.0, 6.0, 4.0],
            [6.0, 9.0, 6.0],
            [4.0, 6.0, 4.0],
        ]

    def test_pass_through_keeps_border(self):
        options = ConvolutionOptions(boundary=BoundaryPolicy.PASS_THROUGH)
        result = convolve(Raster(3, 3, 1, 1.0), ONES_3X3, options)
        assert result.as_array()[:, :, 0].tolist() == [
            [1.0, 1.0, 1.0],
            [1.0, 9.0, 1.0],
            [1.0, 1.0, 1.0],
        ]

    def test_kernel_is_not_flipped(self):
        # The tap right of center reads the pixel to the right
        shift_left = Kernel.from_rows([[0, 0, 0], [0, 0, 1], [0, 0, 0]])
        source = make_raster([[1, 2, 3]])
        result = convolve(source, shift_left)
        assert result.samples.tolist() == [2.0, 3.0, 0.0]

    def test_channels_are_independent(self):
        source = Raster(1, 1, 3, [1.0, 10.0, 100.0])
        result = convolve(source, Kernel.from_rows([[2]]))
        assert result.samples.tolist() == [2.0, 20.0, 200.0]

    def test_rectangular_kernel(self):
        source = make_raster([[1, 2, 3], [4, 5, 6]])
        horizontal_sum = Kernel.from_rows([[1, 1, 1]])
        result = convolve(source, horizontal_sum)
        assert result.as_array()[:, :, 0].tolist() == [[3.0, 6.0, 5.0], [9.0, 15.0, 11.0]]


class TestNormalization:
    def test_divides_by_kernel_sum(self):
        options = ConvolutionOptions(normalize=True)
        result = convolve(Raster(3, 3, 1, 2.0), ONES_3X3, options)
        assert result.get(1, 1) == pytest.approx(2.0)
        assert result.get(0, 0) == pytest.approx(2.0 * 4 / 9)

    def test_explicit_sum_and_factor(self):
        options = ConvolutionOptions(normalize=True, normalization_sum=3.0, factor=0.5)
        result = convolve(Raster(3, 3, 1, 2.0), ONES_3X3, options)
        assert result.get(1, 1) == pytest.approx(18.0 / 3.0 * 0.5)

    def test_factor_without_normalization(self):
        options = ConvolutionOptions(factor=2.0)
        result = convolve(Raster(1, 1, 1, 3.0), Kernel.from_rows([[1]]), options)
        assert result.get(0, 0) == 6.0

    def test_zero_sum_kernel_cannot_normalize(self):
        sobel = Kernel.from_rows([[1, 0, -1], [2, 0, -2], [1, 0, -1]])
        with pytest.raises(ConfigurationError):
            convolve(Raster(3, 3), sobel, ConvolutionOptions(normalize=True))


class TestRepeat:
    def test_repeat_applies_passes_in_sequence(self, noisy_rgb):
        twice = convolve(noisy_rgb, ONES_3X3, ConvolutionOptions(repeat=2))
        manual = convolve(convolve(noisy_rgb, ONES_3X3), ONES_3X3)
        assert np.allclose(twice.samples, manual.samples)

    def test_repeat_must_be_positive(self):
        with pytest.raises(ConfigurationError):
            ConvolutionOptions(repeat=0)


class TestValidation:
    def test_even_kernel_rejected(self):
        with pytest.raises(ConfigurationError):
            convolve(Raster(4, 4), Kernel.from_rows([[1, 1], [1, 1]]))

    def test_unknown_boundary_rejected(self):
        with pytest.raises(ConfigurationError):
            ConvolutionOptions(boundary="wrap")

    def test_boundary_from_string(self):
        assert ConvolutionOptions(boundary="pass_through").boundary is BoundaryPolicy.PASS_THROUGH


class TestConvolutionFilter:
    def test_run_uses_bound_options(self):
        conv = ConvolutionFilter(ONES_3X3, ConvolutionOptions(normalize=True))
        result = conv.run(Raster(3, 3, 1, 9.0))
        assert result.get(1, 1) == pytest.approx(9.0)

    def test_failed_update_keeps_previous_options(self):
        conv = ConvolutionFilter(ONES_3X3, ConvolutionOptions(repeat=2))
        with pytest.raises(ConfigurationError):
            conv.set_options(repeat=0)
        assert conv.options.repeat == 2

    def test_transpose_in_place(self):
        conv = ConvolutionFilter(Kernel.from_rows([[0, 0, 0], [0, 0, 1], [0, 0, 0]]))
        conv.transpose()
        assert conv.kernel.get(2, 1) == 1.0

    def test_even_kernel_rejected(self):
        with pytest.raises(ConfigurationError):
            ConvolutionFilter(Kernel(2, 2, [1, 1, 1, 1]))
