"""Tests for the command line entry point."""

from __future__ import annotations

import json

import numpy as np
import pytest

from kernelkit.app import apply_arguments, build_parser, main
from kernelkit.image_processing.utils import load_image
from kernelkit.models import BoundaryPolicy, ProcessingConfig


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "config.json"


class TestApplyArguments:
    def test_canny_overrides(self):
        args = build_parser().parse_args(
            ["canny", "in.png", "out.png", "--low", "0.2", "--high", "0.5", "--size", "3"]
        )
        config = apply_arguments(ProcessingConfig(), args)
        assert config.canny.low_threshold_ratio == 0.2
        assert config.canny.high_threshold_ratio == 0.5
        assert config.canny.gaussian.size == 3
        # the standalone blur settings are untouched
        assert config.gaussian.size == 5

    def test_segment_palette(self):
        args = build_parser().parse_args(
            ["segment", "in.png", "out.png", "--palette", "[[0,0,0],[255,255,255]]", "--seed", "3"]
        )
        config = apply_arguments(ProcessingConfig(), args)
        assert config.segmentation.cluster_count == 2
        assert config.segmentation.random_state == 3

    def test_convolve_options(self):
        args = build_parser().parse_args(
            ["convolve", "in.png", "out.png", "--kernel", "[[1]]", "--boundary", "pass_through",
             "--repeat", "2"]
        )
        config = apply_arguments(ProcessingConfig(), args)
        assert config.convolution.boundary is BoundaryPolicy.PASS_THROUGH
        assert config.convolution.repeat == 2
        assert config.convolution.normalize is False


class TestMain:
    def test_canny(self, tmp_path, config_path, three_color_png):
        out = tmp_path / "edges.png"
        code = main(
            ["--config", str(config_path), "canny", str(three_color_png), str(out),
             "--low", "0.2", "--high", "0.5"]
        )
        assert code == 0
        assert out.exists()
        assert not config_path.exists()

    def test_invalid_ratio_fails(self, tmp_path, config_path, three_color_png, capsys):
        code = main(
            ["--config", str(config_path), "canny", str(three_color_png),
             str(tmp_path / "edges.png"), "--low", "0.9", "--high", "0.5"]
        )
        assert code == 1
        assert "error" in capsys.readouterr().err

    def test_missing_input_fails(self, tmp_path, config_path):
        code = main(
            ["--config", str(config_path), "blur", str(tmp_path / "nope.png"),
             str(tmp_path / "out.png")]
        )
        assert code == 1

    def test_identity_kernel_keeps_image(self, tmp_path, config_path, three_color_png):
        out = tmp_path / "same.png"
        code = main(
            ["--config", str(config_path), "convolve", str(three_color_png), str(out),
             "--kernel", "[[1]]"]
        )
        assert code == 0
        assert load_image(out, 3) == load_image(three_color_png, 3)

    def test_even_kernel_fails(self, tmp_path, config_path, three_color_png):
        code = main(
            ["--config", str(config_path), "convolve", str(three_color_png),
             str(tmp_path / "out.png"), "--kernel", "[[1, 1], [1, 1]]"]
        )
        assert code == 1

    def test_segment_prints_palette(self, tmp_path, config_path, three_color_png, capsys):
        out = tmp_path / "segments.png"
        code = main(
            ["--config", str(config_path), "segment", str(three_color_png), str(out),
             "--colors", "3", "--seed", "1"]
        )
        assert code == 0
        assert "Palette:" in capsys.readouterr().out
        pixels = load_image(out, 3).samples.reshape(-1, 3)
        assert len(np.unique(pixels, axis=0)) == 3

    def test_save_config(self, tmp_path, config_path, three_color_png):
        code = main(
            ["--config", str(config_path), "--save-config", "compress",
             str(three_color_png), str(tmp_path / "small.png"), "--depth", "1", "--seed", "2"]
        )
        assert code == 0
        saved = json.loads(config_path.read_text())
        assert saved["color_depth"] == 1
        assert saved["segmentation"]["random_state"] == 2

    def test_saved_config_is_used(self, tmp_path, config_path, three_color_png):
        config_path.write_text(json.dumps({"canny": {"low_threshold_ratio": 0.95}}))
        # low >= default high makes the stored file invalid, so defaults apply
        code = main(
            ["--config", str(config_path), "canny", str(three_color_png),
             str(tmp_path / "edges.png")]
        )
        assert code == 0
