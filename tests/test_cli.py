"""Tests for the command line interface."""
import pytest
from PIL import Image

from clustervec.cli import config_from_args, create_parser, main
from clustervec.types import ColorMode, Hierarchical, PathSimplifyMode

from conftest import path_fills, solid


@pytest.fixture
def input_png(tmp_path):
    path = tmp_path / "in.png"
    img = solid(8, 8, (255, 255, 255))
    img[2:6, 2:6] = (0, 0, 0)
    Image.fromarray(img).save(path)
    return path


class TestArguments:
    """Test option parsing."""

    def test_options_map_to_config(self):
        args = create_parser().parse_args([
            "-i", "a.png", "-o", "b.svg",
            "--colormode", "binary",
            "--hierarchical", "cutout",
            "--mode", "polygon",
            "-f", "2", "-p", "5", "-g", "0",
            "-c", "90", "-l", "5.5", "-s", "30",
            "--path_precision", "3",
        ])

        config = config_from_args(args)

        assert config.color_mode == ColorMode.BINARY
        assert config.hierarchical == Hierarchical.CUTOUT
        assert config.mode == PathSimplifyMode.POLYGON
        assert (config.filter_speckle, config.color_precision, config.layer_difference) == (2, 5, 0)
        assert (config.corner_threshold, config.length_threshold, config.splice_threshold) == (90, 5.5, 30)
        assert config.path_precision == 3

    def test_preset_with_override(self):
        args = create_parser().parse_args(["-i", "a", "-o", "b", "--preset", "photo", "-f", "2"])

        config = config_from_args(args)

        assert config.layer_difference == 48
        assert config.filter_speckle == 2

    def test_invalid_value_is_usage_error(self):
        with pytest.raises(SystemExit) as excinfo:
            main(["-i", "a.png", "-o", "b.svg", "-p", "12"])
        assert excinfo.value.code == 2


class TestMain:
    """Test process-level behavior."""

    def test_success(self, input_png, tmp_path, capsys):
        output = tmp_path / "out.svg"

        assert main(["-i", str(input_png), "-o", str(output), "-f", "0"]) == 0

        assert "Conversion successful." in capsys.readouterr().out
        assert len(path_fills(output.read_text(encoding="utf-8"))) == 2

    def test_binary_preset(self, input_png, tmp_path):
        output = tmp_path / "out.svg"

        assert main(["-i", str(input_png), "-o", str(output), "--preset", "bw"]) == 0

        assert path_fills(output.read_text(encoding="utf-8")) == ["#000000"]

    def test_missing_input_fails(self, tmp_path, capsys):
        code = main(["-i", str(tmp_path / "nope.png"), "-o", str(tmp_path / "out.svg")])

        assert code == 1
        assert "Conversion failed with error message" in capsys.readouterr().err
