"""Tests for the command line interface."""
import argparse
import xml.etree.ElementTree as ET

import numpy as np
import pytest
from PIL import Image

from posterizer.cli import create_parser, main, parse_steps, parse_threshold
from posterizer.types import AUTO


class TestParsers:

    def test_parse_threshold(self):
        assert parse_threshold("auto") == AUTO
        assert parse_threshold("120") == 120
        with pytest.raises(argparse.ArgumentTypeError):
            parse_threshold("dark")

    def test_parse_steps(self):
        assert parse_steps("auto") == AUTO
        assert parse_steps("5") == 5
        assert parse_steps("20,60, 80") == [20, 60, 80]
        with pytest.raises(argparse.ArgumentTypeError):
            parse_steps("a,b")

    def test_defaults(self):
        args = create_parser().parse_args(["in.png"])

        assert args.threshold == 142
        assert args.steps == AUTO
        assert args.fill == "dominant"
        assert args.ranges == "auto"
        assert not args.white_on_black
        assert args.channel == "luminance"


class TestMain:
    """Test the entry point."""

    def test_writes_svg(self, png_path, tmp_path, capsys):
        output = tmp_path / "out.svg"

        assert main([str(png_path), "-o", str(output), "--steps", "3"]) == 0

        ET.fromstring(output.read_text(encoding="utf-8"))
        assert "Layers:" in capsys.readouterr().out

    def test_default_output_path(self, png_path):
        assert main([str(png_path), "--threshold", "auto"]) == 0
        assert png_path.with_suffix(".svg").exists()

    def test_explicit_steps(self, png_path, tmp_path):
        output = tmp_path / "out.svg"
        assert main([str(png_path), "-o", str(output), "--steps", "20,60,100"]) == 0

    def test_channel(self, tmp_path):
        image = np.full((20, 20, 3), 255, dtype=np.uint8)
        image[6:14, 6:14] = [0, 255, 255]
        source = tmp_path / "cyan.png"
        Image.fromarray(image).save(source)
        output = tmp_path / "cyan.svg"

        assert main([str(source), "-o", str(output), "--threshold", "128", "--channel", "r"]) == 0

        root = ET.fromstring(output.read_text(encoding="utf-8"))
        assert len(root.findall("{http://www.w3.org/2000/svg}path")) == 1

    def test_missing_input(self, tmp_path, capsys):
        assert main([str(tmp_path / "missing.png")]) == 1
        assert "not found" in capsys.readouterr().err

    def test_invalid_config(self, png_path, capsys):
        assert main([str(png_path), "--steps", "0"]) == 1
        assert "Error" in capsys.readouterr().err

    def test_undecodable_input(self, tmp_path):
        path = tmp_path / "bad.png"
        path.write_bytes(b"nope")
        assert main([str(path)]) == 1
