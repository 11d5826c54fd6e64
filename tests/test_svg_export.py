"""Tests for SVG document assembly."""
import pytest

from clustervec.svg_export import SvgFile, format_number, write_svg
from clustervec.types import (
    BezierCurve,
    Color,
    CompoundPath,
    OutputWriteError,
    Point,
    SubPath,
)

from conftest import SVG_NS, parse_svg


def square_path(offset: float = 0.0) -> CompoundPath:
    pts = [(0, 0), (4, 0), (4, 4), (0, 4)]
    return CompoundPath([SubPath(points=[Point(x + offset, y + offset) for x, y in pts])])


class TestFormatNumber:
    """Test coordinate formatting."""

    def test_precision(self):
        assert format_number(1.23456, 2) == "1.23"
        assert format_number(1.5, 0) == "2"

    def test_strips_trailing_zeros(self):
        assert format_number(2.0, 3) == "2"
        assert format_number(2.50, 3) == "2.5"

    def test_negative_zero(self):
        assert format_number(-0.0001, 2) == "0"

    def test_no_precision(self):
        assert format_number(0.125, None) == "0.125"


class TestSvgFile:
    """Test SvgFile serialization."""

    def test_canvas_size(self):
        """Canvas matches the given width and height."""
        root = parse_svg(str(SvgFile(7, 3)))

        assert root.tag == f"{SVG_NS}svg"
        assert root.get("width") == "7"
        assert root.get("height") == "3"
        assert list(root) == []

    def test_paint_order(self):
        """Paths serialize in insertion order."""
        svg = SvgFile(10, 10)
        svg.add_path(square_path(), Color(255, 0, 0))
        svg.add_path(square_path(1), Color(0, 0, 255))

        fills = [p.get("fill") for p in parse_svg(str(svg)).iter(f"{SVG_NS}path")]
        assert fills == ["#FF0000", "#0000FF"]
        assert len(svg) == 2

    def test_polyline_data(self):
        """Polygons use move, line and close commands."""
        svg = SvgFile(10, 10, path_precision=1)
        svg.add_path(square_path(0.25), Color(0, 0, 0))

        path = next(parse_svg(str(svg)).iter(f"{SVG_NS}path"))
        assert path.get("d") == "M0.2,0.2 L4.2,0.2 L4.2,4.2 L0.2,4.2 Z"

    def test_spline_data(self):
        """Splines use cubic commands."""
        curve = BezierCurve(Point(0, 0), Point(1, 0), Point(2, 1), Point(2, 2))
        back = BezierCurve(Point(2, 2), Point(2, 2), Point(0, 0), Point(0, 0))
        path = CompoundPath([SubPath(curves=[curve, back])])

        svg = SvgFile(4, 4)
        svg.add_path(path, Color(0, 0, 0))

        d = next(parse_svg(str(svg)).iter(f"{SVG_NS}path")).get("d")
        assert d == "M0,0 C1,0 2,1 2,2 C2,2 0,0 0,0 Z"

    def test_compound_path_single_element(self):
        """Holes share the element of their outer boundary."""
        path = square_path()
        path.add(square_path(1).paths[0])

        svg = SvgFile(10, 10)
        svg.add_path(path, Color(0, 0, 0))

        paths = list(parse_svg(str(svg)).iter(f"{SVG_NS}path"))
        assert len(paths) == 1
        assert paths[0].get("d").count("M") == 2


class TestWriteSvg:
    """Test writing documents to disk."""

    def test_write(self, tmp_path):
        out = tmp_path / "out.svg"
        write_svg(SvgFile(2, 2), out)

        assert parse_svg(out.read_text(encoding="utf-8")).get("width") == "2"

    def test_unwritable_destination(self, tmp_path):
        with pytest.raises(OutputWriteError):
            write_svg(SvgFile(2, 2), tmp_path / "missing" / "out.svg")
