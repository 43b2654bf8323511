"""Tests for SVG export."""
import xml.etree.ElementTree as ET

from posterizer.svg_export import generate_svg, generate_symbol, path_element, save_svg
from posterizer.types import Layer, PosterizedDocument

SVG_NS = "{http://www.w3.org/2000/svg}"


def make_document(**kwargs):
    layers = [
        Layer(threshold=200, opacity=0.5, path_data="M0,0 L4,0 4,4 Z"),
        Layer(threshold=100, opacity=0.25, path_data=""),
        Layer(threshold=50, opacity=1.0, path_data="M1,1 L2,1 2,2 Z"),
    ]
    return PosterizedDocument(width=4, height=3, layers=layers, **kwargs)


class TestPathElement:

    def test_attributes(self):
        element = path_element(Layer(200, 0.5, "M0,0 L1,0 1,1 Z"), "black")
        assert element == (
            '<path d="M0,0 L1,0 1,1 Z" fill="black" '
            'fill-opacity="0.500" fill-rule="evenodd"/>'
        )

    def test_no_fill(self):
        element = path_element(Layer(200, 0.5, "M0,0 L1,0 1,1 Z"))
        assert "fill=" not in element
        assert 'fill-opacity="0.500"' in element

    def test_empty_path(self):
        assert path_element(Layer(200, 0.5, "")) == ""


class TestGenerateSvg:
    """Test standalone documents."""

    def test_parses(self):
        root = ET.fromstring(generate_svg(make_document()))

        assert root.tag == f"{SVG_NS}svg"
        assert root.get("width") == "4"
        assert root.get("height") == "3"
        assert root.get("viewBox") == "0 0 4 3"

    def test_empty_paths_omitted(self):
        root = ET.fromstring(generate_svg(make_document()))
        paths = root.findall(f"{SVG_NS}path")

        assert [p.get("fill-opacity") for p in paths] == ["0.500", "1.000"]
        assert all(p.get("fill") == "black" for p in paths)

    def test_transparent_background(self):
        root = ET.fromstring(generate_svg(make_document()))
        assert root.find(f"{SVG_NS}rect") is None

    def test_background(self):
        root = ET.fromstring(generate_svg(make_document(background="#ffeedd")))
        rect = root.find(f"{SVG_NS}rect")

        assert rect is not None
        assert rect.get("fill") == "#ffeedd"
        assert list(root)[0] is rect

    def test_fill_color(self):
        svg = generate_svg(make_document(fill_color="white"))
        assert 'fill="white"' in svg

    def test_no_layers(self):
        root = ET.fromstring(generate_svg(PosterizedDocument(width=2, height=2)))
        assert list(root) == []


class TestGenerateSymbol:

    def test_symbol(self):
        symbol = generate_symbol(make_document(background="red"), "poster")
        root = ET.fromstring(symbol)

        assert symbol.startswith("<symbol")
        assert root.get("id") == "poster"
        assert root.get("viewBox") == "0 0 4 3"
        assert root.get("width") is None
        assert root.find("rect") is None
        assert [p.get("fill") for p in root.findall("path")] == [None, None]


def test_save_svg(tmp_path):
    path = tmp_path / "out.svg"
    save_svg("<svg/>", path)
    assert path.read_text(encoding="utf-8") == "<svg/>"
