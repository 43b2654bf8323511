"""SVG export for posterized layers."""
from pathlib import Path
from typing import List, Optional, Union
from xml.sax.saxutils import quoteattr

from posterizer.types import Layer, PosterizedDocument


def path_element(layer: Layer, fill_color: Optional[str] = None) -> str:
    """
    Convert a layer to an SVG path element.

    Args:
        layer: Layer with path data and opacity
        fill_color: Fill color, omitted when None

    Returns:
        Path element string, empty when the layer has no path data
    """
    if not layer.path_data:
        return ""

    fill = f' fill={quoteattr(fill_color)}' if fill_color is not None else ""
    return (
        f'<path d="{layer.path_data}"{fill} '
        f'fill-opacity="{layer.opacity_string}" fill-rule="evenodd"/>'
    )


def _path_elements(document: PosterizedDocument, with_fill: bool) -> List[str]:
    fill_color = document.fill_color if with_fill else None
    elements = [path_element(layer, fill_color) for layer in document.layers]
    return [e for e in elements if e]


def generate_svg(document: PosterizedDocument) -> str:
    """
    Generate a standalone SVG document.

    Args:
        document: Posterized layers and canvas size

    Returns:
        Complete SVG string
    """
    width, height = document.width, document.height
    elements = []

    if document.has_background:
        elements.append(
            f'<rect x="0" y="0" width="100%" height="100%" '
            f'fill={quoteattr(document.background)}/>'
        )
    elements.extend(_path_elements(document, with_fill=True))

    svg_content = '\n  '.join(elements)

    svg = f'''<svg xmlns="http://www.w3.org/2000/svg" width="{width}" height="{height}" viewBox="0 0 {width} {height}" version="1.1">
  {svg_content}
</svg>'''

    return svg


def generate_symbol(document: PosterizedDocument, symbol_id: str) -> str:
    """
    Generate a <symbol> fragment for embedding.

    The symbol has a viewBox but no size, background or fill color, so
    the embedding document controls all three.
    """
    width, height = document.width, document.height
    content = ''.join(_path_elements(document, with_fill=False))
    return f'<symbol viewBox="0 0 {width} {height}" id={quoteattr(symbol_id)}>{content}</symbol>'


def save_svg(svg_string: str, output_path: Union[str, Path]) -> None:
    """
    Save SVG string to file.

    Args:
        svg_string: SVG content
        output_path: Output file path
    """
    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(svg_string)
