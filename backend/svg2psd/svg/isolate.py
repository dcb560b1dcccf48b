"""Build standalone single-layer SVG documents for rasterization."""

from __future__ import annotations

from html import escape

from lxml import etree

from svg2psd.models.document import LayerDescriptor, SharedDefinitions
from svg2psd.svg.parser import SVG_NS, XLINK_NS, parse_tree, resolve_dimensions, strip_prolog


def _format_attrs(attrs: dict[str, str]) -> str:
    return " ".join(f'{key}="{escape(value, quote=True)}"' for key, value in attrs.items())


def build_isolated_svg(
    layer: LayerDescriptor,
    definitions: SharedDefinitions,
    width: int,
    height: int,
    fallback_size: int = 300,
) -> str:
    """Wrap one layer fragment (plus shared definitions) in an SVG sized to the canvas."""
    if layer.is_whole_document:
        return resize_document(layer.fragment, width, height, fallback_size)

    attrs = {"xmlns": SVG_NS, "xmlns:xlink": XLINK_NS}
    attrs.update(definitions.root_attributes)
    attrs["width"] = str(width)
    attrs["height"] = str(height)

    lines = [f"<svg {_format_attrs(attrs)}>"]
    if definitions.markup:
        lines.append(f"<defs>{definitions.markup}</defs>")
    if definitions.styles:
        lines.append(definitions.styles)
    lines.append(layer.fragment)
    lines.append("</svg>")
    return "\n".join(lines)


def resize_document(markup: str, width: int, height: int, fallback_size: int = 300) -> str:
    """Re-size a complete SVG document to the canvas, keeping its coordinate system."""
    root = parse_tree(markup)
    if root is None:
        return strip_prolog(markup)

    if root.get("viewBox") is None:
        w, h = resolve_dimensions(None, root.get("width"), root.get("height"), fallback_size)
        root.set("viewBox", f"0 0 {w:g} {h:g}")
    root.set("width", str(width))
    root.set("height", str(height))

    text = etree.tostring(root, encoding="unicode")
    if etree.QName(root).namespace is None:
        text = text.replace("<svg", f'<svg xmlns="{SVG_NS}"', 1)
    return text
