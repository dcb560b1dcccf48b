"""SVG document parser — facade over lxml's recovering XML parser.

Converts raw SVG markup → VectorDocument with canonical canvas dimensions.
Malformed markup is recovered where possible; markup lxml cannot recover at
all still yields a VectorDocument (with ``root=None``) so extraction can fall
back to the whole-document layer.
"""

from __future__ import annotations

import logging
import re

from lxml import etree

from svg2psd.models.document import VectorDocument

logger = logging.getLogger(__name__)

SVG_NS = "http://www.w3.org/2000/svg"
XLINK_NS = "http://www.w3.org/1999/xlink"

# Regexes for the raw <svg ...> open tag, used when lxml recovers nothing
_SVG_OPEN_RE = re.compile(r"<svg\b[^>]*>", re.IGNORECASE)
_VIEWBOX_RE = re.compile(r"""viewBox\s*=\s*["']([^"']+)["']""")
_WIDTH_RE = re.compile(r"""\swidth\s*=\s*["']([^"']*?)["']""")
_HEIGHT_RE = re.compile(r"""\sheight\s*=\s*["']([^"']*?)["']""")

_PROLOG_RE = re.compile(r"<\?xml[^>]*\?>|<!DOCTYPE[^>\[]*(\[[^\]]*\])?\s*>", re.IGNORECASE)
_LENGTH_RE = re.compile(r"^([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)\s*(px|pt)?$")
_VIEWBOX_SPLIT_RE = re.compile(r"[\s,]+")


def _make_parser() -> etree.XMLParser:
    return etree.XMLParser(
        recover=True,
        remove_comments=True,
        remove_pis=True,
        resolve_entities=False,
        no_network=True,
        huge_tree=True,
    )


def local_name(element: etree._Element) -> str:
    """Tag name without namespace; empty for comments and processing instructions."""
    if not isinstance(element.tag, str):
        return ""
    return etree.QName(element).localname


def strip_prolog(markup: str) -> str:
    """Remove XML declarations and doctypes so markup can be embedded in another document."""
    return _PROLOG_RE.sub("", markup).strip()


def _svg_slice(markup: str) -> str:
    """Trim anything before the first <svg and after the last </svg>."""
    lowered = markup.lower()
    start = lowered.find("<svg")
    if start < 0:
        return markup
    end = lowered.rfind("</svg>")
    if end < start:
        return markup[start:]
    return markup[start : end + len("</svg>")]


def parse_tree(markup: str) -> etree._Element | None:
    """Recover an element tree rooted at the outermost <svg>, or None."""
    text = strip_prolog(_svg_slice(markup))
    if not text:
        return None
    try:
        root = etree.fromstring(text, _make_parser())
    except (etree.XMLSyntaxError, ValueError) as e:
        logger.debug("SVG markup not recoverable: %s", e)
        return None
    if root is None:
        return None
    if local_name(root) != "svg":
        root = next((el for el in root.iter() if local_name(el) == "svg"), None)
    return root


def parse_length(value: str | None) -> float | None:
    """Parse a user-unit length ("120", "120px", "90pt"); percentages and other units → None."""
    if not value:
        return None
    match = _LENGTH_RE.match(value.strip())
    if not match:
        return None
    number = float(match.group(1))
    return number if number > 0 else None


def parse_viewbox(value: str | None) -> tuple[float, float, float, float] | None:
    if not value:
        return None
    parts = [p for p in _VIEWBOX_SPLIT_RE.split(value.strip()) if p]
    if len(parts) < 4:
        return None
    try:
        min_x, min_y, width, height = (float(p) for p in parts[:4])
    except ValueError:
        return None
    if width <= 0 or height <= 0:
        return None
    return (min_x, min_y, width, height)


def resolve_dimensions(
    viewbox: str | None,
    width: str | None,
    height: str | None,
    fallback: float,
) -> tuple[float, float]:
    """viewBox wins; otherwise explicit width/height; otherwise the fallback size."""
    vb = parse_viewbox(viewbox)
    if vb is not None:
        return vb[2], vb[3]
    w = parse_length(width)
    h = parse_length(height)
    return (w if w is not None else fallback, h if h is not None else fallback)


def clamp_canvas(value: float, max_size: int) -> int:
    return max(1, min(max_size, int(round(value))))


def parse_document(
    markup: str,
    fallback_size: int = 300,
    max_size: int = 30000,
) -> VectorDocument:
    """Parse raw SVG markup into a VectorDocument."""
    root = parse_tree(markup)

    if root is not None:
        width, height = resolve_dimensions(
            root.get("viewBox"), root.get("width"), root.get("height"), fallback_size
        )
    else:
        open_tag = _SVG_OPEN_RE.search(markup)
        tag = open_tag.group(0) if open_tag else ""
        vb = _VIEWBOX_RE.search(tag)
        w = _WIDTH_RE.search(tag)
        h = _HEIGHT_RE.search(tag)
        width, height = resolve_dimensions(
            vb.group(1) if vb else None,
            w.group(1) if w else None,
            h.group(1) if h else None,
            fallback_size,
        )

    return VectorDocument(
        markup=markup,
        width=clamp_canvas(width, max_size),
        height=clamp_canvas(height, max_size),
        root=root,
    )
