"""Layer extraction — split one SVG document into named, independently renderable fragments.

Extraction is an ordered fallback cascade; each tier runs only when every
earlier tier produced nothing:

1. Grouped: primitives inside top-level <g> containers.
2. Identified: primitives anywhere that carry an id or class.
3. Unidentified: every primitive, regardless of attributes.
4. Whole document: a single ``full_document`` layer holding the entire input.

Descriptor order is document order, which is paint order (bottom → top).
"""

from __future__ import annotations

import copy
import logging
import re
import warnings
from collections.abc import Iterator

from lxml import etree

from svg2psd.errors import ParseDegenerate
from svg2psd.models.document import (
    FULL_DOCUMENT_LAYER,
    LayerDescriptor,
    SharedDefinitions,
    VectorDocument,
)
from svg2psd.svg.parser import local_name

logger = logging.getLogger(__name__)

# Drawable primitives, in the order used for "Layer_<typeIndex>_<n>" names
PRIMITIVES = ("path", "rect", "circle", "ellipse", "line", "polyline", "polygon", "text")
_PRIMITIVE_INDEX = {tag: i for i, tag in enumerate(PRIMITIVES)}

# Containers whose content is never painted directly (compared lower-cased)
_NON_RENDERED = {
    "defs",
    "clippath",
    "mask",
    "pattern",
    "symbol",
    "marker",
    "lineargradient",
    "radialgradient",
    "filter",
    "style",
    "script",
    "title",
    "desc",
    "metadata",
}

# Ancestors re-created around an isolated fragment so inherited attributes survive
_CONTEXT_CONTAINERS = {"g", "a"}

# Root attributes that describe the viewport rather than the drawing
_VIEWPORT_ATTRS = {"width", "height", "x", "y"}

_DEFS_RE = re.compile(r"<defs[^>]*>([\s\S]*?)</defs>", re.IGNORECASE)


def _tag(element: etree._Element) -> str:
    return local_name(element).lower()


def _iter_primitives(parent: etree._Element) -> Iterator[etree._Element]:
    """Drawable primitives under ``parent`` in document order, skipping non-rendered subtrees."""
    for child in parent:
        tag = _tag(child)
        if not tag or tag in _NON_RENDERED:
            continue
        if tag in _PRIMITIVE_INDEX:
            yield child
            continue
        yield from _iter_primitives(child)


def _iter_top_level_groups(parent: etree._Element) -> Iterator[etree._Element]:
    """<g> elements with no <g> ancestor."""
    for child in parent:
        tag = _tag(child)
        if not tag or tag in _NON_RENDERED:
            continue
        if tag == "g":
            yield child
            continue
        if tag in _PRIMITIVE_INDEX:
            continue
        yield from _iter_top_level_groups(child)


def _author_name(element: etree._Element) -> str | None:
    for attr in ("id", "class"):
        value = element.get(attr)
        if value is not None and value.strip():
            return value.strip()
    return None


def _serialize_fragment(element: etree._Element, root: etree._Element) -> str:
    """Serialize ``element`` wrapped in empty shells of its <g>/<a> ancestors."""
    fragment = copy.deepcopy(element)
    fragment.tail = None
    for ancestor in element.iterancestors():
        if ancestor is root:
            break
        if _tag(ancestor) not in _CONTEXT_CONTAINERS:
            continue
        shell = etree.Element(ancestor.tag, attrib=dict(ancestor.attrib), nsmap=ancestor.nsmap)
        shell.append(fragment)
        fragment = shell
    return etree.tostring(fragment, encoding="unicode", with_tail=False)


def _describe(name: str, element: etree._Element, root: etree._Element) -> LayerDescriptor | None:
    try:
        return LayerDescriptor(name=name, fragment=_serialize_fragment(element, root))
    except Exception as e:
        logger.debug("Skipping fragment %s: %s", name, e)
        return None


# ---------------------------------------------------------------------------
# Tiers
# ---------------------------------------------------------------------------


def _extract_grouped(root: etree._Element) -> list[LayerDescriptor]:
    layers: list[LayerDescriptor] = []
    for group_index, group in enumerate(_iter_top_level_groups(root)):
        per_type: dict[str, int] = {}
        for element in _iter_primitives(group):
            tag = _tag(element)
            element_index = per_type.get(tag, 0)
            per_type[tag] = element_index + 1
            name = _author_name(element) or f"{tag}_{group_index}_{element_index}"
            descriptor = _describe(name, element, root)
            if descriptor is not None:
                layers.append(descriptor)
    return layers


def _extract_identified(root: etree._Element) -> list[LayerDescriptor]:
    layers: list[LayerDescriptor] = []
    fallback_counter = 0
    for element in _iter_primitives(root):
        if element.get("id") is None and element.get("class") is None:
            continue
        name = _author_name(element)
        if name is None:
            name = f"Layer_{_PRIMITIVE_INDEX[_tag(element)]}_{fallback_counter}"
            fallback_counter += 1
        descriptor = _describe(name, element, root)
        if descriptor is not None:
            layers.append(descriptor)
    return layers


def _extract_unidentified(root: etree._Element) -> list[LayerDescriptor]:
    layers: list[LayerDescriptor] = []
    per_type: dict[str, int] = {}
    for element in _iter_primitives(root):
        tag = _tag(element)
        index = per_type.get(tag, 0)
        per_type[tag] = index + 1
        descriptor = _describe(f"{tag}_{index}", element, root)
        if descriptor is not None:
            layers.append(descriptor)
    return layers


_TIERS = (
    ("grouped", _extract_grouped),
    ("identified", _extract_identified),
    ("unidentified", _extract_unidentified),
)


def extract_layers(document: VectorDocument) -> list[LayerDescriptor]:
    """Split a document into layer descriptors, bottom-most first. Never raises, never empty."""
    if document.root is not None:
        for tier_name, tier in _TIERS:
            try:
                layers = tier(document.root)
            except Exception as e:
                logger.warning("Layer extraction tier %s failed: %s", tier_name, e)
                continue
            if layers:
                logger.info("Extracted %d layers (%s tier)", len(layers), tier_name)
                return layers

    warnings.warn(
        "No drawable elements found; using the whole document as a single layer",
        ParseDegenerate,
        stacklevel=2,
    )
    return [LayerDescriptor(name=FULL_DOCUMENT_LAYER, fragment=document.markup)]


def extract_shared_definitions(document: VectorDocument) -> SharedDefinitions:
    """Collect <defs> content, <style> blocks and root presentation attributes."""
    root = document.root
    if root is None:
        match = _DEFS_RE.search(document.markup)
        return SharedDefinitions(
            markup=match.group(1).strip() if match else "",
            root_attributes={"viewBox": f"0 0 {document.width} {document.height}"},
        )

    defs_parts: list[str] = []
    style_parts: list[str] = []
    for element in root.iter():
        tag = _tag(element)
        if tag == "defs":
            defs_parts.extend(
                etree.tostring(child, encoding="unicode", with_tail=False)
                for child in element
                if isinstance(child.tag, str)
            )
        elif tag == "style" and not any(_tag(a) == "defs" for a in element.iterancestors()):
            style_parts.append(etree.tostring(element, encoding="unicode", with_tail=False))

    root_attributes = {
        key: value
        for key, value in root.attrib.items()
        if not key.startswith("{") and key not in _VIEWPORT_ATTRS
    }
    # Layers are scaled from document coordinates onto the canvas
    root_attributes.setdefault("viewBox", f"0 0 {document.width} {document.height}")

    return SharedDefinitions(
        markup="\n".join(defs_parts),
        styles="\n".join(style_parts),
        root_attributes=root_attributes,
    )
