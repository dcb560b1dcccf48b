"""Conversion data model — documents, layer descriptors, raster layers.

VectorDocument is created per request and discarded after extraction.
LayerDescriptor and RasterLayer live for the duration of one conversion run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np
from numpy.typing import NDArray

FULL_DOCUMENT_LAYER = "full_document"


@dataclass(frozen=True)
class VectorDocument:
    """Raw SVG markup plus its resolved canvas dimensions."""

    markup: str
    width: int
    height: int
    # Recovered lxml root element; None when the markup could not be parsed at all
    root: Any = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class LayerDescriptor:
    """A named fragment of the source document destined to become one raster layer."""

    name: str
    fragment: str

    @property
    def is_whole_document(self) -> bool:
        return self.name == FULL_DOCUMENT_LAYER


@dataclass(frozen=True)
class SharedDefinitions:
    """Markup every isolated layer needs to resolve cross-references and inherited style."""

    # Inner markup of <defs> blocks (gradients, patterns, symbols, ...)
    markup: str = ""
    # Top-level <style> elements, serialized
    styles: str = ""
    # Presentation attributes of the root <svg> element (viewBox, fill, stroke, ...)
    root_attributes: dict[str, str] = field(default_factory=dict)


@dataclass
class RasterLayer:
    """Result of rasterizing one LayerDescriptor."""

    name: str
    # HxWx4 RGBA, uint8
    pixels: NDArray[np.uint8]

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])


@dataclass
class LayeredDocument:
    """In-memory layered image, layers ordered top-most first."""

    width: int
    height: int
    layers: list[RasterLayer] = field(default_factory=list)
    color_model: str = "RGB"
    channels: int = 4
    bits_per_channel: int = 8

    @property
    def num_layers(self) -> int:
        return len(self.layers)
