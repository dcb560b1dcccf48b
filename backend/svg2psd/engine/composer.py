"""Document composer — stack raster layers into a PSD file.

Layers arrive in extraction (paint) order, bottom-most first. The
LayeredDocument keeps them top-most first, the way a layers panel lists them;
psd-tools groups are ordered bottom → top, so records are appended in reverse.
"""

from __future__ import annotations

import io
import logging
import os
import tempfile
from pathlib import Path

from psd_tools import PSDImage
from psd_tools.api.layers import PixelLayer
from psd_tools.constants import BlendMode, Compression

from svg2psd.errors import CompositionError
from svg2psd.models.document import LayeredDocument, RasterLayer
from svg2psd.utils.imaging import solid_fill, to_image

logger = logging.getLogger(__name__)

BACKGROUND_LAYER = "background"

# Pascal-string limit for PSD layer names
_MAX_NAME_LENGTH = 255


def build_document(
    layers: list[RasterLayer],
    width: int,
    height: int,
    background_color: str | None = None,
) -> LayeredDocument:
    """Reverse paint-ordered layers into a top-first LayeredDocument."""
    if not layers:
        raise CompositionError("No layers could be processed successfully")

    stack = list(reversed(layers))
    if background_color:
        stack.append(RasterLayer(name=BACKGROUND_LAYER, pixels=solid_fill(width, height, background_color)))
    return LayeredDocument(width=width, height=height, layers=stack)


def to_psd(document: LayeredDocument) -> PSDImage:
    """Build a psd-tools image: RGB, 4 channels, 8 bits, one normal pixel layer per raster."""
    psd = PSDImage.new("RGBA", (document.width, document.height), depth=document.bits_per_channel)
    size = (document.width, document.height)

    for raster in reversed(document.layers):
        image = to_image(raster.pixels)
        if image.size != size:
            # Cropping outside the source pads with transparent pixels
            image = image.crop((0, 0, document.width, document.height))
        name = raster.name[:_MAX_NAME_LENGTH]
        layer = PixelLayer.frompil(image, psd, name=name, compression=Compression.RLE)
        layer.name = name
        layer.opacity = 255
        layer.blend_mode = BlendMode.NORMAL
    return psd


def serialize_document(document: LayeredDocument) -> bytes:
    """Serialize a LayeredDocument to PSD bytes."""
    buffer = io.BytesIO()
    try:
        to_psd(document).save(buffer)
    except Exception as e:
        raise CompositionError(f"PSD serialization failed: {e}") from e
    return buffer.getvalue()


def write_temp_file(data: bytes, temp_dir: str | None = None, prefix: str = "svg-to-psd-") -> Path:
    """Write ``data`` to a uniquely named .psd file the caller owns."""
    fd, name = tempfile.mkstemp(suffix=".psd", prefix=prefix, dir=temp_dir)
    path = Path(name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
    except OSError as e:
        path.unlink(missing_ok=True)
        raise CompositionError(f"Could not write {path}: {e}") from e
    return path


def compose(
    layers: list[RasterLayer],
    width: int,
    height: int,
    background_color: str | None = None,
    temp_dir: str | None = None,
    prefix: str = "svg-to-psd-",
) -> Path:
    """Compose raster layers into a PSD temp file and return its path.

    Raises:
        CompositionError: ``layers`` is empty or the file could not be produced.
            No file is left behind in that case.
    """
    document = build_document(layers, width, height, background_color)
    data = serialize_document(document)
    path = write_temp_file(data, temp_dir, prefix)
    logger.info(
        "Composed PSD %dx%d with %d layers: %s",
        document.width,
        document.height,
        document.num_layers,
        path,
    )
    return path
