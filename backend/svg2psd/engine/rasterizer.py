"""Layer rasterizer — one descriptor + one borrowed handle → one RGBA buffer."""

from __future__ import annotations

import asyncio
import logging
import time

import numpy as np
from numpy.typing import NDArray
from PIL import Image

from svg2psd.engine.backend import RenderingHandle
from svg2psd.errors import RenderError
from svg2psd.models.document import LayerDescriptor, SharedDefinitions
from svg2psd.svg.isolate import build_isolated_svg
from svg2psd.utils.imaging import decode_png

logger = logging.getLogger(__name__)


async def rasterize_layer(
    layer: LayerDescriptor,
    definitions: SharedDefinitions,
    width: int,
    height: int,
    handle: RenderingHandle,
    timeout_ms: int = 5000,
    fallback_size: int = 300,
) -> NDArray[np.uint8]:
    """Render ``layer`` alone onto a transparent ``width``×``height`` canvas.

    Args:
        layer: Fragment to render.
        definitions: Shared <defs>, styles and root attributes of the source document.
        width: Canvas width in pixels.
        height: Canvas height in pixels.
        handle: Borrowed rendering handle; not released here.
        timeout_ms: Budget for the whole render, load through snapshot.
        fallback_size: Size assumed for whole-document layers without dimensions.

    Returns:
        HxWx4 RGBA array. A fragment with no visible geometry yields a fully
        transparent buffer.

    Raises:
        RenderError: the engine timed out, failed, or returned output Pillow refuses to decode (corrupt or above its pixel limit).
    """
    svg = build_isolated_svg(layer, definitions, width, height, fallback_size)
    t0 = time.perf_counter()

    try:
        png = await asyncio.wait_for(
            handle.render(svg, width, height, timeout_ms),
            timeout=timeout_ms / 1000,
        )
    except asyncio.TimeoutError as e:
        raise RenderError(layer.name, f"timed out after {timeout_ms}ms") from e
    except Exception as e:
        raise RenderError(layer.name, str(e) or type(e).__name__) from e

    try:
        pixels = decode_png(png, width, height)
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise RenderError(layer.name, f"undecodable snapshot: {e}") from e

    elapsed = (time.perf_counter() - t0) * 1000
    logger.debug("Rendered layer %s on handle %d in %.1fms", layer.name, handle.id, elapsed)
    return pixels
