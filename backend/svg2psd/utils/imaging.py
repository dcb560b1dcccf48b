"""Pixel-buffer helpers — PNG decoding, canvas fitting, solid fills."""

from __future__ import annotations

import io

import numpy as np
from numpy.typing import NDArray
from PIL import Image, ImageColor, ImageOps


def fit_to_canvas(image: Image.Image, width: int, height: int) -> Image.Image:
    """Scale ``image`` to fit inside the canvas (aspect preserved), centred on transparency."""
    image = image.convert("RGBA")
    if image.size == (width, height):
        return image
    fitted = ImageOps.contain(image, (width, height))
    canvas = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    canvas.paste(fitted, ((width - fitted.width) // 2, (height - fitted.height) // 2))
    return canvas


def decode_png(data: bytes, width: int, height: int) -> NDArray[np.uint8]:
    """Decode PNG bytes into an HxWx4 RGBA array sized exactly to the canvas."""
    with Image.open(io.BytesIO(data)) as image:
        image.load()
        fitted = fit_to_canvas(image, width, height)
    return np.array(fitted, dtype=np.uint8)


def parse_color(color: str) -> tuple[int, int, int, int]:
    """CSS colour → RGBA tuple. Raises ValueError for unknown colours."""
    value = ImageColor.getrgb(color.strip())
    if len(value) == 3:
        return (*value, 255)
    return value


def solid_fill(width: int, height: int, color: str) -> NDArray[np.uint8]:
    """An HxWx4 buffer filled with one colour."""
    pixels = np.empty((height, width, 4), dtype=np.uint8)
    pixels[:, :] = parse_color(color)
    return pixels


def to_image(pixels: NDArray[np.uint8]) -> Image.Image:
    return Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8))
