"""Error taxonomy for the conversion engine.

Only ``HandleCreationError``, ``CompositionError`` and ``FetchError`` reach the
caller of a conversion. ``RenderError`` is recovered per layer by the batch
scheduler, and ``ParseDegenerate`` is a warning, not an exception path.
"""

from __future__ import annotations


class ConversionError(Exception):
    """Base class for every error raised by the conversion engine."""


class HandleCreationError(ConversionError):
    """The rendering engine could not be started or a handle could not be created."""


class RenderError(ConversionError):
    """A single layer failed to rasterize (timeout or engine-reported error)."""

    def __init__(self, layer_name: str, message: str) -> None:
        super().__init__(f"layer {layer_name!r}: {message}")
        self.layer_name = layer_name


class CompositionError(ConversionError):
    """No layer survived rasterization, or the layered document could not be written."""


class FetchError(ConversionError):
    """Remote markup could not be retrieved or is not a vector document."""

    def __init__(self, url: str, message: str, status_code: int | None = None) -> None:
        super().__init__(f"{url}: {message}")
        self.url = url
        self.status_code = status_code


class ParseDegenerate(UserWarning):
    """Extraction fell through to the single whole-document layer."""
