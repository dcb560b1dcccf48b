"""Rendering engine and handle abstractions.

A RenderingEngine is the expensive, process-level resource (a browser).
A RenderingHandle is one cheap, reusable rendering context inside it (a page).
Handles are owned by the RenderingPool; callers only ever hold a lease.
"""

from __future__ import annotations

import abc
import enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from svg2psd.engine.config import EngineConfig


class HandleState(enum.Enum):
    IDLE = "idle"
    BORROWED = "borrowed"
    DISCARDED = "discarded"


class RenderingHandle(abc.ABC):
    """One reusable rendering context: loads a small SVG document, returns a PNG snapshot."""

    def __init__(self, handle_id: int) -> None:
        self.id = handle_id
        self.state = HandleState.IDLE

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id} state={self.state.value}>"

    @property
    def is_usable(self) -> bool:
        return self.state is not HandleState.DISCARDED

    @abc.abstractmethod
    async def render(self, svg: str, width: int, height: int, timeout_ms: int) -> bytes:
        """Render ``svg`` onto a transparent ``width``×``height`` canvas; return PNG bytes."""

    async def reset(self) -> None:
        """Return the handle to a blank state before it goes back to the idle set."""

    @abc.abstractmethod
    async def close(self) -> None:
        """Release the underlying rendering context."""


class RenderingEngine(abc.ABC):
    """Factory for rendering handles; owns the heavyweight engine process."""

    name = "engine"

    @property
    @abc.abstractmethod
    def is_running(self) -> bool: ...

    @abc.abstractmethod
    async def start(self) -> None:
        """Start the engine if it is not running. Raises HandleCreationError on failure."""

    @abc.abstractmethod
    async def new_handle(self) -> RenderingHandle:
        """Create a fresh idle handle, starting the engine first if needed."""

    @abc.abstractmethod
    async def close(self) -> None:
        """Tear down the engine process."""


def create_engine(config: EngineConfig) -> RenderingEngine:
    """Factory function for the configured rendering backend."""
    backend = config.render_backend.lower()
    if backend == "chromium":
        from svg2psd.engine.chromium import ChromiumEngine

        return ChromiumEngine(config)
    if backend == "cairosvg":
        from svg2psd.engine.cairo_backend import CairoEngine

        return CairoEngine()
    raise ValueError(f"Unknown render backend: {config.render_backend!r}")
