"""In-process rendering with CairoSVG, for hosts that cannot run a browser."""

from __future__ import annotations

import asyncio
import itertools

import cairosvg

from svg2psd.engine.backend import HandleState, RenderingEngine, RenderingHandle


class CairoHandle(RenderingHandle):
    async def render(self, svg: str, width: int, height: int, timeout_ms: int) -> bytes:
        return await asyncio.to_thread(
            cairosvg.svg2png,
            bytestring=svg.encode("utf-8"),
            output_width=width,
            output_height=height,
        )

    async def close(self) -> None:
        self.state = HandleState.DISCARDED


class CairoEngine(RenderingEngine):
    """Stateless engine: handles are cheap and share no process."""

    name = "cairosvg"

    def __init__(self) -> None:
        self._running = False
        self._ids = itertools.count(1)

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        self._running = True

    async def new_handle(self) -> CairoHandle:
        await self.start()
        return CairoHandle(next(self._ids))

    async def close(self) -> None:
        self._running = False
