"""Shared test fixtures."""

from __future__ import annotations

import asyncio
import io
import itertools
import zlib

import pytest
from PIL import Image, ImageDraw

from svg2psd.engine.backend import HandleState, RenderingEngine, RenderingHandle
from svg2psd.engine.config import EngineConfig
from svg2psd.engine.converter import LayeredImageConverter
from svg2psd.errors import HandleCreationError


# Sample SVGs

EXAMPLE_SVG = '''<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 100 50">
  <g>
    <rect id="bg" x="0" y="0" width="100" height="50" fill="#4ECDC4"/>
    <circle id="dot" cx="50" cy="25" r="10" fill="#FF6B6B"/>
  </g>
</svg>'''

GROUPED_SVG = '''<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 64 64">
  <g fill="#333">
    <path d="M4 4 L20 4 L20 20 Z"/>
    <rect x="30" y="4" width="10" height="10"/>
    <path d="M4 40 L20 40 L12 60 Z"/>
  </g>
  <g stroke="#f00">
    <circle cx="48" cy="48" r="8"/>
    <line x1="0" y1="63" x2="63" y2="63"/>
  </g>
</svg>'''

IDENTIFIED_SVG = '''<svg xmlns="http://www.w3.org/2000/svg" width="120" height="80">
  <rect id="sky" width="120" height="50" fill="#87CEEB"/>
  <circle class="sun" cx="90" cy="20" r="10" fill="#FFD700"/>
  <path d="M0 80 L60 40 L120 80 Z" fill="#228B22"/>
</svg>'''

UNIDENTIFIED_SVG = '''<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 24 24" fill="none" stroke="currentColor" stroke-width="2">
  <circle cx="12" cy="12" r="10"/>
  <circle cx="8" cy="9" r="1"/>
  <circle cx="16" cy="9" r="1"/>
  <path d="M8 14s1.5 2 4 2 4-2 4-2"/>
</svg>'''

DEFS_SVG = '''<svg xmlns="http://www.w3.org/2000/svg" xmlns:xlink="http://www.w3.org/1999/xlink" viewBox="0 0 200 100" fill="#000">
  <defs>
    <linearGradient id="fade"><stop offset="0" stop-color="#fff"/><stop offset="1" stop-color="#000"/></linearGradient>
    <path id="template" d="M0 0 L10 10"/>
  </defs>
  <style>.accent { fill: #e91e63; }</style>
  <rect x="0" y="0" width="200" height="100" fill="url(#fade)"/>
  <text x="10" y="50" class="">Hello <tspan font-weight="bold">world</tspan></text>
</svg>'''

NO_PRIMITIVES_SVG = '''<svg xmlns="http://www.w3.org/2000/svg" xmlns:xlink="http://www.w3.org/1999/xlink" width="40" height="40">
  <image href="logo.png" width="40" height="40"/>
</svg>'''

ALL_SAMPLES = [
    EXAMPLE_SVG,
    GROUPED_SVG,
    IDENTIFIED_SVG,
    UNIDENTIFIED_SVG,
    DEFS_SVG,
    NO_PRIMITIVES_SVG,
]


# ---------------------------------------------------------------------------
# Stub rendering engine
# ---------------------------------------------------------------------------


class StubHandle(RenderingHandle):
    """Paints a deterministic opaque square; raises when a fail marker is in the SVG."""

    def __init__(self, handle_id: int, engine: StubEngine) -> None:
        super().__init__(handle_id)
        self.engine = engine
        self.in_use = False
        self.renders = 0
        self.resets = 0
        self.fail_reset = False

    async def render(self, svg: str, width: int, height: int, timeout_ms: int) -> bytes:
        engine = self.engine
        if self.in_use:
            engine.violations += 1
        self.in_use = True
        engine.active += 1
        engine.max_active = max(engine.max_active, engine.active)
        try:
            engine.rendered.append(svg)
            # Vary completion order inside a batch
            await asyncio.sleep(engine.delay * (zlib.crc32(svg.encode()) % 4))
            for marker in engine.fail_markers:
                if marker in svg:
                    raise RuntimeError(f"engine failed on {marker}")
            self.renders += 1
            return stub_png(svg, width, height)
        finally:
            engine.active -= 1
            self.in_use = False

    async def reset(self) -> None:
        self.resets += 1
        if self.fail_reset:
            raise RuntimeError("page crashed")

    async def close(self) -> None:
        self.state = HandleState.DISCARDED
        self.engine.closed_handles.append(self)


class StubEngine(RenderingEngine):
    name = "stub"

    def __init__(self, fail_markers: tuple[str, ...] = (), delay: float = 0.001) -> None:
        self.fail_markers = fail_markers
        self.delay = delay
        self.fail_start = False
        self.running = False
        self.starts = 0
        self.active = 0
        self.max_active = 0
        self.violations = 0
        self.rendered: list[str] = []
        self.handles: list[StubHandle] = []
        self.closed_handles: list[StubHandle] = []
        self._ids = itertools.count(1)

    @property
    def is_running(self) -> bool:
        return self.running

    async def start(self) -> None:
        if self.fail_start:
            raise HandleCreationError("stub engine unavailable")
        if not self.running:
            self.running = True
            self.starts += 1

    async def new_handle(self) -> StubHandle:
        await self.start()
        handle = StubHandle(next(self._ids), self)
        self.handles.append(handle)
        return handle

    async def close(self) -> None:
        self.running = False


def stub_png(svg: str, width: int, height: int) -> bytes:
    """Transparent canvas with one opaque square whose colour depends on the SVG."""
    digest = zlib.crc32(svg.encode())
    color = (digest & 0xFF, (digest >> 8) & 0xFF, (digest >> 16) & 0xFF, 255)
    image = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    ImageDraw.Draw(image).rectangle((0, 0, max(0, width // 2 - 1), max(0, height // 2 - 1)), fill=color)
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def make_config(tmp_path, **overrides) -> EngineConfig:
    values = {"pool_size": 2, "max_ephemeral_handles": 1, "batch_size": 3, "temp_dir": str(tmp_path)}
    values.update(overrides)
    return EngineConfig(**values)


@pytest.fixture
def stub_engine() -> StubEngine:
    return StubEngine()


@pytest.fixture
def engine_config(tmp_path) -> EngineConfig:
    return make_config(tmp_path)


@pytest.fixture
def converter(stub_engine, engine_config) -> LayeredImageConverter:
    return LayeredImageConverter(config=engine_config, engine=stub_engine)


@pytest.fixture
def example_svg() -> str:
    return EXAMPLE_SVG


@pytest.fixture
def grouped_svg() -> str:
    return GROUPED_SVG
