"""SVG → layered PSD conversion — the public entry point of the engine.

A LayeredImageConverter owns its rendering pool explicitly; a host process
creates one at start-up, calls ``initialize_for_parallel_conversion()`` to warm
the pool, and ``close_engine()`` on exit (or uses it as an async context
manager).
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from pathlib import Path

import httpx

from svg2psd.engine.backend import RenderingEngine, create_engine
from svg2psd.engine.composer import compose
from svg2psd.engine.config import EngineConfig
from svg2psd.engine.pool import RenderingPool
from svg2psd.engine.rasterizer import rasterize_layer
from svg2psd.engine.scheduler import BatchScheduler, RenderFn
from svg2psd.errors import ConversionError, FetchError
from svg2psd.models.document import VectorDocument
from svg2psd.models.requests import ConversionOptions
from svg2psd.svg.extractor import extract_layers, extract_shared_definitions
from svg2psd.svg.parser import clamp_canvas, parse_document

logger = logging.getLogger(__name__)

SVG_MARKER = "<svg"


def cleanup_temp_file(path: str | os.PathLike[str]) -> bool:
    """Best-effort removal of a previously returned PSD file. Never raises."""
    try:
        os.unlink(path)
    except OSError as e:
        logger.warning("Failed to cleanup temporary PSD file %s: %s", path, e)
        return False
    logger.info("Cleaned up temporary PSD file: %s", path)
    return True


class LayeredImageConverter:
    """Converts SVG markup into PSD files with one raster layer per visual element."""

    def __init__(
        self,
        config: EngineConfig | None = None,
        engine: RenderingEngine | None = None,
        http_client: httpx.AsyncClient | None = None,
        render: RenderFn = rasterize_layer,
    ) -> None:
        if config is None:
            from svg2psd.config import settings

            config = EngineConfig.from_settings(settings)
        self.config = config
        self.engine = engine or create_engine(config)
        self.pool = RenderingPool(self.engine, size=config.pool_size, max_handles=config.max_handles)
        self.scheduler = BatchScheduler(self.pool, config, render=render)
        self._http_client = http_client

    async def __aenter__(self) -> LayeredImageConverter:
        await self.initialize_for_parallel_conversion()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close_engine()

    async def initialize_for_parallel_conversion(self) -> None:
        """Start the rendering engine and pre-create the pool's idle handles."""
        start = time.perf_counter()
        idle = await self.pool.warm_up(self.config.pool_size)
        logger.info(
            "%s engine ready: %d handles in %.0fms",
            self.engine.name,
            idle,
            (time.perf_counter() - start) * 1000,
        )

    async def close_engine(self) -> None:
        """Close every pooled handle and the rendering engine."""
        await self.pool.shutdown()

    def cleanup_temp_file(self, path: str | os.PathLike[str]) -> bool:
        return cleanup_temp_file(path)

    def resolve_canvas(self, document: VectorDocument, options: ConversionOptions) -> tuple[int, int]:
        """Requested size wins; otherwise the document's own dimensions."""
        width = options.width if options.width is not None else document.width
        height = options.height if options.height is not None else document.height
        limit = self.config.max_canvas_size
        return clamp_canvas(width, limit), clamp_canvas(height, limit)

    async def convert_document(
        self,
        markup: str,
        options: ConversionOptions | None = None,
    ) -> Path:
        """Convert SVG markup to a PSD temp file and return its path.

        Raises:
            HandleCreationError: the rendering engine is unavailable.
            CompositionError: no layer could be rasterized or the PSD could not be written.
        """
        options = options or ConversionOptions()
        start = time.perf_counter()
        logger.info("Starting SVG to PSD conversion")

        try:
            document = parse_document(
                markup,
                fallback_size=self.config.fallback_canvas_size,
                max_size=self.config.max_canvas_size,
            )
            width, height = self.resolve_canvas(document, options)
            descriptors = extract_layers(document)
            definitions = extract_shared_definitions(document)

            layers = await self.scheduler.run(descriptors, definitions, width, height)
            path = await asyncio.to_thread(
                compose,
                layers,
                width,
                height,
                options.background_color if options.has_background else None,
                self.config.temp_dir,
                self.config.temp_prefix,
            )
        except ConversionError as e:
            logger.error("Error converting SVG to PSD: %s", e)
            raise

        logger.info(
            "Successfully converted SVG to PSD with %d/%d layers in %.0fms: %s",
            len(layers),
            len(descriptors),
            (time.perf_counter() - start) * 1000,
            path,
        )
        return path

    async def convert_url(
        self,
        url: str,
        options: ConversionOptions | None = None,
    ) -> Path:
        """Fetch SVG markup over HTTP and convert it.

        Raises:
            FetchError: transport failure, non-2xx status, or no SVG markup in the body.
        """
        logger.info("Converting SVG from URL to PSD: %s", url)
        try:
            markup = await self.fetch_markup(url)
        except FetchError as e:
            logger.error("Error converting SVG URL to PSD: %s", e)
            raise
        return await self.convert_document(markup, options)

    async def fetch_markup(self, url: str) -> str:
        try:
            if self._http_client is not None:
                response = await self._http_client.get(url)
            else:
                async with httpx.AsyncClient(
                    timeout=self.config.fetch_timeout_s,
                    follow_redirects=True,
                ) as client:
                    response = await client.get(url)
        except httpx.HTTPError as e:
            raise FetchError(url, f"request failed: {e}") from e

        if not response.is_success:
            raise FetchError(
                url,
                f"HTTP {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        text = response.text
        if SVG_MARKER not in text.lower():
            raise FetchError(url, "URL does not contain valid SVG content", status_code=response.status_code)
        return text
