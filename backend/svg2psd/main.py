"""FastAPI app factory."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from svg2psd.config import settings
from svg2psd.engine.converter import LayeredImageConverter

load_dotenv()

logging.basicConfig(
    level=getattr(logging, settings.svg2psd_log_level.upper(), logging.INFO),
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)
# ParseDegenerate and other warnings go through the log
logging.captureWarnings(True)

logger = logging.getLogger(__name__)


def create_app(converter: LayeredImageConverter | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        engine = converter or LayeredImageConverter()
        app.state.converter = engine
        await engine.initialize_for_parallel_conversion()
        try:
            yield
        finally:
            await engine.close_engine()

    app = FastAPI(
        title="svg2psd",
        description="SVG to layered PSD conversion — one editable raster layer per element",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from svg2psd.api.router import api_router

    app.include_router(api_router)

    return app


app = create_app()
