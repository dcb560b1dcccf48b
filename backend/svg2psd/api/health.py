"""Health check endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from svg2psd.config import Settings
from svg2psd.dependencies import get_converter, get_settings
from svg2psd.engine.converter import LayeredImageConverter
from svg2psd.models.responses import HealthResponse, PoolStats

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(
    converter: LayeredImageConverter = Depends(get_converter),
    settings: Settings = Depends(get_settings),
) -> HealthResponse:
    pool = converter.pool
    return HealthResponse(
        status="ok" if not pool.closed else "closed",
        environment=settings.svg2psd_env,
        backend=converter.engine.name,
        pool=PoolStats(idle=pool.num_idle, borrowed=pool.num_borrowed, capacity=pool.max_handles),
    )
