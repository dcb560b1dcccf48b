"""FastAPI dependency injection."""

from __future__ import annotations

from fastapi import Request

from svg2psd.config import settings
from svg2psd.engine.converter import LayeredImageConverter


def get_settings():
    return settings


def get_converter(request: Request) -> LayeredImageConverter:
    return request.app.state.converter
