"""SVG → layered PSD conversion engine."""

from svg2psd.engine.backend import HandleState, RenderingEngine, RenderingHandle, create_engine
from svg2psd.engine.composer import compose
from svg2psd.engine.config import EngineConfig
from svg2psd.engine.converter import LayeredImageConverter, cleanup_temp_file
from svg2psd.engine.pool import RenderingPool
from svg2psd.engine.rasterizer import rasterize_layer
from svg2psd.engine.scheduler import BatchScheduler, LayerOutcome

__all__ = [
    "BatchScheduler",
    "EngineConfig",
    "HandleState",
    "LayerOutcome",
    "LayeredImageConverter",
    "RenderingEngine",
    "RenderingHandle",
    "RenderingPool",
    "cleanup_temp_file",
    "compose",
    "create_engine",
    "rasterize_layer",
]
