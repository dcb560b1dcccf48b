"""Batch scheduler — rasterize every layer with bounded concurrency, keep the survivors.

Descriptors are processed in fixed-size batches; within a batch every layer is
an independent task that leases its own handle. Each task returns a
LayerOutcome instead of raising, so one bad layer never cancels its siblings
or later batches. Only pool failures (HandleCreationError) abort the run.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from svg2psd.engine.backend import RenderingHandle
from svg2psd.engine.config import EngineConfig
from svg2psd.engine.pool import RenderingPool
from svg2psd.engine.rasterizer import rasterize_layer
from svg2psd.errors import CompositionError, RenderError
from svg2psd.models.document import LayerDescriptor, RasterLayer, SharedDefinitions

logger = logging.getLogger(__name__)

RenderFn = Callable[..., Awaitable[NDArray[np.uint8]]]


@dataclass
class LayerOutcome:
    """Result of one layer task: a RasterLayer or the RenderError that dropped it."""

    descriptor: LayerDescriptor
    layer: RasterLayer | None = None
    error: RenderError | None = None

    @property
    def ok(self) -> bool:
        return self.layer is not None


def batched(items: list[LayerDescriptor], size: int) -> list[list[LayerDescriptor]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


class BatchScheduler:
    """Drives the rasterizer over all descriptors in bounded batches."""

    def __init__(
        self,
        pool: RenderingPool,
        config: EngineConfig | None = None,
        render: RenderFn = rasterize_layer,
    ) -> None:
        self.pool = pool
        self.config = config or EngineConfig()
        self._render = render

    async def run(
        self,
        descriptors: list[LayerDescriptor],
        definitions: SharedDefinitions,
        width: int,
        height: int,
    ) -> list[RasterLayer]:
        """Rasterize all descriptors; return survivors in descriptor order.

        Raises:
            CompositionError: every layer failed.
            HandleCreationError: the pool could not provide a rendering handle.
        """
        outcomes = await self.collect(descriptors, definitions, width, height)
        layers = [o.layer for o in outcomes if o.layer is not None]
        if descriptors and not layers:
            raise CompositionError(f"None of the {len(descriptors)} layers could be rasterized")
        return layers

    async def collect(
        self,
        descriptors: list[LayerDescriptor],
        definitions: SharedDefinitions,
        width: int,
        height: int,
    ) -> list[LayerOutcome]:
        """Run every batch and return one outcome per descriptor, in input order."""
        start = time.perf_counter()
        batch_size = max(1, self.config.batch_size)
        outcomes: list[LayerOutcome] = []

        batches = batched(descriptors, batch_size)
        for index, batch in enumerate(batches):
            # gather() returns results in argument order regardless of completion order
            results = await asyncio.gather(
                *(self._render_one(d, definitions, width, height) for d in batch),
                return_exceptions=True,
            )
            # Pool failures abort the run only once the whole batch has settled
            for result in results:
                if isinstance(result, BaseException):
                    raise result
            outcomes.extend(results)
            logger.debug(
                "Batch %d/%d: %d/%d layers rendered",
                index + 1,
                len(batches),
                sum(1 for r in results if r.ok),
                len(batch),
            )

        failed = [o.descriptor.name for o in outcomes if not o.ok]
        total = (time.perf_counter() - start) * 1000
        logger.info(
            "Rasterized %d/%d layers in %.0fms",
            len(outcomes) - len(failed),
            len(outcomes),
            total,
        )
        if failed:
            logger.warning("Dropped %d layers: %s", len(failed), ", ".join(failed))
        return outcomes

    async def _render_one(
        self,
        descriptor: LayerDescriptor,
        definitions: SharedDefinitions,
        width: int,
        height: int,
    ) -> LayerOutcome:
        async with self.pool.lease() as handle:
            try:
                pixels = await self._render_with(handle, descriptor, definitions, width, height)
            except RenderError as e:
                logger.warning("Failed to process layer %s: %s", descriptor.name, e)
                return LayerOutcome(descriptor, error=e)
        return LayerOutcome(descriptor, layer=RasterLayer(name=descriptor.name, pixels=pixels))

    def _render_with(
        self,
        handle: RenderingHandle,
        descriptor: LayerDescriptor,
        definitions: SharedDefinitions,
        width: int,
        height: int,
    ) -> Awaitable[NDArray[np.uint8]]:
        return self._render(
            descriptor,
            definitions,
            width,
            height,
            handle,
            timeout_ms=self.config.render_timeout_ms,
            fallback_size=self.config.fallback_canvas_size,
        )
