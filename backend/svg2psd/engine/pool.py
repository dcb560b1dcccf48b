"""Rendering context pool — bounded, reusable rendering handles.

The pool keeps up to ``size`` idle handles and lets the number of live handles
grow to ``max_handles`` when every handle is borrowed; beyond that ceiling
``acquire()`` waits for a release. All bookkeeping happens under one
``asyncio.Condition``, so a handle is only ever leased to one task at a time.
Engine calls (create, reset, close) run outside the lock.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager

from svg2psd.engine.backend import HandleState, RenderingEngine, RenderingHandle
from svg2psd.errors import HandleCreationError

logger = logging.getLogger(__name__)


class RenderingPool:
    """Owns every RenderingHandle; callers borrow them via acquire/release or lease()."""

    def __init__(
        self,
        engine: RenderingEngine,
        size: int = 4,
        max_handles: int | None = None,
    ) -> None:
        if size < 1:
            raise ValueError(f"Pool size must be at least 1, got {size}")
        self.engine = engine
        self.size = size
        self.max_handles = max(size, max_handles if max_handles is not None else size)
        self._idle: deque[RenderingHandle] = deque()
        self._borrowed: set[RenderingHandle] = set()
        self._creating = 0
        self._condition = asyncio.Condition()
        self._closed = False

    @property
    def num_idle(self) -> int:
        return len(self._idle)

    @property
    def num_borrowed(self) -> int:
        return len(self._borrowed)

    @property
    def num_live(self) -> int:
        return len(self._idle) + len(self._borrowed) + self._creating

    @property
    def closed(self) -> bool:
        return self._closed

    async def warm_up(self, n: int | None = None) -> int:
        """Pre-create idle handles (at most ``size``). Returns the idle count afterwards."""
        target = self.size if n is None else min(n, self.size)
        async with self._condition:
            self._closed = False
            count = max(0, min(target - len(self._idle), self.max_handles - self.num_live))
            self._creating += count

        results = await asyncio.gather(
            *(self._create_handle() for _ in range(count)),
            return_exceptions=True,
        )

        failures: list[BaseException] = []
        async with self._condition:
            self._creating -= count
            for result in results:
                if isinstance(result, BaseException):
                    failures.append(result)
                else:
                    result.state = HandleState.IDLE
                    self._idle.append(result)
            self._condition.notify_all()

        if failures:
            raise HandleCreationError(f"Pool warm-up failed: {failures[0]}") from failures[0]
        logger.info("Rendering pool warmed up: %d idle handles", len(self._idle))
        return len(self._idle)

    async def acquire(self) -> RenderingHandle:
        """Borrow an idle handle, create one under the ceiling, or wait for a release."""
        stale: list[RenderingHandle] = []
        handle: RenderingHandle | None = None
        async with self._condition:
            while True:
                if self._closed:
                    raise HandleCreationError("Rendering pool is shut down")
                while self._idle:
                    candidate = self._idle.popleft()
                    if candidate.is_usable:
                        handle = candidate
                        break
                    candidate.state = HandleState.DISCARDED
                    stale.append(candidate)
                if handle is not None:
                    handle.state = HandleState.BORROWED
                    self._borrowed.add(handle)
                    break
                if self.num_live < self.max_handles:
                    self._creating += 1
                    break
                await self._condition.wait()

        await self._close_handles(stale)
        if handle is not None:
            return handle

        try:
            handle = await self._create_handle()
        except BaseException:
            async with self._condition:
                self._creating -= 1
                self._condition.notify()
            raise

        async with self._condition:
            self._creating -= 1
            if not self._closed:
                handle.state = HandleState.BORROWED
                self._borrowed.add(handle)
                return handle
            handle.state = HandleState.DISCARDED
        await self._close_handles([handle])
        raise HandleCreationError("Rendering pool is shut down")

    async def release(self, handle: RenderingHandle, discard: bool = False) -> None:
        """Reset a borrowed handle and return it to the idle set (or discard it)."""
        if handle not in self._borrowed:
            if self._closed:
                return
            raise ValueError(f"{handle!r} is not borrowed from this pool")

        if not discard and handle.is_usable:
            try:
                await handle.reset()
            except Exception as e:
                logger.warning("Discarding rendering handle %d: reset failed: %s", handle.id, e)
                discard = True

        async with self._condition:
            self._borrowed.discard(handle)
            keep = (
                not discard
                and not self._closed
                and handle.is_usable
                and len(self._idle) < self.size
            )
            if keep:
                handle.state = HandleState.IDLE
                self._idle.append(handle)
            else:
                handle.state = HandleState.DISCARDED
            self._condition.notify()

        if not keep:
            logger.debug("Discarding rendering handle %d", handle.id)
            await self._close_handles([handle])

    @asynccontextmanager
    async def lease(self) -> AsyncIterator[RenderingHandle]:
        handle = await self.acquire()
        try:
            yield handle
        finally:
            await self.release(handle)

    async def shutdown(self) -> None:
        """Discard every handle, idle or borrowed, and stop the engine."""
        async with self._condition:
            self._closed = True
            handles = list(self._idle) + list(self._borrowed)
            self._idle.clear()
            self._borrowed.clear()
            for handle in handles:
                handle.state = HandleState.DISCARDED
            self._condition.notify_all()

        await self._close_handles(handles)
        await self.engine.close()
        logger.info("Rendering pool shut down (%d handles closed)", len(handles))

    async def _create_handle(self) -> RenderingHandle:
        try:
            return await self.engine.new_handle()
        except HandleCreationError:
            raise
        except Exception as e:
            raise HandleCreationError(f"Rendering handle could not be created: {e}") from e

    @staticmethod
    async def _close_handles(handles: Iterable[RenderingHandle]) -> None:
        for handle in handles:
            try:
                await handle.close()
            except Exception as e:
                logger.debug("Closing rendering handle %d failed: %s", handle.id, e)
