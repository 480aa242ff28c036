"""
browser.session
Version-keyed session cache holding the shared automation-engine handle.

At most one ready handle exists at a time. Concurrent callers asking for the same
version while it initializes share one in-flight task, so the engine is launched
once. A request for a new version starts a fresh initialization; the previous
ready handle is closed (best effort) only after the new one is ready, and a
superseded in-flight initialization has its handle closed when it completes.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from capture.errors import EngineUninitializedError

logger = logging.getLogger(__name__)

EngineFactory = Callable[[str], Awaitable[Any]]


async def _close_quietly(handle: Any) -> None:
    if handle is None:
        return
    try:
        await handle.close()
    except Exception as e:
        logger.warning("closing stale engine failed: %s", e)


def _is_usable(handle: Any) -> bool:
    check = getattr(handle, "is_connected", None)
    if check is None:
        return True
    try:
        return bool(check())
    except Exception:
        return False


class SessionCache:
    def __init__(self, factory: EngineFactory) -> None:
        self._factory = factory
        self._ready: Any = None
        self._ready_version: Optional[str] = None
        self._inflight: Optional[asyncio.Task] = None
        self._inflight_version: Optional[str] = None
        self._latest_version: Optional[str] = None
        self._closed = False
        self.launch_count = 0

    @property
    def ready_version(self) -> Optional[str]:
        return self._ready_version if self._ready is not None else None

    @property
    def initializing(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    async def get(self, version: str) -> Any:
        if self._closed:
            raise EngineUninitializedError(
                code="ENGINE_UNINITIALIZED", stage="launch", message="session cache is closed"
            )
        if self._ready is not None and self._ready_version == version and _is_usable(self._ready):
            return self._ready
        task = self._inflight
        if task is None or self._inflight_version != version:
            if task is not None:
                logger.info("discarding in-flight engine init for stale version %s", self._inflight_version)
                task.add_done_callback(self._close_superseded)
            task = asyncio.ensure_future(self._initialize(version))
            self._inflight, self._inflight_version = task, version
            self._latest_version = version
        handle = await asyncio.shield(task)
        if handle is not self._ready and self._inflight is not task:
            # superseded while we waited; follow the newest version
            return await self.get(self._latest_version or version)
        return handle

    async def _initialize(self, version: str) -> Any:
        me = asyncio.current_task()
        self.launch_count += 1
        try:
            handle = await self._factory(version)
        except Exception as e:
            if self._inflight is me:
                self._inflight, self._inflight_version = None, None
            raise EngineUninitializedError(
                code="ENGINE_UNINITIALIZED",
                stage="launch",
                message=f"engine failed to start: {e}",
                original=e,
            ) from e
        if self._inflight is not me:
            return handle
        old = self._ready
        self._ready, self._ready_version = handle, version
        self._inflight, self._inflight_version = None, None
        logger.info("engine ready (version=%s)", version)
        if old is not None and old is not handle:
            await _close_quietly(old)
        return handle

    def _close_superseded(self, task: "asyncio.Task") -> None:
        if task.cancelled() or task.exception() is not None:
            return
        handle = task.result()
        if handle is not self._ready:
            asyncio.ensure_future(_close_quietly(handle))

    async def close(self) -> None:
        self._closed = True
        task, self._inflight = self._inflight, None
        if task is not None and not task.done():
            task.add_done_callback(self._close_superseded)
        handle, self._ready = self._ready, None
        self._ready_version = None
        await _close_quietly(handle)
