"""
capture.admission
Counting semaphore bounding concurrent capture runs against the shared browser.

Waiters are served strictly FIFO: a release hands its slot directly to the head of
the queue, so a late arrival can never overtake a queued caller. Use the slot()
context manager so the slot is released on every exit path.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from contextlib import asynccontextmanager
from typing import AsyncIterator, Deque

logger = logging.getLogger(__name__)


class SemaphoreSlot:
    """Ownership token for one admitted run; releases exactly once."""

    def __init__(self, controller: "AdmissionController", ticket: int) -> None:
        self._controller = controller
        self.ticket = ticket
        self.released = False

    def release(self) -> None:
        if self.released:
            return
        self.released = True
        self._controller.release()


class AdmissionController:
    def __init__(self, max_concurrent: int = 2) -> None:
        if int(max_concurrent) < 1:
            raise ValueError(f"max_concurrent must be >= 1, got {max_concurrent}")
        self.max_concurrent = int(max_concurrent)
        self._active = 0
        self._waiters: Deque[asyncio.Future] = deque()
        self._tickets = 0
        self.peak = 0

    @property
    def active(self) -> int:
        return self._active

    @property
    def waiting(self) -> int:
        return sum(1 for w in self._waiters if not w.done())

    def _admit(self) -> None:
        self._active += 1
        self.peak = max(self.peak, self._active)

    async def acquire(self) -> SemaphoreSlot:
        self._tickets += 1
        ticket = self._tickets
        if self._active < self.max_concurrent and not self._waiters:
            self._admit()
            return SemaphoreSlot(self, ticket)
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        logger.debug("capture #%d queued (active=%d, waiting=%d)", ticket, self._active, len(self._waiters))
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # the slot was handed over just before cancellation; pass it on
                self.release()
            else:
                try:
                    self._waiters.remove(waiter)
                except ValueError:
                    pass
            raise
        return SemaphoreSlot(self, ticket)

    def release(self) -> None:
        self._active -= 1
        while self._waiters:
            waiter = self._waiters.popleft()
            if waiter.done():
                continue
            self._admit()
            waiter.set_result(None)
            return

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[SemaphoreSlot]:
        token = await self.acquire()
        try:
            yield token
        finally:
            token.release()
