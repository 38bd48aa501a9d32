"""
Admission control for concurrent tasks on one event loop
"""
from __future__ import annotations

import asyncio
from collections import deque
from typing import Awaitable, Callable, Deque, TypeVar

T = TypeVar("T")


class ConcurrencyLimiter:
    """
    Run at most ``max_concurrency`` tasks at once, admitting the rest FIFO

    Unlike a bare semaphore, a freed slot is handed directly to the oldest
    waiter, so a newly arriving task can never overtake a queued one.
    Instances share no state; a profile-level and an image-level limiter
    can run side by side without competing for slots.
    """

    def __init__(self, max_concurrency: int):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be a positive integer")
        self.max_concurrency = max_concurrency
        self._active = 0
        self._waiters: Deque[asyncio.Future] = deque()

    @property
    def active(self) -> int:
        return self._active

    @property
    def pending(self) -> int:
        return sum(1 for waiter in self._waiters if not waiter.done())

    async def run(self, task: Callable[[], Awaitable[T]]) -> T:
        """Run ``task()`` once a slot is free and return its result."""
        await self._acquire()
        try:
            return await task()
        finally:
            self._release()

    async def _acquire(self) -> None:
        if self._active < self.max_concurrency and not self.pending:
            self._active += 1
            return

        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        except asyncio.CancelledError:
            # The slot may have been handed over just before cancellation.
            if waiter.done() and not waiter.cancelled():
                self._release()
            raise

    def _release(self) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                # Hand the slot over; the active count stays the same.
                waiter.set_result(None)
                return
        self._active -= 1
