"""Trailing-edge debounce on top of the running asyncio loop."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Generic, TypeVar

T = TypeVar("T")


class Debouncer(Generic[T]):
    """Only the value from the latest call fires, once ``delay`` has passed quietly."""

    def __init__(self, callback: Callable[[T], Awaitable[None]], delay_ms: int) -> None:
        self._callback = callback
        self._delay = delay_ms / 1000
        self._handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def __call__(self, value: T) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self._delay, self._fire, value)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, value: T) -> None:
        self._handle = None
        task = asyncio.create_task(self._callback(value))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait for callbacks that already fired."""

        while self._tasks:
            tasks = list(self._tasks)
            await asyncio.gather(*tasks, return_exceptions=True)
            self._tasks.difference_update(tasks)

    async def aclose(self) -> None:
        self.cancel()
        for task in list(self._tasks):
            task.cancel()
        await self.drain()


__all__ = ["Debouncer"]
