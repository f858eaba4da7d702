# -*- coding: utf-8 -*-
"""asyncio-backed queue for single-process runs and tests."""

from __future__ import annotations

import asyncio

from notifications_messaging.exceptions import QueueEmpty, QueueFull, QueueShutdown
from notifications_messaging.queue.base import IAsyncQueue


class InMemoryQueue[T](IAsyncQueue[T]):
    """IAsyncQueue over asyncio.Queue, translating its exceptions."""

    def __init__(self, maxsize: int = 0) -> None:
        """Initialize the queue.

        Args:
            maxsize: Capacity; 0 means unbounded.
        """
        self._queue: asyncio.Queue[T] = asyncio.Queue(maxsize=maxsize)

    def __len__(self) -> int:
        return self._queue.qsize()

    async def put(self, item: T) -> None:
        try:
            await self._queue.put(item)
        except asyncio.QueueShutDown as e:
            raise QueueShutdown from e

    def put_nowait(self, item: T) -> None:
        try:
            self._queue.put_nowait(item)
        except asyncio.QueueShutDown as e:
            raise QueueShutdown from e
        except asyncio.QueueFull as e:
            raise QueueFull from e

    async def get(self) -> T:
        try:
            return await self._queue.get()
        except asyncio.QueueShutDown as e:
            raise QueueShutdown from e

    def get_nowait(self) -> T:
        try:
            return self._queue.get_nowait()
        except asyncio.QueueShutDown as e:
            raise QueueShutdown from e
        except asyncio.QueueEmpty as e:
            raise QueueEmpty from e

    def task_done(self) -> None:
        self._queue.task_done()

    def shutdown(self, immediate: bool = False) -> None:
        self._queue.shutdown(immediate)

    async def join(self) -> None:
        await self._queue.join()

    def qsize(self) -> int:
        return self._queue.qsize()
