# -*- coding: utf-8 -*-
"""Async queue interface used between the inbound transport and its consumers."""

from __future__ import annotations

from abc import ABC, abstractmethod


class IAsyncQueue[T](ABC):
    """Bounded async FIFO with task accounting and cooperative shutdown.

    Implementations raise QueueFull, QueueEmpty and QueueShutdown from
    ``notifications_messaging.exceptions`` instead of backend-specific errors.
    """

    @abstractmethod
    async def put(self, item: T) -> None:
        """Enqueue, waiting for capacity.

        Raises:
            QueueShutdown: After shutdown().
        """
        ...

    @abstractmethod
    def put_nowait(self, item: T) -> None:
        """Enqueue without waiting.

        Raises:
            QueueFull: At capacity.
            QueueShutdown: After shutdown().
        """
        ...

    @abstractmethod
    async def get(self) -> T:
        """Dequeue, waiting for an item.

        Raises:
            QueueShutdown: Once shut down and drained (or shut down immediately).
        """
        ...

    @abstractmethod
    def get_nowait(self) -> T:
        """Dequeue without waiting.

        Raises:
            QueueEmpty: Nothing is queued.
            QueueShutdown: Once shut down and drained.
        """
        ...

    @abstractmethod
    def task_done(self) -> None:
        """Acknowledge one item returned by get()."""
        ...

    @abstractmethod
    def shutdown(self, immediate: bool = False) -> None:
        """Refuse new items; with ``immediate`` also drop queued ones."""
        ...

    @abstractmethod
    async def join(self) -> None:
        """Wait until every dequeued item has been acknowledged."""
        ...

    @abstractmethod
    def qsize(self) -> int:
        """Number of queued items."""
        ...
