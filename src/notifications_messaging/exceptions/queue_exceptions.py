"""Exceptions raised by the inbound event queue."""

from __future__ import annotations


class QueueError(Exception):
    """Base exception for inbound queue operations."""


class QueueFull(QueueError):
    """Raised by a non-blocking put when the queue is at capacity."""


class QueueEmpty(QueueError):
    """Raised by a non-blocking get when nothing is waiting."""


class QueueShutdown(QueueError):
    """Raised once the queue is shut down; consumers treat it as a stop signal."""
