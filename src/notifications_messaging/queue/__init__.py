# -*- coding: utf-8 -*-
"""Async queue abstraction and implementations."""

from notifications_messaging.queue.base import IAsyncQueue
from notifications_messaging.queue.in_memory_queue import InMemoryQueue
from notifications_messaging.queue.messages import QueueMessage

__all__ = [
    "IAsyncQueue",
    "InMemoryQueue",
    "QueueMessage",
]
