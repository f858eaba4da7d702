"""Dependency injection."""

from notifications_messaging.DI.container import Container

__all__ = ["Container"]
