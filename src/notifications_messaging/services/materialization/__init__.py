"""Event materialization."""

from notifications_messaging.services.materialization.event_materializer import (
    EventMaterializerService,
    MaterializationResult,
)

__all__ = ["EventMaterializerService", "MaterializationResult"]
