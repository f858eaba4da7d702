"""HTTP and API clients."""

from notifications_messaging.clients.http import AsyncHttpClient
from notifications_messaging.clients.recipient_api import RecipientApiClient

__all__ = [
    "AsyncHttpClient",
    "RecipientApiClient",
]
