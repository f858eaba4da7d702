# -*- coding: utf-8 -*-
"""User directory API client used as a recipient resolver."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Optional
from urllib.parse import quote

import structlog
from structlog.contextvars import bound_contextvars

from notifications_messaging.config import Settings
from notifications_messaging.exceptions import RecipientResolutionFailure
from notifications_messaging.persistence.repositories.interfaces.recipient_repository import (
    IRecipientResolver,
)

if TYPE_CHECKING:
    from .http import AsyncHttpClient


class RecipientApiClient(IRecipientResolver):
    """Resolves recipients through the user directory HTTP API.

    Endpoints (relative to ``recipient_api.base_url``):
      - ``GET /clients/{clientId}/users`` -> ``[{"userId": ...}]``
      - ``GET /users`` -> ``[{"userId": ..., "clientId": ...}]``
      - ``GET /channels/{channelId}/participants`` -> ``[{"userId": ..., "status": ...}]``

    Responses may also wrap the list as ``{"users": [...]}`` or
    ``{"participants": [...]}``.
    """

    def __init__(
        self,
        http_client: "AsyncHttpClient",
        settings: Settings,
        *,
        get_logger: Callable[[str], Any] = structlog.get_logger,
        logger_name: Optional[str] = None,
    ) -> None:
        """Initialize the client.

        Args:
            http_client: Async HTTP client (e.g. AsyncHttpClient).
            settings: Application settings (uses settings.recipient_api.base_url).
            get_logger: Logger factory (injected) with default of structlog.get_logger.
            logger_name: Optional logger name (defaults to class name).
        """
        self._http = http_client
        self._settings = settings
        self._logger = get_logger(logger_name or self.__class__.__name__)

    def _url(self, path: str) -> str:
        return f"{self._settings.recipient_api.base_url.rstrip('/')}{path}"

    async def resolve_client_users(self, client_id: str) -> list[str]:
        with bound_contextvars(recipient_client_id=client_id):
            data = await self._http.get(self._url(f"/clients/{quote(client_id, safe='')}/users"))
            items = _items(data, "users")
            users = [_user_id(item) for item in items]
            self._logger.debug("client_users_resolved", user_count=len(users))
            return users

    async def resolve_all_users(self) -> list[tuple[str, str]]:
        data = await self._http.get(self._url("/users"))
        pairs: list[tuple[str, str]] = []
        for item in _items(data, "users"):
            if not isinstance(item, dict) or not item.get("clientId"):
                raise RecipientResolutionFailure(f"user entry without clientId: {item!r}")
            pairs.append((_user_id(item), str(item["clientId"])))
        self._logger.debug("all_users_resolved", user_count=len(pairs))
        return pairs

    async def resolve_channel_participants(self, channel_id: str) -> list[str]:
        with bound_contextvars(recipient_channel_id=channel_id):
            data = await self._http.get(
                self._url(f"/channels/{quote(channel_id, safe='')}/participants"),
                params={"status": "active"},
            )
            participants = [
                _user_id(item)
                for item in _items(data, "participants")
                if not isinstance(item, dict) or item.get("status", "active") == "active"
            ]
            self._logger.debug("channel_participants_resolved", participant_count=len(participants))
            return participants


def _items(data: Any, key: str) -> list[Any]:
    if isinstance(data, dict):
        data = data.get(key)
    if not isinstance(data, list):
        raise RecipientResolutionFailure(
            f"unexpected recipient API response: expected a list of {key}"
        )
    return data


def _user_id(item: Any) -> str:
    if isinstance(item, str) and item:
        return item
    if isinstance(item, dict) and item.get("userId"):
        return str(item["userId"])
    raise RecipientResolutionFailure(f"recipient entry without userId: {item!r}")
