# -*- coding: utf-8 -*-
"""Unit tests for RecipientApiClient."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, Mock

import pytest

from notifications_messaging.clients import RecipientApiClient
from notifications_messaging.exceptions import RecipientResolutionFailure


def _client(response: Any) -> tuple[RecipientApiClient, AsyncMock]:
    http = Mock()
    http.get = AsyncMock(return_value=response)
    settings = SimpleNamespace(recipient_api=SimpleNamespace(base_url="http://directory.local/"))
    return RecipientApiClient(http, settings, get_logger=lambda _name: Mock()), http.get  # type: ignore[arg-type]


async def test_resolve_client_users() -> None:
    client, get = _client([{"userId": "u1"}, {"userId": "u2"}, "u3"])

    assert await client.resolve_client_users("t 1") == ["u1", "u2", "u3"]
    get.assert_awaited_once_with("http://directory.local/clients/t%201/users")


async def test_resolve_all_users_accepts_wrapped_list() -> None:
    client, get = _client({"users": [{"userId": "u1", "clientId": "t1"}, {"userId": 7, "clientId": "t2"}]})

    assert await client.resolve_all_users() == [("u1", "t1"), ("7", "t2")]
    get.assert_awaited_once_with("http://directory.local/users")


async def test_resolve_channel_participants_filters_inactive() -> None:
    client, get = _client(
        {
            "participants": [
                {"userId": "u1", "status": "active"},
                {"userId": "u2", "status": "left"},
                {"userId": "u3"},
            ]
        }
    )

    assert await client.resolve_channel_participants("ch1") == ["u1", "u3"]
    get.assert_awaited_once_with(
        "http://directory.local/channels/ch1/participants",
        params={"status": "active"},
    )


@pytest.mark.parametrize(
    "response",
    [
        None,
        {"items": []},
        [{"name": "no id"}],
        [""],
    ],
)
async def test_malformed_responses_raise(response: Any) -> None:
    client, _ = _client(response)

    with pytest.raises(RecipientResolutionFailure):
        await client.resolve_client_users("t1")


async def test_all_users_require_client_id() -> None:
    client, _ = _client([{"userId": "u1"}])

    with pytest.raises(RecipientResolutionFailure):
        await client.resolve_all_users()
