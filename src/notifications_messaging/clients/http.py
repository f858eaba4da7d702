# -*- coding: utf-8 -*-
"""Async HTTP client with retries and rate-limit handling."""

from __future__ import annotations

import asyncio
import uuid
from typing import Any, Callable, Dict, Optional

import aiohttp
import structlog
from structlog.contextvars import bound_contextvars

from notifications_messaging.config import Settings
from notifications_messaging.exceptions import RateLimitError, UpstreamAPIError
from notifications_messaging.utils.retry import RetryPolicy


class AsyncHttpClient:
    """Async JSON HTTP client for upstream APIs with retries and 429 handling.

    Injects Settings and optionally an aiohttp.ClientSession. If no session
    is provided, one is created and must be closed via aclose() or used
    as an async context manager. Client errors other than 429 are not retried.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        get_logger: Callable[[str], Any] = structlog.get_logger,
        logger_name: Optional[str] = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Configuration (recipient_api.timeout_seconds, max_retries; retry backoff).
            session: Optional shared aiohttp session. If None, the client
                creates and owns a session (call aclose() when done).
            get_logger: Logger factory (injected) with default of structlog.get_logger.
            logger_name: Optional logger name (defaults to class name).
        """
        self._settings = settings
        self._session = session
        self._owns_session = session is None
        self._backoff = RetryPolicy.from_settings(settings.retry)
        self._logger = get_logger(logger_name or self.__class__.__name__)

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._settings.recipient_api.timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def aclose(self) -> None:
        """Close the session if this client owns it."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> AsyncHttpClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def get(self, url: str, *, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET and return parsed JSON. See _request for retry behaviour."""
        return await self._request("GET", url, params=params or {})

    async def post(self, url: str, *, json: Optional[Dict[str, Any]] = None) -> Any:
        """POST a JSON body and return parsed JSON."""
        return await self._request("POST", url, json=json or {})

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        """Perform a request, retrying transport errors, 5xx and 429.

        Raises:
            RateLimitError: If every attempt was rate limited.
            UpstreamAPIError: On a non-retryable status or after all retries.
        """
        request_id = uuid.uuid4().hex[:12]
        max_retries = self._settings.recipient_api.max_retries
        event_prefix = f"http_{method.lower()}"
        last_error: Optional[Exception] = None
        last_retry_after: Optional[float] = None
        rate_limited = False

        with bound_contextvars(
            http_method=method,
            http_url=url,
            http_request_id=request_id,
            http_max_retries=max_retries,
        ):
            for attempt in range(max_retries):
                with bound_contextvars(http_attempt=attempt + 1):
                    try:
                        session = await self._get_session()
                        async with session.request(method, url, **kwargs) as response:
                            if response.status == 429:
                                rate_limited = True
                                last_retry_after = _retry_after(response.headers.get("Retry-After"))
                                self._logger.warning(
                                    f"{event_prefix}_rate_limited",
                                    http_status_code=429,
                                    http_retry_after_seconds=last_retry_after,
                                )
                                if attempt + 1 < max_retries:
                                    await asyncio.sleep(
                                        last_retry_after or self._backoff.backoff_delay(attempt)
                                    )
                                continue
                            rate_limited = False
                            response.raise_for_status()
                            return await response.json()
                    except aiohttp.ClientResponseError as e:
                        last_error = e
                        if 400 <= e.status < 500:
                            self._logger.warning(
                                f"{event_prefix}_client_error",
                                http_status_code=e.status,
                                error_message=str(e),
                            )
                            raise UpstreamAPIError(
                                f"{method} {url} returned {e.status}",
                                url=url,
                                status_code=e.status,
                                cause=e,
                            ) from e
                        self._logger.debug(
                            f"{event_prefix}_retry",
                            error_type=type(e).__name__,
                            error_message=str(e),
                            http_status_code=e.status,
                        )
                    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                        last_error = e
                        self._logger.debug(
                            f"{event_prefix}_retry",
                            error_type=type(e).__name__,
                            error_message=str(e),
                        )
                    if attempt + 1 < max_retries:
                        await asyncio.sleep(self._backoff.backoff_delay(attempt))

            if rate_limited:
                raise RateLimitError(url=url, retry_after=last_retry_after)

            status_code = (
                last_error.status if isinstance(last_error, aiohttp.ClientResponseError) else None
            )
            self._logger.error(
                f"{event_prefix}_failed",
                http_status_code=status_code,
                http_attempts=max_retries,
                error_type=type(last_error).__name__ if last_error else None,
                error_message=str(last_error) if last_error else None,
            )
            raise UpstreamAPIError(
                f"{method} failed after {max_retries} retries: {url}",
                url=url,
                status_code=status_code,
                cause=last_error,
            ) from last_error


def _retry_after(header: Optional[str]) -> Optional[float]:
    if not header:
        return None
    try:
        value = float(header)
    except ValueError:
        return None
    return value if value > 0 else None
