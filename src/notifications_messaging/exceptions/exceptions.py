"""Custom exceptions for event materialization and fan-out."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from uuid import UUID


class NotificationsMessagingError(Exception):
    """Base exception for notifications-messaging errors.

    ``retryable`` tells the inbound transport whether redelivering the
    triggering event can succeed. Data problems are never retryable.
    """

    retryable: bool = True


class MissingRequiredConfigError(NotificationsMessagingError):
    """Raised when a required configuration value is missing."""

    retryable = False


class ConfigError(NotificationsMessagingError):
    """Raised when a subscription pattern, template or expression is malformed."""

    retryable = False

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path


class ExpressionEvaluationError(NotificationsMessagingError):
    """Raised when a compiled expression fails against a payload."""

    retryable = False


class TemplateEvaluationError(NotificationsMessagingError):
    """Raised when a computed template field raises during resolution."""

    retryable = False

    def __init__(
        self,
        subscription: str,
        field: str,
        *,
        cause: Exception | None = None,
    ) -> None:
        detail = f": {cause}" if cause is not None else ""
        super().__init__(
            f"Template field '{field}' of subscription '{subscription}' failed{detail}"
        )
        self.subscription = subscription
        self.field = field
        self.cause = cause


class MissingTargetFieldError(NotificationsMessagingError):
    """Raised when the identifier required by a target type resolves empty."""

    retryable = False

    def __init__(self, target_type: str, field: str, *, subscription: str | None = None) -> None:
        super().__init__(f"{field} is required for {target_type}-targeted records")
        self.target_type = target_type
        self.field = field
        self.subscription = subscription


class RecordStoreError(NotificationsMessagingError):
    """Raised when the record store rejects or fails a write."""


class RecipientResolutionFailure(NotificationsMessagingError):
    """Raised when recipient lookup fails after all retries."""

    def __init__(
        self,
        message: str,
        *,
        target_key: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.target_key = target_key
        self.cause = cause


class PublishFailure(NotificationsMessagingError):
    """Raised when one or more availability batches could not be published."""

    def __init__(
        self,
        message: str,
        *,
        record_id: UUID | None = None,
        published: int = 0,
        failed: int = 0,
        causes: Sequence[Exception] = (),
    ) -> None:
        super().__init__(message)
        self.record_id = record_id
        self.published = published
        self.failed = failed
        self.causes = list(causes)


class EventMaterializationError(NotificationsMessagingError):
    """Raised when every matched subscription for an event failed."""

    def __init__(self, event_id: str, failures: Mapping[str, Exception]) -> None:
        names = ", ".join(sorted(failures))
        super().__init__(
            f"All {len(failures)} matched subscription(s) failed for event {event_id}: {names}"
        )
        self.event_id = event_id
        self.failures = dict(failures)

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        """True when at least one failure may succeed on redelivery."""
        return any(
            getattr(err, "retryable", True) for err in self.failures.values()
        )


class UpstreamAPIError(NotificationsMessagingError):
    """Raised when an upstream HTTP request fails after retries."""

    def __init__(
        self,
        message: str,
        *,
        url: str | None = None,
        status_code: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.cause = cause


class RateLimitError(UpstreamAPIError):
    """Raised when the API returns HTTP 429 (Too Many Requests)."""

    def __init__(
        self,
        message: str = "Rate limit exceeded (429)",
        *,
        url: str | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message, url=url, status_code=429)
        self.retry_after = retry_after
