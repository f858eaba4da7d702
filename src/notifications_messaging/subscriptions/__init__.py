"""Subscription configuration, registry and pattern matching."""

from notifications_messaging.subscriptions.matcher import (
    PatternMatcher,
    detail_matches,
    find_matches,
    matches,
)
from notifications_messaging.subscriptions.registry import (
    SubscriptionRegistry,
    load_subscriptions,
)

__all__ = [
    "PatternMatcher",
    "SubscriptionRegistry",
    "detail_matches",
    "find_matches",
    "load_subscriptions",
    "matches",
]
