"""FeedWatch data models."""

from feedwatch.models.base import FeedWatchModel, content_hash
from feedwatch.models.item import (
    FeedInfo,
    FeedItem,
    FetchResult,
    feed_identity,
    item_identity,
)
from feedwatch.models.ledger import Ledger, LedgerMark
from feedwatch.models.subscription import Observer, Subscription, SubscriptionStatistic

__all__ = [
    "FeedWatchModel",
    "content_hash",
    # Feeds
    "FeedInfo",
    "FeedItem",
    "FetchResult",
    "feed_identity",
    "item_identity",
    # Ledger
    "Ledger",
    "LedgerMark",
    # Subscriptions
    "Observer",
    "Subscription",
    "SubscriptionStatistic",
]
