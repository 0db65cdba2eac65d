"""Subscription models.

Example:
    >>> from feedwatch.models.subscription import Subscription
    >>> sub = Subscription(id="abc", link="https://example.com/rss", title="Example")
    >>> sub.topic is None
    True
    >>> sub.with_topic("news").topic
    'news'
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from pydantic import ConfigDict, Field

from feedwatch.models.base import FeedWatchModel, utcnow


class Subscription(FeedWatchModel):
    """A subscriber's durable interest in one feed URL.

    ``id`` is the feed identity; ``link`` is the URL the subscriber asked
    for, which is also the key the poller fetches.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Feed identity")
    link: str = Field(..., min_length=1, description="Subscribed (requested) URL")
    title: str = Field(default="")
    created_at: datetime = Field(default_factory=utcnow)
    topic: str | None = Field(default=None, description="Optional routing topic")

    def with_topic(self, topic: str | None) -> Subscription:
        """Return a copy with a new routing topic."""
        return self.model_copy(update={"topic": topic})


class SubscriptionStatistic(FeedWatchModel):
    """How many subscribers follow a subscription."""

    subscription: Subscription
    count: int = Field(default=0, ge=0)


@dataclass(frozen=True)
class Observer:
    """Registration of one subscriber's subscription for fan-out.

    Resolved through the store at reconciliation time instead of carrying
    captured state.
    """

    subscriber_id: str
    subscription_id: str
    feed_url: str
