"""Protocols for the collaborators FeedWatch depends on."""

from feedwatch.protocols.delivery import DeliveryChannel
from feedwatch.protocols.fetcher import FeedFetcher
from feedwatch.protocols.storage import SubscriptionStore

__all__ = [
    "DeliveryChannel",
    "FeedFetcher",
    "SubscriptionStore",
]
