"""
FeedWatch - Feed Monitoring and Fan-out Engine.

FeedWatch polls syndication feeds and notifies every subscriber of a feed
about new items exactly once, even across restarts and feed reordering.

Key Features:
- One fetch per feed URL per cycle, shared by all of its subscribers
- Per-subscriber delivery ledger (no duplicate or missed notifications)
- Subscribe seeds the ledger, so no notification storm on first fetch
- Messages chunked to the transport's size limit
- Protocol-based collaborators (swap storage and delivery without code changes)

Quick Start:
    >>> from feedwatch import ConsoleDelivery, FeedWatch, HttpFeedFetcher, MemoryStore
    >>> watch = FeedWatch(
    ...     store=MemoryStore(),
    ...     fetcher=HttpFeedFetcher(),
    ...     delivery=ConsoleDelivery(),
    ... )
    >>> # async with watch:
    >>> #     await watch.subscribe("alice", "https://example.com/feed.xml")
    >>> #     watch.start()

Architecture:
    Fetchers: HttpFeedFetcher
    Storage: MemoryStore, SQLiteStore
    Delivery: ConsoleDelivery
"""

# Core orchestration
from feedwatch.core.config import Settings, get_settings
from feedwatch.core.exceptions import (
    ConfigurationError,
    DuplicateSubscriptionError,
    FeedWatchError,
    FetchError,
    PersistenceError,
    SubscriptionError,
    SubscriptionNotFoundError,
    ValidationError,
)
from feedwatch.core.feedwatch import FeedWatch, SubscribeResult

# Delivery
from feedwatch.delivery import ConsoleDelivery, Message, chunk_messages, format_item

# Fetchers
from feedwatch.fetcher import HttpFeedFetcher

# Ledger
from feedwatch.ledger import Reconciliation, reconcile, seed

# Models
from feedwatch.models import (
    FeedInfo,
    FeedItem,
    FetchResult,
    Ledger,
    LedgerMark,
    Observer,
    Subscription,
    SubscriptionStatistic,
    feed_identity,
    item_identity,
)

# Protocols
from feedwatch.protocols import DeliveryChannel, FeedFetcher, SubscriptionStore

# Registry and polling
from feedwatch.registry import ObserverRegistry
from feedwatch.scheduler import Poller, PollerStats

# Storage backends
from feedwatch.storage import MemoryStore, SQLiteStore, create_store

from feedwatch.validation import is_valid_url, validate_url

__version__ = "0.1.0"

__all__ = [
    # Models
    "FeedInfo",
    "FeedItem",
    "FetchResult",
    "Ledger",
    "LedgerMark",
    "Observer",
    "Subscription",
    "SubscriptionStatistic",
    "feed_identity",
    "item_identity",
    # Ledger
    "Reconciliation",
    "reconcile",
    "seed",
    # Protocols
    "DeliveryChannel",
    "FeedFetcher",
    "SubscriptionStore",
    # Fetchers
    "HttpFeedFetcher",
    # Registry and polling
    "ObserverRegistry",
    "Poller",
    "PollerStats",
    # Delivery
    "ConsoleDelivery",
    "Message",
    "chunk_messages",
    "format_item",
    # Storage
    "MemoryStore",
    "SQLiteStore",
    "create_store",
    # Orchestration
    "FeedWatch",
    "SubscribeResult",
    # Settings
    "Settings",
    "get_settings",
    # Validation
    "is_valid_url",
    "validate_url",
    # Errors
    "ConfigurationError",
    "DuplicateSubscriptionError",
    "FeedWatchError",
    "FetchError",
    "PersistenceError",
    "SubscriptionError",
    "SubscriptionNotFoundError",
    "ValidationError",
    # Version
    "__version__",
]
