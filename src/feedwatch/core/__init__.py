"""Core configuration, errors and orchestration."""

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

__all__ = [
    # Orchestrator
    "FeedWatch",
    "SubscribeResult",
    # Settings
    "Settings",
    "get_settings",
    # Errors
    "ConfigurationError",
    "DuplicateSubscriptionError",
    "FeedWatchError",
    "FetchError",
    "PersistenceError",
    "SubscriptionError",
    "SubscriptionNotFoundError",
    "ValidationError",
]
