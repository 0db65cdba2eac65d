"""Custom exceptions.

FeedWatch uses a small hierarchy of exceptions so callers can tell a
transient feed problem from a storage or input problem:

Example:
    >>> from feedwatch.core.exceptions import FetchError, FeedWatchError
    >>> isinstance(FetchError("timed out", url="https://example.com/feed"), FeedWatchError)
    True
    >>> try:
    ...     raise ValidationError("missing scheme")
    ... except FeedWatchError as e:
    ...     print(f"Caught: {type(e).__name__}")
    Caught: ValidationError
"""

from __future__ import annotations


class FeedWatchError(Exception):
    """Base exception for FeedWatch.

    Example:
        >>> from feedwatch.core.exceptions import FeedWatchError
        >>> e = FeedWatchError("something went wrong")
        >>> str(e)
        'something went wrong'
    """


class FetchError(FeedWatchError):
    """Feed could not be retrieved or parsed.

    Covers malformed URLs, network failures, timeouts, non-2xx responses
    and unparseable bodies. The poller skips the URL for the cycle.

    Example:
        >>> from feedwatch.core.exceptions import FetchError
        >>> err = FetchError("HTTP 503", url="https://example.com/rss")
        >>> err.url
        'https://example.com/rss'
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.cause = cause


class PersistenceError(FeedWatchError):
    """Storage operation failed.

    Example:
        >>> from feedwatch.core.exceptions import PersistenceError
        >>> raise PersistenceError("database is locked")  # doctest: +IGNORE_EXCEPTION_DETAIL
        Traceback (most recent call last):
        PersistenceError: database is locked
    """


class ValidationError(FeedWatchError):
    """Input validation failed (e.g. a URL without scheme or host)."""


class ConfigurationError(FeedWatchError):
    """Configuration is invalid."""


class SubscriptionError(FeedWatchError):
    """Subscription operation was rejected."""


class DuplicateSubscriptionError(SubscriptionError):
    """Subscriber already follows this feed."""


class SubscriptionNotFoundError(SubscriptionError):
    """Subscriber does not follow the requested feed."""
