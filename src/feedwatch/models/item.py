"""Feed and item models.

An item's identity is derived from the most stable string the feed offers:
the feed-provided unique identifier (GUID / Atom id / JSON Feed id) when
present, otherwise the item link. Both missing yields an empty identity,
which the ledger never admits.

Example:
    >>> from feedwatch.models.item import FeedItem, item_identity
    >>> item = FeedItem(
    ...     identity=item_identity("post-1", "https://example.com/1"),
    ...     title="Hello",
    ...     link="https://example.com/1",
    ... )
    >>> item.identity == item_identity("post-1", "https://example.com/other")
    True
    >>> item_identity(None, None)
    ''
"""

from __future__ import annotations

from datetime import datetime

from pydantic import ConfigDict, Field

from feedwatch.models.base import FeedWatchModel, content_hash


def item_identity(guid: str | None, link: str | None) -> str:
    """Derive a stable item identity, preferring the GUID over the link.

    Example:
        >>> item_identity("", "https://example.com/a") == item_identity(None, "https://example.com/a")
        True
    """
    source = (guid or "").strip() or (link or "").strip()
    if not source:
        return ""
    return content_hash(source)


def feed_identity(canonical_link: str | None, fallback_url: str) -> str:
    """Derive a feed identity from its canonical link.

    The requested URL is only used when the feed declares no link of its own.
    """
    source = (canonical_link or "").strip() or fallback_url.strip()
    return content_hash(source)


class FeedItem(FeedWatchModel):
    """One entry of a feed."""

    model_config = ConfigDict(frozen=True)

    identity: str = Field(..., description="Hash of GUID or link; empty if neither exists")
    title: str = Field(default="")
    link: str = Field(default="")
    published_at: datetime | None = Field(default=None)


class FeedInfo(FeedWatchModel):
    """Feed-level metadata from a fetch.

    ``link`` is the canonical link declared by the feed; ``url`` is the URL
    that was requested (and is what subscriptions and the registry key on).
    """

    model_config = ConfigDict(frozen=True)

    identity: str
    title: str = Field(default="")
    link: str = Field(default="")
    url: str


class FetchResult(FeedWatchModel):
    """Feed metadata plus items ordered oldest-first."""

    model_config = ConfigDict(frozen=True)

    feed: FeedInfo
    items: tuple[FeedItem, ...] = Field(default=())

    @property
    def latest(self) -> FeedItem | None:
        """Most recent item (the last one in fetch order), if any."""
        return self.items[-1] if self.items else None
