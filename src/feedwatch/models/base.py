"""Base models and shared helpers.

Identities throughout FeedWatch are MD5 hex digests of a stable source
string (a GUID, a link). They are fixed-width and cheap to store.

Example:
    >>> from feedwatch.models.base import content_hash
    >>> len(content_hash("https://example.com/post/1"))
    32
"""

from __future__ import annotations

import hashlib
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict


class FeedWatchModel(BaseModel):
    """Base model with standard configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        validate_assignment=True,
        extra="forbid",
    )


def content_hash(value: str) -> str:
    """Fixed-width hex digest used for item and feed identities.

    Example:
        >>> content_hash("a") == content_hash("a")
        True
        >>> content_hash("a") == content_hash("b")
        False
    """
    return hashlib.md5(value.encode("utf-8")).hexdigest()


def utcnow() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(UTC)
