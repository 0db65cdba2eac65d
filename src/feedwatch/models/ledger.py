"""Delivery ledger models.

A ledger records which item identities were already delivered to one
subscriber for one subscription. It is the only source of truth for
"already delivered".

Example:
    >>> from feedwatch.models.ledger import Ledger, LedgerMark
    >>> ledger = Ledger()
    >>> "abc" in ledger
    False
    >>> len(ledger)
    0
"""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from feedwatch.models.base import FeedWatchModel, utcnow


class LedgerMark(FeedWatchModel):
    """Delivery metadata for one item identity."""

    delivered_at: datetime = Field(default_factory=utcnow)
    published_at: datetime | None = Field(default=None)


class Ledger(FeedWatchModel):
    """Per (subscriber, subscription) delivery state."""

    marks: dict[str, LedgerMark] = Field(default_factory=dict)
    watermark: datetime | None = Field(
        default=None,
        description="Latest published time admitted so far",
    )

    def __contains__(self, identity: object) -> bool:
        return identity in self.marks

    def __len__(self) -> int:
        return len(self.marks)

    def identities(self) -> set[str]:
        """Delivered item identities."""
        return set(self.marks)
