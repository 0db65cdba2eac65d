"""Ledger reconciliation.

Given the items of a fresh fetch and a subscriber's ledger, compute which
items are new and what the ledger should look like afterwards:

1. Eviction: identities in the ledger that are absent from the fetch are
   dropped. A dropped item that reappears later is new again.
2. Admission: items not in the ledger are marked delivered and returned as
   new, in fetch order (oldest-first).
3. Items already in the ledger are skipped.

With ``use_watermark`` a never-seen item is also skipped when it was
published before the ledger's watermark; the watermark then advances to
the newest admitted publish time.

Reconciliation is pure: the input ledger is never mutated and nothing is
persisted here.

Example:
    >>> from feedwatch.ledger import reconcile, seed
    >>> from feedwatch.models import FeedItem
    >>> a, b = FeedItem(identity="a"), FeedItem(identity="b")
    >>> ledger = seed([a])
    >>> result = reconcile(ledger, [a, b])
    >>> [item.identity for item in result.new_items]
    ['b']
    >>> result.changed
    True
    >>> reconcile(result.ledger, [a, b]).new_items
    []
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime

from feedwatch.models.base import utcnow
from feedwatch.models.item import FeedItem
from feedwatch.models.ledger import Ledger, LedgerMark


@dataclass
class Reconciliation:
    """Outcome of reconciling one ledger against one fetch.

    Attributes:
        new_items: Items to deliver, in fetch order.
        ledger: The updated ledger.
        changed: True if anything was evicted or admitted.
        evicted: Identities removed by the eviction pass.
    """

    new_items: list[FeedItem] = field(default_factory=list)
    ledger: Ledger = field(default_factory=Ledger)
    changed: bool = False
    evicted: list[str] = field(default_factory=list)


def reconcile(
    ledger: Ledger,
    items: Sequence[FeedItem],
    *,
    now: datetime | None = None,
    use_watermark: bool = False,
) -> Reconciliation:
    """Reconcile a ledger against freshly fetched items.

    Args:
        ledger: Current ledger for the (subscriber, subscription) pair.
        items: Items from the fetcher, oldest-first.
        now: Delivery timestamp for admitted items (default: current time).
        use_watermark: Skip unseen items older than the ledger watermark.

    Returns:
        Reconciliation with new items and the updated ledger.
    """
    now = now or utcnow()
    fresh = {item.identity for item in items if item.identity}

    marks = dict(ledger.marks)
    evicted = [identity for identity in marks if identity not in fresh]
    for identity in evicted:
        del marks[identity]

    watermark = ledger.watermark
    new_items: list[FeedItem] = []
    for item in items:
        if not item.identity or item.identity in marks:
            continue
        if use_watermark and _is_stale(item, ledger.watermark):
            continue

        marks[item.identity] = LedgerMark(delivered_at=now, published_at=item.published_at)
        new_items.append(item)
        if item.published_at is not None and (watermark is None or item.published_at > watermark):
            watermark = item.published_at

    changed = bool(evicted or new_items)
    updated = Ledger(marks=marks, watermark=watermark) if changed else ledger
    return Reconciliation(
        new_items=new_items,
        ledger=updated,
        changed=changed,
        evicted=evicted,
    )


def seed(items: Iterable[FeedItem], *, now: datetime | None = None) -> Ledger:
    """Build a ledger that treats every given item as already delivered.

    Used on subscribe so the initial contents of a feed never flood the
    subscriber.

    Example:
        >>> from feedwatch.models import FeedItem
        >>> ledger = seed([FeedItem(identity="a"), FeedItem(identity=""), FeedItem(identity="b")])
        >>> sorted(ledger.identities())
        ['a', 'b']
    """
    now = now or utcnow()
    marks: dict[str, LedgerMark] = {}
    watermark: datetime | None = None
    for item in items:
        if not item.identity:
            continue
        marks[item.identity] = LedgerMark(delivered_at=now, published_at=item.published_at)
        if item.published_at is not None and (watermark is None or item.published_at > watermark):
            watermark = item.published_at
    return Ledger(marks=marks, watermark=watermark)


def _is_stale(item: FeedItem, watermark: datetime | None) -> bool:
    # Items without a publish time cannot be compared and are admitted.
    if watermark is None or item.published_at is None:
        return False
    return item.published_at < watermark
