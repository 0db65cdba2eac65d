"""Subscription storage protocol.

Defines the interface for persisting subscriptions and delivery ledgers.

Example:
    >>> from feedwatch.protocols.storage import SubscriptionStore
    >>> hasattr(SubscriptionStore, "load_ledger")
    True
    >>> hasattr(SubscriptionStore, "add_subscription")
    True
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from feedwatch.models import Ledger, Subscription, SubscriptionStatistic


@runtime_checkable
class SubscriptionStore(Protocol):
    """Storage backend protocol.

    Every method raises PersistenceError when the backend fails.

    See Also:
        feedwatch.storage.memory.MemoryStore: In-memory implementation
        feedwatch.storage.sqlite.SQLiteStore: SQLite implementation
    """

    # --- Subscription Operations ---

    async def list_subscribers(self) -> list[str]:
        """IDs of every subscriber with at least one subscription."""
        ...

    async def get_subscriptions(self, subscriber_id: str) -> dict[str, Subscription]:
        """Subscriptions of one subscriber keyed by subscription ID."""
        ...

    async def add_subscription(self, subscriber_id: str, subscription: Subscription) -> None:
        """Persist a new subscription and bump its subscriber count."""
        ...

    async def update_subscription(self, subscriber_id: str, subscription: Subscription) -> None:
        """Overwrite an existing subscription record."""
        ...

    async def delete_subscription(self, subscriber_id: str, subscription_id: str) -> bool:
        """Delete a subscription. Returns True if it existed."""
        ...

    async def top_subscriptions(self, limit: int = 5) -> list[SubscriptionStatistic]:
        """Most-followed subscriptions, highest count first."""
        ...

    # --- Ledger Operations ---

    async def load_ledger(self, subscriber_id: str, subscription_id: str) -> Ledger:
        """Load a ledger; an empty one if nothing was saved."""
        ...

    async def save_ledger(self, subscriber_id: str, subscription_id: str, ledger: Ledger) -> None:
        """Persist a ledger, replacing any previous one."""
        ...

    async def delete_ledger(self, subscriber_id: str, subscription_id: str) -> bool:
        """Delete a ledger. Returns True if it existed."""
        ...

    # --- Lifecycle ---

    async def initialize(self) -> None:
        """Initialize storage (create tables, etc.)."""
        ...

    async def close(self) -> None:
        """Clean up resources."""
        ...
