"""In-memory subscription store.

Provides a complete in-memory implementation of SubscriptionStore,
useful for testing, development, and the CLI's default mode.

Example:
    >>> from feedwatch.storage.memory import MemoryStore
    >>> store = MemoryStore()
    >>> hasattr(store, "load_ledger")
    True

Note:
    All methods are async. Use within async context or with asyncio.run().
"""

from __future__ import annotations

from collections import defaultdict

from feedwatch.models.ledger import Ledger
from feedwatch.models.subscription import Subscription, SubscriptionStatistic


class MemoryStore:
    """In-memory store using dictionaries.

    Data is lost when the process exits. Returned ledgers are copies, so
    callers can never alias stored state.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[str, dict[str, Subscription]] = defaultdict(dict)
        self._ledgers: dict[tuple[str, str], Ledger] = {}
        self._statistics: dict[str, SubscriptionStatistic] = {}
        self._initialized = False

    async def initialize(self) -> None:
        """No-op for memory storage."""
        self._initialized = True

    async def close(self) -> None:
        """Clear all data."""
        self._subscriptions.clear()
        self._ledgers.clear()
        self._statistics.clear()
        self._initialized = False

    # --- Subscription Operations ---

    async def list_subscribers(self) -> list[str]:
        return [sid for sid, subs in self._subscriptions.items() if subs]

    async def get_subscriptions(self, subscriber_id: str) -> dict[str, Subscription]:
        return dict(self._subscriptions.get(subscriber_id, {}))

    async def add_subscription(self, subscriber_id: str, subscription: Subscription) -> None:
        subs = self._subscriptions[subscriber_id]
        is_new = subscription.id not in subs
        subs[subscription.id] = subscription

        if is_new:
            stat = self._statistics.get(subscription.id)
            count = stat.count if stat is not None else 0
            self._statistics[subscription.id] = SubscriptionStatistic(
                subscription=subscription,
                count=count + 1,
            )

    async def update_subscription(self, subscriber_id: str, subscription: Subscription) -> None:
        self._subscriptions[subscriber_id][subscription.id] = subscription

    async def delete_subscription(self, subscriber_id: str, subscription_id: str) -> bool:
        subs = self._subscriptions.get(subscriber_id)
        if not subs or subscription_id not in subs:
            return False
        del subs[subscription_id]

        stat = self._statistics.get(subscription_id)
        if stat is not None:
            if stat.count <= 1:
                del self._statistics[subscription_id]
            else:
                self._statistics[subscription_id] = SubscriptionStatistic(
                    subscription=stat.subscription,
                    count=stat.count - 1,
                )
        return True

    async def top_subscriptions(self, limit: int = 5) -> list[SubscriptionStatistic]:
        ranked = sorted(
            self._statistics.values(),
            key=lambda stat: (-stat.count, stat.subscription.created_at),
        )
        return ranked[:limit]

    # --- Ledger Operations ---

    async def load_ledger(self, subscriber_id: str, subscription_id: str) -> Ledger:
        ledger = self._ledgers.get((subscriber_id, subscription_id))
        if ledger is None:
            return Ledger()
        return ledger.model_copy(deep=True)

    async def save_ledger(self, subscriber_id: str, subscription_id: str, ledger: Ledger) -> None:
        self._ledgers[(subscriber_id, subscription_id)] = ledger.model_copy(deep=True)

    async def delete_ledger(self, subscriber_id: str, subscription_id: str) -> bool:
        return self._ledgers.pop((subscriber_id, subscription_id), None) is not None
