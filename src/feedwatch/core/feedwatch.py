"""FeedWatch - main orchestrator.

The FeedWatch class wires the collaborators together: it owns the observer
registry and poller, and drives subscribe, unsubscribe, restore and the
per-observer reconcile/deliver/persist step.

Example:
    >>> from feedwatch import FeedWatch, HttpFeedFetcher, MemoryStore, ConsoleDelivery
    >>> watch = FeedWatch(
    ...     store=MemoryStore(),
    ...     fetcher=HttpFeedFetcher(),
    ...     delivery=ConsoleDelivery(),
    ... )
    >>> # async with watch:
    >>> #     result = await watch.subscribe("alice", "https://example.com/feed.xml")
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from feedwatch.core.config import Settings, get_settings
from feedwatch.core.exceptions import (
    DuplicateSubscriptionError,
    FeedWatchError,
    SubscriptionNotFoundError,
)
from feedwatch.delivery.format import chunk_messages
from feedwatch.ledger.reconcile import Reconciliation, reconcile, seed
from feedwatch.models.item import FeedItem, FetchResult
from feedwatch.models.subscription import Observer, Subscription, SubscriptionStatistic
from feedwatch.registry.observers import ObserverRegistry
from feedwatch.scheduler.poller import Poller
from feedwatch.validation import validate_url

if TYPE_CHECKING:
    from feedwatch.protocols.delivery import DeliveryChannel
    from feedwatch.protocols.fetcher import FeedFetcher
    from feedwatch.protocols.storage import SubscriptionStore

logger = logging.getLogger(__name__)


@dataclass
class SubscribeResult:
    """Outcome of a successful subscribe.

    Attributes:
        subscription: The stored subscription.
        preview: Latest item of the initial fetch, shown once to the
            subscriber. It is not delivered through the ledger.
        item_count: Items seeded into the ledger.
    """

    subscription: Subscription
    preview: FeedItem | None = None
    item_count: int = 0


class FeedWatch:
    """Main orchestrator for feed monitoring.

    Args:
        store: Subscription and ledger persistence.
        fetcher: Feed fetcher.
        delivery: Channel that sends messages to subscribers.
        settings: Polling and delivery settings (default: from environment).
        registry: Observer registry (default: a fresh one).
    """

    def __init__(
        self,
        store: SubscriptionStore,
        fetcher: FeedFetcher,
        delivery: DeliveryChannel,
        *,
        settings: Settings | None = None,
        registry: ObserverRegistry | None = None,
    ) -> None:
        self._store = store
        self._fetcher = fetcher
        self._delivery = delivery
        self._settings = settings or get_settings()
        self._registry = registry or ObserverRegistry()
        self._poller = Poller(
            self._registry,
            fetcher,
            self.handle_items,
            interval=self._settings.poll_interval,
            timeout=self._settings.fetch_timeout,
            max_concurrency=self._settings.max_concurrent_fetches,
        )
        self._registry.set_first_observer_hook(self._poller.trigger)
        self._ledger_locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._initialized = False

    @property
    def store(self) -> SubscriptionStore:
        return self._store

    @property
    def registry(self) -> ObserverRegistry:
        return self._registry

    @property
    def poller(self) -> Poller:
        return self._poller

    @property
    def settings(self) -> Settings:
        return self._settings

    # --- Subscriptions ---

    async def subscribe(
        self,
        subscriber_id: str,
        url: str,
        *,
        topic: str | None = None,
    ) -> SubscribeResult:
        """Subscribe a subscriber to a feed URL.

        The initial items are seeded into the ledger as already delivered,
        so subscribing never floods the subscriber. The latest of them is
        returned as a one-time preview.

        Raises:
            ValidationError: If the URL is not an absolute http(s) URL.
            FetchError: If the feed cannot be fetched or parsed.
            DuplicateSubscriptionError: If the subscriber already follows it.
            PersistenceError: If the subscription or ledger cannot be saved.
        """
        url = validate_url(url)
        result = await self._fetcher.fetch(url)

        async with self._pair_lock(subscriber_id, result.feed.identity):
            existing = await self._store.get_subscriptions(subscriber_id)
            for current in existing.values():
                # The registry keys on (URL, subscriber), so a URL may back only one subscription.
                if current.id == result.feed.identity or current.link == url:
                    raise DuplicateSubscriptionError(
                        f"{subscriber_id} already follows {current.title or current.link}"
                    )

            subscription = Subscription(
                id=result.feed.identity,
                link=url,
                title=result.feed.title or url,
                topic=topic,
            )
            # Ledger first: a subscription must never exist without its seeded ledger.
            await self._store.save_ledger(subscriber_id, subscription.id, seed(result.items))
            await self._store.add_subscription(subscriber_id, subscription)

            self._observe(subscriber_id, subscription)
        logger.info(
            "%s subscribed to %s (%d items seeded)",
            subscriber_id,
            url,
            len(result.items),
        )
        return SubscribeResult(
            subscription=subscription,
            preview=result.latest,
            item_count=len(result.items),
        )

    async def unsubscribe(self, subscriber_id: str, subscription_id: str) -> Subscription:
        """Remove a subscription together with its ledger and observer.

        Raises:
            SubscriptionNotFoundError: If the subscriber does not follow it.
            PersistenceError: If the records cannot be deleted.
        """
        # Waits for an in-flight reconciliation of this pair to finish saving.
        async with self._pair_lock(subscriber_id, subscription_id):
            subscription = await self.get_subscription(subscriber_id, subscription_id)

            await self._store.delete_subscription(subscriber_id, subscription_id)
            await self._store.delete_ledger(subscriber_id, subscription_id)

            self._registry.remove(subscription.link, subscriber_id, subscription_id)
        logger.info("%s unsubscribed from %s", subscriber_id, subscription.link)
        return subscription

    async def unsubscribe_at(self, subscriber_id: str, position: int) -> Subscription:
        """Unsubscribe by 1-based position in list_subscriptions().

        Raises:
            SubscriptionNotFoundError: If the position is out of range.
        """
        subscriptions = await self.list_subscriptions(subscriber_id)
        if position < 1 or position > len(subscriptions):
            raise SubscriptionNotFoundError(f"Invalid index: {position}")
        return await self.unsubscribe(subscriber_id, subscriptions[position - 1].id)

    async def get_subscription(self, subscriber_id: str, subscription_id: str) -> Subscription:
        subscriptions = await self._store.get_subscriptions(subscriber_id)
        subscription = subscriptions.get(subscription_id)
        if subscription is None:
            raise SubscriptionNotFoundError(
                f"{subscriber_id} has no subscription {subscription_id}"
            )
        return subscription

    async def list_subscriptions(self, subscriber_id: str) -> list[Subscription]:
        """Subscriptions of a subscriber, oldest first."""
        subscriptions = await self._store.get_subscriptions(subscriber_id)
        return sorted(subscriptions.values(), key=lambda sub: sub.created_at)

    async def set_topic(
        self,
        subscriber_id: str,
        subscription_id: str,
        topic: str | None,
    ) -> Subscription:
        """Change the routing topic of a subscription."""
        subscription = await self.get_subscription(subscriber_id, subscription_id)
        updated = subscription.with_topic(topic)
        await self._store.update_subscription(subscriber_id, updated)
        return updated

    async def top_subscriptions(self, limit: int = 5) -> list[SubscriptionStatistic]:
        """Most-followed subscriptions."""
        return await self._store.top_subscriptions(limit)

    async def restore(self) -> int:
        """Register observers for every stored subscription.

        Called at process start. A subscriber whose subscriptions cannot be
        loaded is logged and skipped.

        Returns:
            Number of observers registered.
        """
        restored = 0
        for subscriber_id in await self._store.list_subscribers():
            try:
                subscriptions = await self._store.get_subscriptions(subscriber_id)
            except FeedWatchError as e:
                logger.error("Cannot restore subscriptions of %s: %s", subscriber_id, e)
                continue
            for subscription in subscriptions.values():
                self._observe(subscriber_id, subscription)
                restored += 1
        logger.info("Restored %d observers", restored)
        return restored

    # --- Polling ---

    async def handle_items(self, observer: Observer, result: FetchResult) -> Reconciliation | None:
        """Reconcile one observer's ledger against a fetch and deliver new items.

        Delivery failures are logged and never block the ledger update.
        Persistence failures are logged; there is no caller to report to.

        Returns:
            The reconciliation, or None if the subscription no longer exists.
        """
        key = (observer.subscriber_id, observer.subscription_id)
        async with self._pair_lock(*key):
            # Observer may have been removed while waiting for the fetch or lock.
            if not self._is_registered(observer):
                return None

            try:
                ledger = await self._store.load_ledger(*key)
            except FeedWatchError as e:
                logger.error("Cannot load ledger for %s/%s: %s", *key, e)
                return None

            outcome = reconcile(
                ledger,
                result.items,
                use_watermark=self._settings.use_watermark,
            )

            if outcome.new_items:
                await self._deliver(observer.subscriber_id, outcome.new_items)

            if outcome.changed and self._is_registered(observer):
                try:
                    await self._store.save_ledger(*key, outcome.ledger)
                except FeedWatchError as e:
                    logger.error("Cannot save ledger for %s/%s: %s", *key, e)
            return outcome

    async def refresh(self, url: str) -> int | None:
        """Refresh one URL immediately (see Poller.refresh)."""
        return await self._poller.refresh(url)

    async def _deliver(self, subscriber_id: str, items: list[FeedItem]) -> None:
        for message in chunk_messages(items, self._settings.message_limit):
            try:
                await self._delivery.deliver(
                    subscriber_id,
                    message.text,
                    message.suppress_link_preview,
                )
            except Exception as e:
                logger.warning("Delivery to %s failed: %s", subscriber_id, e)

    def _pair_lock(self, subscriber_id: str, subscription_id: str) -> asyncio.Lock:
        return self._ledger_locks.setdefault((subscriber_id, subscription_id), asyncio.Lock())

    def _is_registered(self, observer: Observer) -> bool:
        current = self._registry.get(observer.feed_url, observer.subscriber_id)
        return current is not None and current.subscription_id == observer.subscription_id

    def _observe(self, subscriber_id: str, subscription: Subscription) -> None:
        self._registry.add(
            Observer(
                subscriber_id=subscriber_id,
                subscription_id=subscription.id,
                feed_url=subscription.link,
            )
        )

    # --- Lifecycle ---

    def start(self) -> None:
        """Start polling."""
        self._poller.start()

    async def stop(self) -> None:
        """Stop polling and wait for in-flight refreshes."""
        await self._poller.stop()

    async def initialize(self) -> None:
        """Initialize the store and delivery channel."""
        if self._initialized:
            return
        await self._store.initialize()
        await self._delivery.initialize()
        self._initialized = True

    async def close(self) -> None:
        """Stop polling and close every component."""
        await self.stop()
        await self._fetcher.close()
        await self._delivery.close()
        await self._store.close()
        self._registry.clear()
        self._ledger_locks.clear()
        self._initialized = False

    async def __aenter__(self) -> FeedWatch:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def info(self) -> dict[str, Any]:
        """Get orchestrator metadata."""
        return {
            "feeds": len(self._registry.urls()),
            "observers": len(self._registry),
            "polling": self._poller.running,
            "cycles": self._poller.cycles,
            "poll_interval": self._settings.poll_interval,
            "initialized": self._initialized,
        }
