"""Tests for feedwatch.core.feedwatch - Main orchestrator."""

from __future__ import annotations

import asyncio
from collections import Counter
from datetime import UTC, datetime, timedelta

import pytest

from feedwatch.core.config import get_settings
from feedwatch.core.exceptions import (
    DuplicateSubscriptionError,
    FetchError,
    PersistenceError,
    SubscriptionNotFoundError,
    ValidationError,
)
from feedwatch.core.feedwatch import FeedWatch
from feedwatch.models import (
    FeedInfo,
    FeedItem,
    FetchResult,
    Ledger,
    Observer,
    Subscription,
    feed_identity,
)
from feedwatch.storage.memory import MemoryStore

URL = "https://example.com/rss"
OTHER = "https://other.example.com/rss"
BASE = datetime(2026, 1, 1, tzinfo=UTC)

# =============================================================================
# Test Fixtures
# =============================================================================


def make_items(start: int, stop: int) -> list[FeedItem]:
    return [
        FeedItem(
            identity=f"item-{n}",
            title=f"Item {n}",
            link=f"https://example.com/{n}",
            published_at=BASE + timedelta(minutes=n),
        )
        for n in range(start, stop)
    ]


class FakeFetcher:
    """Fetcher serving whatever items the test puts in ``feeds``."""

    def __init__(self) -> None:
        self.feeds: dict[str, list[FeedItem]] = {}
        self.identities: dict[str, str] = {}
        self.calls: Counter[str] = Counter()
        self.closed = False

    async def fetch(self, url: str) -> FetchResult:
        self.calls[url] += 1
        if url not in self.feeds:
            raise FetchError("not found", url=url)
        identity = self.identities.get(url) or feed_identity(None, url)
        feed = FeedInfo(identity=identity, title=f"Feed {url}", url=url)
        return FetchResult(feed=feed, items=tuple(self.feeds[url]))

    async def close(self) -> None:
        self.closed = True


class RecordingDelivery:
    """Delivery channel that records messages and can be made to fail."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, str, bool]] = []
        self.failing: set[str] = set()

    async def initialize(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def deliver(self, subscriber_id: str, text: str, suppress_link_preview: bool = False) -> None:
        if subscriber_id in self.failing:
            raise ConnectionError("transport down")
        self.messages.append((subscriber_id, text, suppress_link_preview))

    def texts_for(self, subscriber_id: str) -> str:
        return "".join(text for sid, text, _ in self.messages if sid == subscriber_id)


class GatedDelivery(RecordingDelivery):
    """Delivery channel that blocks until released."""

    def __init__(self) -> None:
        super().__init__()
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def deliver(self, subscriber_id: str, text: str, suppress_link_preview: bool = False) -> None:
        self.entered.set()
        await self.release.wait()
        await super().deliver(subscriber_id, text, suppress_link_preview)


class BrokenLedgerStore(MemoryStore):
    """MemoryStore whose ledger writes fail."""

    async def save_ledger(self, subscriber_id: str, subscription_id: str, ledger: Ledger) -> None:
        raise PersistenceError("disk full")


@pytest.fixture
def fetcher() -> FakeFetcher:
    fake = FakeFetcher()
    fake.feeds[URL] = make_items(0, 3)
    return fake


@pytest.fixture
def delivery() -> RecordingDelivery:
    return RecordingDelivery()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
async def watch(store, fetcher, delivery) -> FeedWatch:
    fw = FeedWatch(store, fetcher, delivery, settings=get_settings(poll_interval=60))
    await fw.initialize()
    return fw


# =============================================================================
# Subscribe Tests
# =============================================================================


class TestSubscribe:
    """Tests for subscribe()."""

    async def test_subscribe_returns_subscription_and_preview(self, watch, fetcher) -> None:
        result = await watch.subscribe("alice", URL)

        assert result.subscription.link == URL
        assert result.subscription.id == feed_identity(None, URL)
        assert result.subscription.title == f"Feed {URL}"
        assert result.preview is not None
        assert result.preview.title == "Item 2"
        assert result.item_count == 3

    async def test_subscribe_does_not_flood(self, watch, fetcher, delivery) -> None:
        """A feed with 50 items produces no deliveries on the next refresh."""
        fetcher.feeds[URL] = make_items(0, 50)

        await watch.subscribe("alice", URL)
        await watch.refresh(URL)

        assert delivery.messages == []

    async def test_subscribe_registers_observer(self, watch) -> None:
        await watch.subscribe("alice", URL)

        assert URL in watch.registry
        assert watch.registry.get(URL, "alice") is not None

    async def test_subscribe_with_topic(self, watch) -> None:
        result = await watch.subscribe("alice", URL, topic="news")

        assert result.subscription.topic == "news"

    async def test_invalid_url_rejected_before_fetch(self, watch, fetcher) -> None:
        with pytest.raises(ValidationError):
            await watch.subscribe("alice", "not a url")

        assert not fetcher.calls

    async def test_fetch_error_propagates(self, watch, store) -> None:
        with pytest.raises(FetchError):
            await watch.subscribe("alice", "https://missing.example.com/rss")

        assert await store.get_subscriptions("alice") == {}

    async def test_duplicate_rejected(self, watch) -> None:
        await watch.subscribe("alice", URL)

        with pytest.raises(DuplicateSubscriptionError):
            await watch.subscribe("alice", URL)

    async def test_same_url_with_new_feed_identity_rejected(self, watch, fetcher) -> None:
        """A feed that changed its canonical link cannot be followed twice by URL."""
        await watch.subscribe("alice", URL)
        fetcher.identities[URL] = "moved-feed"

        with pytest.raises(DuplicateSubscriptionError):
            await watch.subscribe("alice", URL)

        assert len(await watch.list_subscriptions("alice")) == 1

    async def test_persistence_error_surfaces(self, fetcher, delivery) -> None:
        store = BrokenLedgerStore()
        watch = FeedWatch(store, fetcher, delivery, settings=get_settings())

        with pytest.raises(PersistenceError):
            await watch.subscribe("alice", URL)

        assert await store.get_subscriptions("alice") == {}
        assert URL not in watch.registry


# =============================================================================
# Delivery Tests
# =============================================================================


class TestDelivery:
    """Tests for the reconcile/deliver/persist step."""

    async def test_new_item_delivered_once(self, watch, fetcher, delivery) -> None:
        await watch.subscribe("alice", URL)
        fetcher.feeds[URL] = make_items(1, 4)

        await watch.refresh(URL)
        await watch.refresh(URL)

        assert len(delivery.messages) == 1
        subscriber, text, suppress = delivery.messages[0]
        assert subscriber == "alice"
        assert text == '<a href="https://example.com/3">Item 3</a>\n'
        assert suppress is False

    async def test_fan_out_one_fetch_independent_ledgers(self, watch, fetcher, delivery) -> None:
        await watch.subscribe("alice", URL)
        fetcher.feeds[URL] = make_items(0, 4)
        await watch.subscribe("bob", URL)
        fetcher.calls.clear()

        fetcher.feeds[URL] = make_items(0, 5)
        await watch.refresh(URL)

        assert fetcher.calls[URL] == 1
        assert "Item 3" in delivery.texts_for("alice")
        assert "Item 4" in delivery.texts_for("alice")
        assert "Item 3" not in delivery.texts_for("bob")
        assert "Item 4" in delivery.texts_for("bob")

    async def test_unsubscribe_leaves_other_subscriber(self, watch, fetcher, delivery, store) -> None:
        await watch.subscribe("alice", URL)
        result = await watch.subscribe("bob", URL)

        await watch.unsubscribe("alice", result.subscription.id)
        fetcher.feeds[URL] = make_items(0, 4)
        await watch.refresh(URL)

        assert delivery.texts_for("alice") == ""
        assert "Item 3" in delivery.texts_for("bob")
        assert len(await store.load_ledger("alice", result.subscription.id)) == 0

    async def test_unsubscribe_waits_for_in_flight_delivery(self, store, fetcher) -> None:
        """A ledger deleted by unsubscribe is not written back by a running refresh."""
        delivery = GatedDelivery()
        watch = FeedWatch(store, fetcher, delivery, settings=get_settings())
        result = await watch.subscribe("alice", URL)
        sub_id = result.subscription.id
        fetcher.feeds[URL] = make_items(1, 4)

        refresh = asyncio.create_task(watch.refresh(URL))
        await delivery.entered.wait()
        unsubscribe = asyncio.create_task(watch.unsubscribe("alice", sub_id))
        await asyncio.sleep(0.01)
        assert not unsubscribe.done()

        delivery.release.set()
        await refresh
        await unsubscribe

        assert await store.get_subscriptions("alice") == {}
        assert await store.delete_ledger("alice", sub_id) is False

    async def test_resubscribe_after_in_flight_delivery_keeps_seeded_ledger(
        self, store, fetcher
    ) -> None:
        delivery = GatedDelivery()
        watch = FeedWatch(store, fetcher, delivery, settings=get_settings())
        result = await watch.subscribe("alice", URL)
        fetcher.feeds[URL] = make_items(1, 4)

        refresh = asyncio.create_task(watch.refresh(URL))
        await delivery.entered.wait()
        unsubscribe = asyncio.create_task(watch.unsubscribe("alice", result.subscription.id))
        delivery.release.set()
        await refresh
        await unsubscribe

        fetcher.feeds[URL] = make_items(10, 12)
        await watch.subscribe("alice", URL)

        ledger = await store.load_ledger("alice", result.subscription.id)
        assert ledger.identities() == {"item-10", "item-11"}

    async def test_delivery_failure_still_updates_ledger(self, watch, fetcher, delivery) -> None:
        await watch.subscribe("alice", URL)
        delivery.failing.add("alice")
        fetcher.feeds[URL] = make_items(0, 4)

        await watch.refresh(URL)
        delivery.failing.clear()
        await watch.refresh(URL)

        assert delivery.messages == []

    async def test_large_batch_is_chunked(self, fetcher, delivery, store) -> None:
        watch = FeedWatch(store, fetcher, delivery, settings=get_settings(message_limit=200))
        fetcher.feeds[URL] = []
        await watch.subscribe("alice", URL)

        fetcher.feeds[URL] = make_items(0, 20)
        await watch.refresh(URL)

        assert len(delivery.messages) > 1
        assert all(len(text) <= 200 for _, text, _ in delivery.messages)
        assert [suppress for _, _, suppress in delivery.messages][0] is False
        assert all(suppress for _, _, suppress in delivery.messages[1:])
        combined = delivery.texts_for("alice")
        assert combined.index("Item 0") < combined.index("Item 19")

    async def test_evicted_item_redelivered(self, watch, fetcher, delivery) -> None:
        await watch.subscribe("alice", URL)

        fetcher.feeds[URL] = make_items(1, 3)
        await watch.refresh(URL)
        fetcher.feeds[URL] = make_items(0, 3)
        await watch.refresh(URL)

        assert "Item 0" in delivery.texts_for("alice")

    async def test_stale_observer_is_ignored(self, watch, fetcher, delivery) -> None:
        ghost = Observer(subscriber_id="ghost", subscription_id="x", feed_url=URL)
        result = await fetcher.fetch(URL)

        assert await watch.handle_items(ghost, result) is None
        assert delivery.messages == []

    async def test_ledger_load_failure_is_skipped(self, watch, fetcher, delivery, store) -> None:
        await watch.subscribe("alice", URL)

        async def broken_load(*args) -> Ledger:
            raise PersistenceError("corrupt")

        store.load_ledger = broken_load
        fetcher.feeds[URL] = make_items(0, 4)

        assert await watch.refresh(URL) == 1
        assert delivery.messages == []


# =============================================================================
# Subscription Management Tests
# =============================================================================


class TestManagement:
    """Tests for list/unsubscribe/topic/top."""

    async def test_list_is_oldest_first(self, watch, fetcher) -> None:
        fetcher.feeds[OTHER] = make_items(0, 1)
        await watch.subscribe("alice", URL)
        await watch.subscribe("alice", OTHER)

        subs = await watch.list_subscriptions("alice")

        assert [sub.link for sub in subs] == [URL, OTHER]

    async def test_unsubscribe_at_position(self, watch, fetcher) -> None:
        fetcher.feeds[OTHER] = make_items(0, 1)
        await watch.subscribe("alice", URL)
        await watch.subscribe("alice", OTHER)

        removed = await watch.unsubscribe_at("alice", 2)

        assert removed.link == OTHER
        assert [sub.link for sub in await watch.list_subscriptions("alice")] == [URL]
        assert OTHER not in watch.registry

    @pytest.mark.parametrize("position", [0, 2, -1])
    async def test_unsubscribe_at_out_of_range(self, watch, position: int) -> None:
        await watch.subscribe("alice", URL)

        with pytest.raises(SubscriptionNotFoundError):
            await watch.unsubscribe_at("alice", position)

    async def test_unsubscribe_keeps_other_subscription_on_same_url(self, store, fetcher, delivery) -> None:
        """Removing one subscription never unregisters another one's observer."""
        old = Subscription(id="old-feed", link=URL, title="Old", created_at=BASE)
        new = Subscription(id="new-feed", link=URL, title="New", created_at=BASE + timedelta(days=1))
        await store.add_subscription("alice", old)
        await store.add_subscription("alice", new)
        watch = FeedWatch(store, fetcher, delivery, settings=get_settings())
        await watch.restore()

        await watch.unsubscribe("alice", "old-feed")

        current = watch.registry.get(URL, "alice")
        assert current is not None
        assert current.subscription_id == "new-feed"

    async def test_unsubscribe_unknown(self, watch) -> None:
        with pytest.raises(SubscriptionNotFoundError):
            await watch.unsubscribe("alice", "nope")

    async def test_set_topic(self, watch) -> None:
        result = await watch.subscribe("alice", URL)

        updated = await watch.set_topic("alice", result.subscription.id, "tech")

        assert updated.topic == "tech"
        stored = await watch.get_subscription("alice", result.subscription.id)
        assert stored.topic == "tech"

    async def test_top_subscriptions(self, watch, fetcher) -> None:
        fetcher.feeds[OTHER] = make_items(0, 1)
        await watch.subscribe("alice", URL)
        await watch.subscribe("bob", URL)
        await watch.subscribe("bob", OTHER)

        top = await watch.top_subscriptions()

        assert [(stat.subscription.link, stat.count) for stat in top] == [(URL, 2), (OTHER, 1)]


# =============================================================================
# Lifecycle Tests
# =============================================================================


class TestLifecycle:
    """Tests for restore/start/close."""

    async def test_restore_registers_stored_subscriptions(self, store, fetcher, delivery) -> None:
        first = FeedWatch(store, fetcher, delivery, settings=get_settings())
        await first.subscribe("alice", URL)
        await first.subscribe("bob", URL)

        second = FeedWatch(store, fetcher, delivery, settings=get_settings())
        restored = await second.restore()

        assert restored == 2
        assert len(second.registry) == 2
        assert second.registry.urls() == [URL]

    async def test_restart_does_not_redeliver(self, store, fetcher, delivery) -> None:
        first = FeedWatch(store, fetcher, delivery, settings=get_settings())
        await first.subscribe("alice", URL)

        second = FeedWatch(store, fetcher, delivery, settings=get_settings())
        await second.restore()
        await second.refresh(URL)

        assert delivery.messages == []

    async def test_context_manager_closes_components(self, store, fetcher, delivery) -> None:
        async with FeedWatch(store, fetcher, delivery, settings=get_settings()) as watch:
            await watch.subscribe("alice", URL)
            watch.start()
            assert watch.info()["polling"] is True

        assert fetcher.closed is True
        assert len(watch.registry) == 0
        assert watch.info()["polling"] is False

    async def test_info(self, watch) -> None:
        await watch.subscribe("alice", URL)

        info = watch.info()

        assert info["feeds"] == 1
        assert info["observers"] == 1
        assert info["initialized"] is True
