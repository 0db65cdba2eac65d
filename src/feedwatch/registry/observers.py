"""Observer registry.

Maps a feed URL to the subscribers currently observing it. The poller
iterates the registry each cycle; subscribe and unsubscribe mutate it at any
time, including while a cycle is running.

All mutations are plain synchronous dict operations, so on a single event
loop they never interleave with each other or with a reader. Readers always
receive copies.

Example:
    >>> from feedwatch.models import Observer
    >>> from feedwatch.registry import ObserverRegistry
    >>> registry = ObserverRegistry()
    >>> registry.add(Observer("alice", "sub-1", "https://example.com/rss"))
    True
    >>> registry.add(Observer("bob", "sub-1", "https://example.com/rss"))
    False
    >>> sorted(o.subscriber_id for o in registry.observers_for("https://example.com/rss"))
    ['alice', 'bob']
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from feedwatch.models.subscription import Observer

logger = logging.getLogger(__name__)


class ObserverRegistry:
    """URL -> {subscriber_id -> Observer}.

    Args:
        on_first_observer: Called with the URL whenever it goes from zero to
            one observer. The poller uses this to fetch a new feed right away.
    """

    def __init__(self, on_first_observer: Callable[[str], None] | None = None) -> None:
        self._observers: dict[str, dict[str, Observer]] = {}
        self._on_first_observer = on_first_observer

    def set_first_observer_hook(self, hook: Callable[[str], None] | None) -> None:
        """Replace the first-observer callback."""
        self._on_first_observer = hook

    def add(self, observer: Observer) -> bool:
        """Register an observer, replacing any previous one for the same subscriber.

        Returns:
            True if this is the first observer of the URL.
        """
        observers = self._observers.setdefault(observer.feed_url, {})
        first = not observers
        observers[observer.subscriber_id] = observer
        logger.debug(
            "Observer added: %s -> %s (%d observers)",
            observer.subscriber_id,
            observer.feed_url,
            len(observers),
        )

        if first and self._on_first_observer is not None:
            self._on_first_observer(observer.feed_url)
        return first

    def remove(
        self,
        feed_url: str,
        subscriber_id: str,
        subscription_id: str | None = None,
    ) -> bool:
        """Unregister a subscriber from a URL.

        With ``subscription_id`` the observer is only removed if it belongs
        to that subscription. The URL entry stays addressable even when it
        becomes empty.

        Returns:
            True if an observer was removed, False otherwise.
        """
        observers = self._observers.get(feed_url)
        if not observers or subscriber_id not in observers:
            return False
        if subscription_id is not None and observers[subscriber_id].subscription_id != subscription_id:
            return False
        del observers[subscriber_id]
        logger.debug("Observer removed: %s -> %s", subscriber_id, feed_url)
        return True

    def get(self, feed_url: str, subscriber_id: str) -> Observer | None:
        """Current observer for a (URL, subscriber) pair, if any."""
        return self._observers.get(feed_url, {}).get(subscriber_id)

    def observers_for(self, feed_url: str) -> list[Observer]:
        """Snapshot of the observers of a URL (empty list if none)."""
        return list(self._observers.get(feed_url, {}).values())

    def urls(self) -> list[str]:
        """URLs that currently have at least one observer."""
        return [url for url, observers in self._observers.items() if observers]

    def snapshot(self) -> dict[str, list[Observer]]:
        """Copy of every non-empty URL entry."""
        return {
            url: list(observers.values())
            for url, observers in self._observers.items()
            if observers
        }

    def prune(self) -> int:
        """Drop empty URL entries. Returns how many were removed."""
        empty = [url for url, observers in self._observers.items() if not observers]
        for url in empty:
            del self._observers[url]
        return len(empty)

    def clear(self) -> None:
        """Remove every registration."""
        self._observers.clear()

    def __contains__(self, feed_url: object) -> bool:
        return isinstance(feed_url, str) and bool(self._observers.get(feed_url))

    def __len__(self) -> int:
        return sum(len(observers) for observers in self._observers.values())
