"""Feed polling.

Example:
    >>> from feedwatch.scheduler import Poller
    >>> # poller = Poller(registry, fetcher, handler, interval=60)
    >>> # poller.start()
"""

from feedwatch.scheduler.poller import ItemHandler, Poller, PollerStats

__all__ = ["ItemHandler", "Poller", "PollerStats"]
