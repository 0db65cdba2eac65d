"""Feed fetcher protocol.

Example:
    >>> from feedwatch.protocols.fetcher import FeedFetcher
    >>> hasattr(FeedFetcher, "fetch")
    True
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from feedwatch.models.item import FetchResult


@runtime_checkable
class FeedFetcher(Protocol):
    """Retrieves and parses one feed URL.

    Implementations perform a single attempt and never retry.
    """

    async def fetch(self, url: str) -> FetchResult:
        """Fetch and parse a feed.

        Args:
            url: Absolute feed URL (validated by the caller).

        Returns:
            FetchResult with items ordered oldest-first.

        Raises:
            FetchError: On any network, HTTP or parse failure.
        """
        ...

    async def close(self) -> None:
        """Release connections."""
        ...
