"""HTTP feed fetcher.

Retrieves a feed with httpx and parses it with feedparser (RSS, Atom, RDF)
or as JSON Feed. One request per call, no retries: the poller decides what
happens after a failure.

Example:
    >>> from feedwatch.fetcher.http import HttpFeedFetcher
    >>> fetcher = HttpFeedFetcher(timeout=10.0)
    >>> fetcher.timeout
    10.0
    >>> # result = await fetcher.fetch("https://example.com/feed.xml")
"""

from __future__ import annotations

import contextlib
import json
import logging
from calendar import timegm
from datetime import UTC, datetime
from typing import Any

import feedparser
import httpx

from feedwatch.core.config import DEFAULT_USER_AGENT
from feedwatch.core.exceptions import FetchError
from feedwatch.models.item import (
    FeedInfo,
    FeedItem,
    FetchResult,
    feed_identity,
    item_identity,
)

logger = logging.getLogger(__name__)

JSON_FEED_TYPES = ("application/feed+json", "application/json")


class HttpFeedFetcher:
    """Fetches feeds over HTTP.

    Args:
        user_agent: User-Agent header. Some hosts reject default clients,
            so a browser-like value is used by default.
        timeout: Per-request timeout in seconds.
        headers: Additional request headers.
        transport: Optional httpx transport (tests use httpx.MockTransport).

    Example:
        >>> fetcher = HttpFeedFetcher(headers={"Accept-Language": "en"})
        >>> fetcher.headers["Accept-Language"]
        'en'
    """

    def __init__(
        self,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._user_agent = user_agent
        self._timeout = timeout
        self._extra_headers = headers or {}
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def timeout(self) -> float:
        """Per-request timeout in seconds."""
        return self._timeout

    @property
    def headers(self) -> dict[str, str]:
        """Default headers for requests."""
        return {
            "User-Agent": self._user_agent,
            "Accept": (
                "application/rss+xml, application/atom+xml, application/feed+json, "
                "application/xml;q=0.9, text/xml;q=0.9, */*;q=0.8"
            ),
            **self._extra_headers,
        }

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers=self.headers,
                timeout=httpx.Timeout(self._timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> HttpFeedFetcher:
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def fetch(self, url: str) -> FetchResult:
        """Fetch and parse one feed.

        Args:
            url: Absolute feed URL.

        Returns:
            FetchResult with items sorted oldest-first.

        Raises:
            FetchError: On any network, HTTP or parse failure.
        """
        client = await self._ensure_client()
        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchError(
                f"HTTP {e.response.status_code} fetching {url}",
                url=url,
                cause=e,
            ) from e
        except httpx.TimeoutException as e:
            raise FetchError(f"Timed out fetching {url}", url=url, cause=e) from e
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            raise FetchError(f"Request failed for {url}: {e}", url=url, cause=e) from e

        content_type = response.headers.get("content-type", "").lower()
        if _looks_like_json(content_type, response.content):
            result = parse_json_feed(response.content, url)
        else:
            result = parse_feed(response.content, url)

        logger.debug("Fetched %s: %d items", url, len(result.items))
        return result


def parse_feed(body: bytes | str, url: str) -> FetchResult:
    """Parse an RSS/Atom/RDF document.

    Args:
        body: Raw document.
        url: The requested URL (recorded on the result).

    Raises:
        FetchError: If the body is not a feed.

    Example:
        >>> xml = (
        ...     "<rss version='2.0'><channel><title>T</title><link>https://e.com</link>"
        ...     "<item><title>A</title><link>https://e.com/a</link></item>"
        ...     "</channel></rss>"
        ... )
        >>> result = parse_feed(xml, "https://e.com/rss")
        >>> result.feed.title, len(result.items)
        ('T', 1)
    """
    parsed = feedparser.parse(body)
    if not parsed.get("version") and not parsed.entries:
        cause = parsed.get("bozo_exception")
        raise FetchError(
            f"Unparseable feed at {url}: {cause or 'no feed structure'}",
            url=url,
            cause=cause if isinstance(cause, Exception) else None,
        )

    meta = parsed.feed
    feed = FeedInfo(
        identity=feed_identity(meta.get("link"), url),
        title=meta.get("title", "") or "",
        link=meta.get("link", "") or "",
        url=url,
    )
    items = [
        FeedItem(
            identity=item_identity(entry.get("id"), entry.get("link")),
            title=entry.get("title", "") or "",
            link=entry.get("link", "") or "",
            published_at=_struct_to_datetime(
                entry.get("published_parsed") or entry.get("updated_parsed")
            ),
        )
        for entry in parsed.entries
    ]
    return FetchResult(feed=feed, items=tuple(sort_items(items)))


def parse_json_feed(body: bytes | str, url: str) -> FetchResult:
    """Parse a JSON Feed (https://jsonfeed.org) document.

    Raises:
        FetchError: If the body is not a JSON Feed.
    """
    try:
        data = json.loads(body)
    except ValueError as e:
        raise FetchError(f"Invalid JSON feed at {url}: {e}", url=url, cause=e) from e

    if not isinstance(data, dict) or not isinstance(data.get("items"), list):
        raise FetchError(f"Invalid JSON feed at {url}: missing items", url=url)

    feed = FeedInfo(
        identity=feed_identity(data.get("home_page_url"), url),
        title=str(data.get("title") or ""),
        link=str(data.get("home_page_url") or ""),
        url=url,
    )
    items = [
        FeedItem(
            identity=item_identity(_str_or_none(entry.get("id")), entry.get("url")),
            title=str(entry.get("title") or ""),
            link=str(entry.get("url") or ""),
            published_at=_iso_to_datetime(
                entry.get("date_published") or entry.get("date_modified")
            ),
        )
        for entry in data["items"]
        if isinstance(entry, dict)
    ]
    return FetchResult(feed=feed, items=tuple(sort_items(items)))


def sort_items(items: list[FeedItem]) -> list[FeedItem]:
    """Order items oldest-first.

    The sort is stable: items without a publish time keep their source
    order and sort ahead of dated items.
    """
    return sorted(
        items,
        key=lambda item: (
            item.published_at is not None,
            item.published_at or datetime.min.replace(tzinfo=UTC),
        ),
    )


def _looks_like_json(content_type: str, content: bytes) -> bool:
    if any(kind in content_type for kind in JSON_FEED_TYPES):
        return True
    return content.lstrip()[:1] == b"{"


def _struct_to_datetime(value: Any) -> datetime | None:
    # feedparser normalizes parsed dates to UTC struct_time.
    if value is None:
        return None
    with contextlib.suppress(TypeError, ValueError, OverflowError):
        return datetime.fromtimestamp(timegm(value), tz=UTC)
    return None


def _iso_to_datetime(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _str_or_none(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)
