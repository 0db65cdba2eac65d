"""Feed fetchers."""

from feedwatch.fetcher.http import HttpFeedFetcher, parse_feed, parse_json_feed, sort_items

__all__ = [
    "HttpFeedFetcher",
    "parse_feed",
    "parse_json_feed",
    "sort_items",
]
