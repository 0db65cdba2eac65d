"""Message formatting and chunking.

New items are rendered as HTML links, one per line, and packed into
messages no longer than the transport's size limit.

Example:
    >>> from feedwatch.delivery.format import chunk_messages, format_item
    >>> from feedwatch.models import FeedItem
    >>> format_item(FeedItem(identity="x", title="A & B", link="https://e.com/1"))
    '<a href="https://e.com/1">A &amp; B</a>\\n'
    >>> messages = chunk_messages([FeedItem(identity="x", title="T", link="https://e.com")])
    >>> len(messages), messages[0].suppress_link_preview
    (1, False)
"""

from __future__ import annotations

import html
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from feedwatch.models.item import FeedItem
from feedwatch.models.subscription import Subscription, SubscriptionStatistic

MESSAGE_LIMIT = 4096
ELLIPSIS = "…"


@dataclass(frozen=True)
class Message:
    """One delivery: text plus the link-preview flag."""

    text: str
    suppress_link_preview: bool = False


def html_link(title: str, link: str) -> str:
    """Render an escaped HTML anchor; falls back to plain text without a link.

    Example:
        >>> html_link("", "https://e.com/?a=1&b=2")
        '<a href="https://e.com/?a=1&amp;b=2">https://e.com/?a=1&amp;b=2</a>'
    """
    label = html.escape(title or link, quote=False)
    if not link:
        return label
    return f'<a href="{html.escape(link)}">{label}</a>'


def format_item(item: FeedItem) -> str:
    """One item as a single newline-terminated line."""
    return html_link(item.title, item.link) + "\n"


def chunk_messages(
    items: Sequence[FeedItem],
    limit: int = MESSAGE_LIMIT,
) -> list[Message]:
    """Pack items into ordered messages of at most ``limit`` characters.

    Each message holds consecutive items. Only the first message allows a
    link preview. An item too long to fit on its own has its title shortened.

    Args:
        items: New items in delivery order.
        limit: Max characters per message.

    Returns:
        Messages in delivery order (empty if there are no items).
    """
    texts: list[str] = []
    current = ""
    for item in items:
        post = _fit_item(item, limit)
        if current and len(current) + len(post) > limit:
            texts.append(current)
            current = ""
        current += post
    if current:
        texts.append(current)

    return [
        Message(text=text, suppress_link_preview=index > 0)
        for index, text in enumerate(texts)
    ]


def format_subscription(subscription: Subscription) -> str:
    """Subscription title as a link to the subscribed URL."""
    return html_link(subscription.title, subscription.link)


def format_subscription_list(subscriptions: Iterable[Subscription]) -> str:
    """Numbered list used for ``list`` replies.

    Example:
        >>> format_subscription_list([])
        'Your list is empty.'
    """
    lines = [
        f"{index}. {format_subscription(subscription)}"
        for index, subscription in enumerate(subscriptions, start=1)
    ]
    if not lines:
        return "Your list is empty."
    return "\n".join(lines)


def format_statistics(statistics: Iterable[SubscriptionStatistic]) -> str:
    """Numbered most-followed list."""
    lines = [
        f"{index}. {format_subscription(stat.subscription)} ({stat.count})"
        for index, stat in enumerate(statistics, start=1)
    ]
    if not lines:
        return "Not enough data."
    return "\n".join(lines)


def _fit_item(item: FeedItem, limit: int) -> str:
    post = format_item(item)
    if len(post) <= limit:
        return post

    if not item.link:
        label = _truncate_escaped(html.escape(item.title, quote=False), limit - 1 - len(ELLIPSIS))
        return label + ELLIPSIS + "\n"

    overhead = len(html_link("", item.link)) - len(html.escape(item.link, quote=False)) + 1
    room = limit - overhead - len(ELLIPSIS)
    if room <= 0:
        return post[: limit - 1] + "\n"

    label = _truncate_escaped(html.escape(item.title or item.link, quote=False), room)
    return f'<a href="{html.escape(item.link)}">{label}{ELLIPSIS}</a>\n'


def _truncate_escaped(text: str, size: int) -> str:
    text = text[: max(size, 0)]
    # Never leave half an entity behind.
    amp = text.rfind("&")
    if amp != -1 and ";" not in text[amp:]:
        text = text[:amp]
    return text
