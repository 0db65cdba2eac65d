"""Message formatting and delivery channels."""

from feedwatch.delivery.console import ConsoleDelivery
from feedwatch.delivery.format import (
    MESSAGE_LIMIT,
    Message,
    chunk_messages,
    format_item,
    format_statistics,
    format_subscription,
    format_subscription_list,
    html_link,
)

__all__ = [
    "ConsoleDelivery",
    "MESSAGE_LIMIT",
    "Message",
    "chunk_messages",
    "format_item",
    "format_statistics",
    "format_subscription",
    "format_subscription_list",
    "html_link",
]
