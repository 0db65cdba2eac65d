"""Delivery channel protocol.

Defines how FeedWatch hands finished messages to the chat transport.

Example:
    >>> from feedwatch.protocols.delivery import DeliveryChannel
    >>> hasattr(DeliveryChannel, "deliver")
    True
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class DeliveryChannel(Protocol):
    """Message delivery backend protocol."""

    async def deliver(
        self,
        subscriber_id: str,
        text: str,
        suppress_link_preview: bool = False,
    ) -> None:
        """Send one message to a subscriber.

        Raises:
            Exception: Any failure. FeedWatch logs it and moves on.
        """
        ...

    async def initialize(self) -> None:
        """Initialize the channel."""
        ...

    async def close(self) -> None:
        """Clean up resources."""
        ...
