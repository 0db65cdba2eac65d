"""Console delivery channel.

Writes delivered messages to a stream instead of a chat transport, useful
for the CLI, development and tests.

Example:
    >>> import asyncio
    >>> import io
    >>> from feedwatch.delivery.console import ConsoleDelivery
    >>> out = io.StringIO()
    >>> channel = ConsoleDelivery(stream=out, show_timestamp=False)
    >>> asyncio.run(channel.deliver("alice", "hello"))
    >>> "alice" in out.getvalue()
    True
"""

from __future__ import annotations

import sys
from datetime import UTC, datetime
from typing import TextIO


class ConsoleDelivery:
    """Delivery channel that prints messages.

    Args:
        stream: Output stream (default sys.stdout).
        show_timestamp: Prefix each message with a UTC timestamp.
        show_preview_flag: Mark messages whose link preview is suppressed.
    """

    def __init__(
        self,
        stream: TextIO | None = None,
        show_timestamp: bool = True,
        show_preview_flag: bool = False,
    ) -> None:
        self._stream = stream or sys.stdout
        self._show_timestamp = show_timestamp
        self._show_preview_flag = show_preview_flag
        self._initialized = False
        self._delivered = 0

    @property
    def delivered(self) -> int:
        """Number of messages written so far."""
        return self._delivered

    async def initialize(self) -> None:
        """Initialize channel (no-op for console)."""
        self._initialized = True

    async def close(self) -> None:
        """Clean up resources (no-op for console)."""
        self._initialized = False

    async def deliver(
        self,
        subscriber_id: str,
        text: str,
        suppress_link_preview: bool = False,
    ) -> None:
        """Write one message to the stream."""
        self._stream.write(self._format(subscriber_id, text, suppress_link_preview) + "\n")
        self._stream.flush()
        self._delivered += 1

    def _format(self, subscriber_id: str, text: str, suppress_link_preview: bool) -> str:
        parts: list[str] = []

        if self._show_timestamp:
            ts = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")
            parts.append(f"[{ts}]")

        parts.append(f"-> {subscriber_id}")
        if self._show_preview_flag and suppress_link_preview:
            parts.append("(no preview)")

        return " ".join(parts) + "\n" + text.rstrip("\n")
