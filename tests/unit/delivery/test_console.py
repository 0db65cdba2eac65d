"""Tests for ConsoleDelivery.

Tests cover:
- Writing messages
- Output formatting
- Lifecycle (initialize/close)
- Protocol compliance
"""

import io

from feedwatch.delivery.console import ConsoleDelivery
from feedwatch.protocols.delivery import DeliveryChannel

# =============================================================================
# Basic Deliver Tests
# =============================================================================


class TestConsoleDeliveryDeliver:
    """Tests for delivering messages."""

    async def test_deliver_writes_subscriber_and_text(self):
        """deliver writes the recipient and the message body."""
        out = io.StringIO()
        channel = ConsoleDelivery(stream=out)

        await channel.deliver("alice", '<a href="https://e.com/1">One</a>\n')

        output = out.getvalue()
        assert "-> alice" in output
        assert '<a href="https://e.com/1">One</a>' in output

    async def test_deliver_counts_messages(self):
        out = io.StringIO()
        channel = ConsoleDelivery(stream=out)

        await channel.deliver("alice", "one")
        await channel.deliver("bob", "two")

        assert channel.delivered == 2

    async def test_timestamp_can_be_disabled(self):
        out = io.StringIO()
        channel = ConsoleDelivery(stream=out, show_timestamp=False)

        await channel.deliver("alice", "hello")

        assert out.getvalue() == "-> alice\nhello\n"

    async def test_preview_flag_shown_when_enabled(self):
        out = io.StringIO()
        channel = ConsoleDelivery(stream=out, show_timestamp=False, show_preview_flag=True)

        await channel.deliver("alice", "first")
        await channel.deliver("alice", "second", suppress_link_preview=True)

        lines = out.getvalue().splitlines()
        assert lines[0] == "-> alice"
        assert lines[2] == "-> alice (no preview)"


# =============================================================================
# Lifecycle Tests
# =============================================================================


class TestConsoleDeliveryLifecycle:
    """Tests for initialize/close."""

    async def test_initialize_and_close(self):
        channel = ConsoleDelivery(stream=io.StringIO())
        await channel.initialize()
        await channel.close()
        await channel.close()  # Should not raise

    def test_implements_protocol(self):
        assert isinstance(ConsoleDelivery(), DeliveryChannel)
