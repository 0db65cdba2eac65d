"""Tests for feedwatch.validation - subscribe URL checks."""

from __future__ import annotations

import pytest

from feedwatch.core.exceptions import ValidationError
from feedwatch.validation import is_valid_url, validate_url


class TestValidateUrl:
    """Tests for validate_url()."""

    @pytest.mark.parametrize(
        "url",
        [
            "https://example.com/feed.xml",
            "http://example.com:8080/rss",
            "HTTPS://Example.com/atom",
        ],
    )
    def test_accepts_absolute_http_urls(self, url: str) -> None:
        assert validate_url(url) == url

    def test_strips_surrounding_whitespace(self) -> None:
        assert validate_url("  https://example.com/rss\n") == "https://example.com/rss"

    @pytest.mark.parametrize(
        "url",
        [
            "",
            "   ",
            None,
            "example.com/rss",
            "/relative/path",
            "ftp://example.com/feed",
            "https://",
            "https://exa mple.com/rss",
            "http://example.com:99999/rss",
        ],
    )
    def test_rejects_invalid(self, url: str | None) -> None:
        with pytest.raises(ValidationError):
            validate_url(url)

    def test_is_valid_url(self) -> None:
        assert is_valid_url("https://example.com/rss") is True
        assert is_valid_url("mailto:someone@example.com") is False
