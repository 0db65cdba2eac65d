"""URL validation for subscribe requests.

Example:
    >>> from feedwatch.validation import validate_url
    >>> validate_url("  https://example.com/feed.xml ")
    'https://example.com/feed.xml'
    >>> validate_url("example.com/feed")  # doctest: +IGNORE_EXCEPTION_DETAIL
    Traceback (most recent call last):
    ValidationError: URL must include a scheme and host
"""

from __future__ import annotations

from urllib.parse import urlsplit

from feedwatch.core.exceptions import ValidationError

ALLOWED_SCHEMES = frozenset({"http", "https"})


def validate_url(text: str | None) -> str:
    """Check that text is an absolute http(s) URL with a host.

    Args:
        text: Raw user input.

    Returns:
        The stripped URL.

    Raises:
        ValidationError: If the URL is empty, relative, or not http(s).
    """
    url = (text or "").strip()
    if not url:
        raise ValidationError("URL is empty")
    if any(ch.isspace() for ch in url):
        raise ValidationError(f"URL contains whitespace: {url!r}")

    try:
        parts = urlsplit(url)
        # Accessing port validates it
        parts.port
    except ValueError as e:
        raise ValidationError(f"Malformed URL {url!r}: {e}") from e

    if not parts.scheme or not parts.hostname:
        raise ValidationError(f"URL must include a scheme and host: {url!r}")
    if parts.scheme.lower() not in ALLOWED_SCHEMES:
        raise ValidationError(f"Unsupported URL scheme {parts.scheme!r}")
    return url


def is_valid_url(text: str | None) -> bool:
    """Boolean form of validate_url.

    Example:
        >>> is_valid_url("ftp://example.com/feed")
        False
    """
    try:
        validate_url(text)
    except ValidationError:
        return False
    return True
