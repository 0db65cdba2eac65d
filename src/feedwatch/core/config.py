"""FeedWatch configuration.

Application settings loaded from environment variables with FEEDWATCH_ prefix.

Example:
    >>> from feedwatch.core.config import get_settings
    >>> settings = get_settings(log_level="DEBUG")
    >>> settings.log_level
    'DEBUG'
    >>> settings.storage_backend
    'memory'
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


class Settings(BaseSettings):
    """Application settings.

    Loads from environment variables with FEEDWATCH_ prefix.

    Example:
        >>> from feedwatch.core.config import Settings
        >>> s = Settings(poll_interval=120)
        >>> s.poll_interval
        120.0
        >>> s.message_limit
        4096
    """

    model_config = SettingsConfigDict(
        env_prefix="FEEDWATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Polling
    poll_interval: float = Field(default=60.0, gt=0, description="Seconds between poll cycles")
    fetch_timeout: float = Field(default=30.0, gt=0, description="Per-fetch timeout in seconds")
    max_concurrent_fetches: int = Field(default=8, ge=1, le=256)
    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="User-Agent sent to feed hosts")

    # Delivery
    message_limit: int = Field(default=4096, ge=64, description="Max characters per delivered message")
    use_watermark: bool = Field(
        default=False,
        description="Skip never-seen items published before the newest delivered item",
    )

    # Storage
    storage_backend: Literal["memory", "sqlite"] = Field(default="memory")
    database_path: Path = Field(default=Path("./feedwatch.db"), description="SQLite database file")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="console", description="Log format: console or plain")


def get_settings(**overrides: Any) -> Settings:
    """Get settings with optional overrides.

    Example:
        >>> from feedwatch.core.config import get_settings
        >>> s = get_settings(fetch_timeout=5.0)
        >>> s.fetch_timeout
        5.0
    """
    return Settings(**overrides)
