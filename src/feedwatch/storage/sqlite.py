"""SQLite subscription store - zero-config persistent storage.

Example:
    >>> from feedwatch.storage.sqlite import SQLiteStore
    >>>
    >>> # Just pass a path - schema auto-creates!
    >>> store = SQLiteStore("feedwatch.db")
    >>> # await store.initialize()
    >>>
    >>> # Or use in-memory for testing
    >>> store = SQLiteStore(":memory:")
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from feedwatch.core.exceptions import PersistenceError
from feedwatch.models.ledger import Ledger
from feedwatch.models.subscription import Subscription, SubscriptionStatistic

logger = logging.getLogger(__name__)


class SQLiteStore:
    """SQLite store with auto-schema creation.

    Subscriptions and subscriber counts are rows; each ledger is one row
    holding the ledger as JSON.

    Args:
        path: Database file path, or ":memory:" for in-memory.
        timeout: Lock timeout in seconds (default 30).
    """

    SCHEMA_VERSION = 1

    def __init__(
        self,
        path: str | Path = ":memory:",
        *,
        timeout: float = 30.0,
    ) -> None:
        self._path = str(path)
        self._timeout = timeout
        self._conn: sqlite3.Connection | None = None
        self._initialized = False

    @property
    def path(self) -> str:
        return self._path

    @contextmanager
    def _cursor(self) -> Iterator[sqlite3.Cursor]:
        """Get a cursor with automatic commit/rollback."""
        if not self._conn:
            raise PersistenceError("Store not initialized. Call initialize() first.")
        cursor = self._conn.cursor()
        try:
            yield cursor
            self._conn.commit()
        except sqlite3.Error as e:
            self._conn.rollback()
            raise PersistenceError(f"SQLite error: {e}") from e
        except Exception:
            self._conn.rollback()
            raise
        finally:
            cursor.close()

    async def initialize(self) -> None:
        """Open the database and create the schema. Idempotent."""
        if self._initialized:
            return
        if self._path != ":memory:":
            Path(self._path).parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn = sqlite3.connect(self._path, timeout=self._timeout)
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot open {self._path}: {e}") from e
        self._conn.row_factory = sqlite3.Row
        if self._path != ":memory:":
            self._conn.execute("PRAGMA journal_mode=WAL")

        self._create_schema()
        self._initialized = True
        logger.debug("SQLite store ready at %s", self._path)

    async def close(self) -> None:
        """Close the connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
        self._initialized = False

    def _create_schema(self) -> None:
        with self._cursor() as cursor:
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS subscriptions (
                    subscriber_id TEXT NOT NULL,
                    id TEXT NOT NULL,
                    link TEXT NOT NULL,
                    title TEXT NOT NULL DEFAULT '',
                    created_at TEXT NOT NULL,
                    topic TEXT,
                    PRIMARY KEY (subscriber_id, id)
                )
            """)
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS ledgers (
                    subscriber_id TEXT NOT NULL,
                    subscription_id TEXT NOT NULL,
                    data TEXT NOT NULL,  -- JSON
                    updated_at TEXT NOT NULL,
                    PRIMARY KEY (subscriber_id, subscription_id)
                )
            """)
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS subscription_stats (
                    id TEXT PRIMARY KEY,
                    subscription TEXT NOT NULL,  -- JSON
                    count INTEGER NOT NULL DEFAULT 0
                )
            """)
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS _feedwatch_meta (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)
            cursor.execute(
                "INSERT OR REPLACE INTO _feedwatch_meta (key, value) VALUES ('schema_version', ?)",
                (str(self.SCHEMA_VERSION),),
            )
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_subscriptions_link ON subscriptions(link)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_stats_count ON subscription_stats(count)")

    # --- Subscription Operations ---

    async def list_subscribers(self) -> list[str]:
        with self._cursor() as cursor:
            cursor.execute("SELECT DISTINCT subscriber_id FROM subscriptions ORDER BY subscriber_id")
            return [row["subscriber_id"] for row in cursor.fetchall()]

    async def get_subscriptions(self, subscriber_id: str) -> dict[str, Subscription]:
        with self._cursor() as cursor:
            cursor.execute(
                "SELECT * FROM subscriptions WHERE subscriber_id = ? ORDER BY created_at",
                (subscriber_id,),
            )
            rows = cursor.fetchall()
        return {row["id"]: self._row_to_subscription(row) for row in rows}

    async def add_subscription(self, subscriber_id: str, subscription: Subscription) -> None:
        with self._cursor() as cursor:
            cursor.execute(
                "SELECT 1 FROM subscriptions WHERE subscriber_id = ? AND id = ?",
                (subscriber_id, subscription.id),
            )
            is_new = cursor.fetchone() is None
            self._upsert_subscription(cursor, subscriber_id, subscription)

            if is_new:
                cursor.execute(
                    """
                    INSERT INTO subscription_stats (id, subscription, count) VALUES (?, ?, 1)
                    ON CONFLICT(id) DO UPDATE SET count = count + 1
                    """,
                    (subscription.id, subscription.model_dump_json()),
                )

    async def update_subscription(self, subscriber_id: str, subscription: Subscription) -> None:
        with self._cursor() as cursor:
            self._upsert_subscription(cursor, subscriber_id, subscription)

    async def delete_subscription(self, subscriber_id: str, subscription_id: str) -> bool:
        with self._cursor() as cursor:
            cursor.execute(
                "DELETE FROM subscriptions WHERE subscriber_id = ? AND id = ?",
                (subscriber_id, subscription_id),
            )
            if cursor.rowcount == 0:
                return False
            cursor.execute(
                "UPDATE subscription_stats SET count = count - 1 WHERE id = ?",
                (subscription_id,),
            )
            cursor.execute(
                "DELETE FROM subscription_stats WHERE id = ? AND count <= 0",
                (subscription_id,),
            )
            return True

    async def top_subscriptions(self, limit: int = 5) -> list[SubscriptionStatistic]:
        with self._cursor() as cursor:
            cursor.execute(
                "SELECT subscription, count FROM subscription_stats ORDER BY count DESC, id LIMIT ?",
                (limit,),
            )
            rows = cursor.fetchall()
        try:
            return [
                SubscriptionStatistic(
                    subscription=Subscription.model_validate_json(row["subscription"]),
                    count=row["count"],
                )
                for row in rows
            ]
        except PydanticValidationError as e:
            raise PersistenceError(f"Corrupt subscription statistic: {e}") from e

    # --- Ledger Operations ---

    async def load_ledger(self, subscriber_id: str, subscription_id: str) -> Ledger:
        with self._cursor() as cursor:
            cursor.execute(
                "SELECT data FROM ledgers WHERE subscriber_id = ? AND subscription_id = ?",
                (subscriber_id, subscription_id),
            )
            row = cursor.fetchone()
        if row is None:
            return Ledger()
        try:
            return Ledger.model_validate_json(row["data"])
        except PydanticValidationError as e:
            raise PersistenceError(
                f"Corrupt ledger for {subscriber_id}/{subscription_id}: {e}"
            ) from e

    async def save_ledger(self, subscriber_id: str, subscription_id: str, ledger: Ledger) -> None:
        with self._cursor() as cursor:
            cursor.execute(
                """
                INSERT OR REPLACE INTO ledgers (subscriber_id, subscription_id, data, updated_at)
                VALUES (?, ?, ?, ?)
                """,
                (
                    subscriber_id,
                    subscription_id,
                    ledger.model_dump_json(),
                    datetime.now().astimezone().isoformat(),
                ),
            )

    async def delete_ledger(self, subscriber_id: str, subscription_id: str) -> bool:
        with self._cursor() as cursor:
            cursor.execute(
                "DELETE FROM ledgers WHERE subscriber_id = ? AND subscription_id = ?",
                (subscriber_id, subscription_id),
            )
            return cursor.rowcount > 0

    # --- Helpers ---

    @staticmethod
    def _upsert_subscription(
        cursor: sqlite3.Cursor,
        subscriber_id: str,
        subscription: Subscription,
    ) -> None:
        cursor.execute(
            """
            INSERT OR REPLACE INTO subscriptions
                (subscriber_id, id, link, title, created_at, topic)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                subscriber_id,
                subscription.id,
                subscription.link,
                subscription.title,
                subscription.created_at.isoformat(),
                subscription.topic,
            ),
        )

    @staticmethod
    def _row_to_subscription(row: sqlite3.Row) -> Subscription:
        return Subscription(
            id=row["id"],
            link=row["link"],
            title=row["title"],
            created_at=datetime.fromisoformat(row["created_at"]),
            topic=row["topic"],
        )
