"""SQLite snapshot store for forecast state.

Each key holds one JSON-encoded pydantic model (season data, Elo table,
predictions, results). Every write happens inside a transaction, so a
later load never sees a partial write.
"""

import json
import logging
from collections.abc import Callable
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from pathlib import Path
from typing import AsyncIterator, TypeVar

import aiosqlite
from pydantic import BaseModel, ValidationError

log = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class StorageError(Exception):
    """Raised when a stored snapshot cannot be decoded."""

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(f"Storage error for '{key}': {message}")


class Storage:
    """Async SQLite key-value store for snapshots and the API cache."""

    # Snapshot keys
    SEASON_DATA = "season_data"
    ELO_RATINGS = "elo_ratings"
    PREDICTIONS = "predictions"
    RESULTS = "results"
    MANUAL_INJURIES = "manual_injuries"
    BACKTEST = "backtest"

    def __init__(self, db_path: str | Path = "data/nfl_forecast.db"):
        self.db_path = str(db_path)
        self._connection: aiosqlite.Connection | None = None

    @asynccontextmanager
    async def _get_connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Get or create a database connection."""
        if self._connection is None:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self._connection = await aiosqlite.connect(self.db_path)
            self._connection.row_factory = aiosqlite.Row
        yield self._connection

    async def initialize(self) -> None:
        """Create tables if they don't exist."""
        async with self._get_connection() as conn:
            await conn.executescript(
                """
                -- Current value per key
                CREATE TABLE IF NOT EXISTS snapshots (
                    key TEXT PRIMARY KEY,
                    data TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                );

                -- Last backed-up value per key
                CREATE TABLE IF NOT EXISTS snapshot_backups (
                    key TEXT PRIMARY KEY,
                    data TEXT NOT NULL,
                    backed_up_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                );

                -- API cache
                CREATE TABLE IF NOT EXISTS api_cache (
                    cache_key TEXT PRIMARY KEY,
                    response_data TEXT NOT NULL,
                    fetched_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    expires_at TIMESTAMP
                );
                """
            )
            await conn.commit()

    async def close(self) -> None:
        """Close the database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    # ==================== Snapshot Operations ====================

    @staticmethod
    def _decode(key: str, data: str, model: type[T]) -> T:
        try:
            return model.model_validate_json(data)
        except ValidationError as e:
            raise StorageError(key, str(e)) from e

    async def _read(self, conn: aiosqlite.Connection, key: str) -> str | None:
        cursor = await conn.execute("SELECT data FROM snapshots WHERE key = ?", (key,))
        row = await cursor.fetchone()
        return row["data"] if row else None

    async def _write(self, conn: aiosqlite.Connection, key: str, data: str) -> None:
        await conn.execute(
            """
            INSERT INTO snapshots (key, data, updated_at)
            VALUES (?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(key) DO UPDATE SET
                data = excluded.data,
                updated_at = CURRENT_TIMESTAMP
            """,
            (key, data),
        )

    async def load(self, key: str, model: type[T]) -> T | None:
        """
        Load the snapshot stored under `key`.

        Returns:
            Decoded model, or None if nothing is stored

        Raises:
            StorageError: If the stored data does not match `model`
        """
        async with self._get_connection() as conn:
            data = await self._read(conn, key)

        if data is None:
            log.debug("No snapshot stored for '%s'", key)
            return None
        return self._decode(key, data, model)

    async def save(self, key: str, value: BaseModel) -> bool:
        """Replace the snapshot under `key`. Returns False if the write failed."""
        data = value.model_dump_json()
        async with self._get_connection() as conn:
            try:
                await self._write(conn, key, data)
                await conn.commit()
            except aiosqlite.Error as e:
                await conn.rollback()
                log.error("Failed to save snapshot '%s': %s", key, e)
                return False

        log.debug("Saved snapshot '%s' (%d bytes)", key, len(data))
        return True

    async def update_atomic(
        self,
        key: str,
        model: type[T],
        transform: Callable[[T], T],
        default: T,
    ) -> T:
        """
        Read, transform, and write a snapshot in one transaction.

        If the transform or the write raises, the transaction is rolled back
        and the previous value stays in place.

        Args:
            key: Snapshot key
            model: Model type stored under the key
            transform: Function from the current value to the new value
            default: Value passed to `transform` when nothing is stored

        Returns:
            The value written
        """
        async with self._get_connection() as conn:
            await conn.execute("BEGIN IMMEDIATE")
            try:
                data = await self._read(conn, key)
                current = default if data is None else self._decode(key, data, model)
                updated = transform(current)
                await self._write(conn, key, updated.model_dump_json())
                await conn.commit()
            except Exception:
                await conn.rollback()
                log.error("Atomic update of '%s' failed, rolled back", key)
                raise

        return updated

    async def delete(self, key: str) -> None:
        """Remove the snapshot under `key`."""
        async with self._get_connection() as conn:
            await conn.execute("DELETE FROM snapshots WHERE key = ?", (key,))
            await conn.commit()

    async def keys(self) -> list[str]:
        """List stored snapshot keys."""
        async with self._get_connection() as conn:
            cursor = await conn.execute("SELECT key FROM snapshots ORDER BY key")
            rows = await cursor.fetchall()
            return [row["key"] for row in rows]

    async def backup(self, key: str) -> bool:
        """
        Copy the current snapshot under `key` to its backup slot.

        Returns:
            True if a snapshot existed and was backed up
        """
        async with self._get_connection() as conn:
            data = await self._read(conn, key)
            if data is None:
                return False
            await conn.execute(
                """
                INSERT INTO snapshot_backups (key, data, backed_up_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET
                    data = excluded.data,
                    backed_up_at = CURRENT_TIMESTAMP
                """,
                (key, data),
            )
            await conn.commit()

        log.debug("Created backup for '%s'", key)
        return True

    async def restore_backup(self, key: str) -> bool:
        """
        Restore `key` from its backup slot.

        Returns:
            True if a backup existed and was restored
        """
        async with self._get_connection() as conn:
            cursor = await conn.execute(
                "SELECT data FROM snapshot_backups WHERE key = ?", (key,)
            )
            row = await cursor.fetchone()
            if row is None:
                log.error("No backup to restore for '%s'", key)
                return False
            await self._write(conn, key, row["data"])
            await conn.commit()

        log.info("Restored '%s' from backup", key)
        return True

    # ==================== Cache Operations ====================

    async def set_cached(
        self, key: str, data: dict | list, ttl_hours: float = 24
    ) -> None:
        """Cache an API response."""
        expires_at = datetime.now() + timedelta(hours=ttl_hours)
        async with self._get_connection() as conn:
            await conn.execute(
                """
                INSERT INTO api_cache (cache_key, response_data, expires_at)
                VALUES (?, ?, ?)
                ON CONFLICT(cache_key) DO UPDATE SET
                    response_data = excluded.response_data,
                    fetched_at = CURRENT_TIMESTAMP,
                    expires_at = excluded.expires_at
                """,
                (key, json.dumps(data), expires_at.isoformat()),
            )
            await conn.commit()

    async def get_cached(self, key: str) -> dict | list | None:
        """Get a cached API response if not expired."""
        async with self._get_connection() as conn:
            cursor = await conn.execute(
                """
                SELECT response_data, expires_at
                FROM api_cache
                WHERE cache_key = ?
                """,
                (key,),
            )
            row = await cursor.fetchone()

            if row is None:
                return None

            # Check expiry
            expires_at = datetime.fromisoformat(row["expires_at"])
            if datetime.now() >= expires_at:
                return None

            return json.loads(row["response_data"])
