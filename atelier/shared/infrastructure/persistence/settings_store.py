"""DuckDB-backed store for plain (non-secret) string settings.

Holds small values that must survive process restarts, such as the cached
gate destination.
"""

import logging
from pathlib import Path
from typing import Optional

import duckdb

from .errors import StoreError

logger = logging.getLogger(__name__)


def connect_database(db_path: str) -> duckdb.DuckDBPyConnection:
    """Open a DuckDB file, creating its parent directory, or an in-memory DB."""
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(db_path)


class SettingsStore:
    """Synchronous key/value settings persisted in DuckDB."""

    def __init__(self, db_path: str = ":memory:"):
        self.db_path = db_path
        self.conn: Optional[duckdb.DuckDBPyConnection] = connect_database(db_path)
        self._create_schema()
        logger.info(f"Settings store initialized: {self.db_path}")

    def _create_schema(self) -> None:
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS settings (
                key VARCHAR PRIMARY KEY,
                value VARCHAR NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    def _connection(self) -> duckdb.DuckDBPyConnection:
        if self.conn is None:
            raise StoreError(f"Settings store is closed: {self.db_path}")
        return self.conn

    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None when the key is absent."""
        try:
            row = self._connection().execute(
                "SELECT value FROM settings WHERE key = ?", (key,)
            ).fetchone()
        except duckdb.Error as e:
            raise StoreError(f"Failed to read setting '{key}': {e}") from e
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        """Insert or update a setting."""
        try:
            self._connection().execute(
                """
                INSERT INTO settings (key, value, updated_at)
                VALUES (?, ?, now())
                ON CONFLICT (key) DO UPDATE SET value = excluded.value, updated_at = now()
                """,
                (key, value),
            )
        except duckdb.Error as e:
            raise StoreError(f"Failed to write setting '{key}': {e}") from e
        logger.debug(f"Setting '{key}' updated")

    def delete(self, key: str) -> None:
        try:
            self._connection().execute("DELETE FROM settings WHERE key = ?", (key,))
        except duckdb.Error as e:
            raise StoreError(f"Failed to delete setting '{key}': {e}") from e

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None
