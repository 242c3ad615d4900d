"""Encrypted secret store.

Values are Fernet-encrypted before they reach DuckDB; the key lives in a
separate file readable only by the owner. The gate keeps its validation
token here.
"""

import logging
import os
from pathlib import Path
from typing import Optional

import duckdb
from cryptography.fernet import Fernet, InvalidToken

from .errors import RecordNotFoundError, StoreError
from .settings_store import connect_database

logger = logging.getLogger(__name__)


def load_or_create_key(key_path: Path) -> bytes:
    """Read the Fernet key, generating a 0600 key file on first use."""
    if key_path.exists():
        return key_path.read_bytes().strip()

    key_path.parent.mkdir(parents=True, exist_ok=True)
    key = Fernet.generate_key()
    fd = os.open(key_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    with os.fdopen(fd, "wb") as f:
        f.write(key)
    logger.info(f"Generated new secret key: {key_path}")
    return key


class SecretStore:
    """Upserting store for small opaque secrets."""

    def __init__(self, db_path: str = ":memory:", key: Optional[bytes] = None, key_path: Optional[Path] = None):
        if key is None:
            if key_path is None:
                raise ValueError("SecretStore needs either a key or a key_path")
            key = load_or_create_key(key_path)
        try:
            self._fernet = Fernet(key)
        except ValueError as e:
            raise StoreError(f"Invalid secret key: {e}") from e

        self.db_path = db_path
        self.conn: Optional[duckdb.DuckDBPyConnection] = connect_database(db_path)
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS secrets (
                key VARCHAR PRIMARY KEY,
                ciphertext BLOB NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    def _connection(self) -> duckdb.DuckDBPyConnection:
        if self.conn is None:
            raise StoreError(f"Secret store is closed: {self.db_path}")
        return self.conn

    def store(self, key: str, value: str) -> None:
        """Encrypt and upsert ``value`` under ``key``.

        Raises:
            StoreError: If the backend write fails
        """
        ciphertext = self._fernet.encrypt(value.encode("utf-8"))
        try:
            self._connection().execute(
                """
                INSERT INTO secrets (key, ciphertext, updated_at)
                VALUES (?, ?, now())
                ON CONFLICT (key) DO UPDATE SET ciphertext = excluded.ciphertext, updated_at = now()
                """,
                (key, ciphertext),
            )
        except duckdb.Error as e:
            raise StoreError(f"Failed to store secret '{key}': {e}") from e

    def retrieve(self, key: str) -> str:
        """Return the decrypted value for ``key``.

        Raises:
            RecordNotFoundError: If nothing is stored under ``key``
            StoreError: If the backend read fails or the record cannot be decrypted
        """
        try:
            row = self._connection().execute(
                "SELECT ciphertext FROM secrets WHERE key = ?", (key,)
            ).fetchone()
        except duckdb.Error as e:
            raise StoreError(f"Failed to read secret '{key}': {e}") from e

        if row is None:
            raise RecordNotFoundError(key)

        try:
            return self._fernet.decrypt(bytes(row[0])).decode("utf-8")
        except (InvalidToken, UnicodeDecodeError) as e:
            raise StoreError(f"Secret '{key}' could not be decrypted") from e

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None
