"""SQLite-backed token store with secrets encrypted at rest."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Mapping

from pydantic import ValidationError

from homeboard.clients.errors import PersistenceError, RefreshSecretNotFoundError
from homeboard.models.tokens import TOKEN_FIELDS, RefreshSecret
from homeboard.services.token_cipher import TokenCipherService

_ENCRYPTED_FIELDS = frozenset({"refresh_token", "access_token", "client_secret"})


class SQLiteTokenStore:
    """One row per credential identity; merges happen inside a single transaction."""

    def __init__(self, db_path: str, *, cipher: TokenCipherService) -> None:
        self._db_path = Path(db_path)
        self._cipher = cipher
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._ensure_schema()
        except (OSError, sqlite3.Error) as exc:
            raise PersistenceError(
                f"Unable to open credential database {self._db_path}: {exc}"
            ) from exc

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA synchronous = FULL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._connect()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS credential_records (
                    identity TEXT PRIMARY KEY,
                    data TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
        finally:
            conn.close()

    @staticmethod
    def _load(conn: sqlite3.Connection, identity: str) -> Dict[str, Any]:
        row = conn.execute(
            "SELECT data FROM credential_records WHERE identity = ?",
            (identity,),
        ).fetchone()
        if not row:
            return {}
        try:
            record = json.loads(row["data"])
        except ValueError as exc:
            raise PersistenceError(
                f"Stored record for {identity} is not valid JSON: {exc}", identity=identity
            ) from exc
        if not isinstance(record, dict):
            raise PersistenceError(f"Stored record for {identity} is not an object.", identity=identity)
        return record

    def read(self, identity: str) -> RefreshSecret:
        """Return the decrypted secret for ``identity``."""
        try:
            conn = self._connect()
            try:
                stored = self._load(conn, identity)
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise PersistenceError(
                f"Unable to read credentials for {identity}: {exc}", identity=identity
            ) from exc

        if not stored.get("refresh_token"):
            raise RefreshSecretNotFoundError(
                f"No refresh token stored for {identity}.", identity=identity
            )

        try:
            record = {
                name: self._cipher.decrypt(value) if name in _ENCRYPTED_FIELDS else value
                for name, value in stored.items()
                if name in TOKEN_FIELDS and value not in (None, "")
            }
            return RefreshSecret(**record)
        except (ValueError, ValidationError) as exc:
            raise PersistenceError(
                f"Stored credentials for {identity} are malformed: {exc}", identity=identity
            ) from exc

    def write(self, identity: str, fields: Mapping[str, Any]) -> None:
        """Merge ``fields`` into the stored record, skipping empty values."""
        updates = {
            name: self._cipher.encrypt(str(value)) if name in _ENCRYPTED_FIELDS else value
            for name, value in fields.items()
            if name in TOKEN_FIELDS and value not in (None, "")
        }
        if not updates:
            return

        try:
            conn = self._connect()
            try:
                conn.execute("BEGIN IMMEDIATE")
                try:
                    record = self._load(conn, identity)
                    record.update(updates)
                    conn.execute(
                        """
                        INSERT INTO credential_records (identity, data, updated_at)
                        VALUES (?, ?, ?)
                        ON CONFLICT(identity) DO UPDATE SET
                            data = excluded.data,
                            updated_at = excluded.updated_at
                        """,
                        (
                            identity,
                            json.dumps(record),
                            datetime.now(timezone.utc).isoformat(),
                        ),
                    )
                except BaseException:
                    conn.execute("ROLLBACK")
                    raise
                conn.execute("COMMIT")
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise PersistenceError(
                f"Unable to persist credentials for {identity}: {exc}", identity=identity
            ) from exc


__all__ = ["SQLiteTokenStore"]
