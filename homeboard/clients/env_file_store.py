"""KEY=value text file acting as a durable, hand-editable token store."""

from __future__ import annotations

import logging
import os
import re
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from homeboard.clients.errors import PersistenceError, RefreshSecretNotFoundError
from homeboard.models.tokens import TOKEN_FIELDS, RefreshSecret

logger = logging.getLogger(__name__)

_FIELD_SUFFIXES: Dict[str, str] = {
    "refresh_token": "REFRESH_TOKEN",
    "access_token": "ACCESS_TOKEN",
    "expires_at": "TOKEN_EXPIRES_AT",
    "client_id": "CLIENT_ID",
    "client_secret": "CLIENT_SECRET",
}


def _default_prefix(identity: str) -> str:
    return re.sub(r"[^A-Z0-9]+", "_", identity.upper()).strip("_") + "_"


def _format_value(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class EnvFileTokenStore:
    """
    Persist credentials as ``KEY=value`` lines.

    Only lines whose key is being written change; every other line is kept
    byte-for-byte and unknown keys are appended at the end. Writes go through
    a temporary file and ``os.replace`` so a crash never leaves a half-written
    file behind.
    """

    def __init__(self, path: str | Path, *, prefixes: Optional[Mapping[str, str]] = None) -> None:
        self._path = Path(path)
        self._prefixes = dict(prefixes or {})
        self._lock = threading.Lock()

    def key_for(self, identity: str, field: str) -> str:
        prefix = self._prefixes.get(identity) or _default_prefix(identity)
        return f"{prefix}{_FIELD_SUFFIXES[field]}"

    def _read_text(self) -> str:
        if not self._path.exists():
            return ""
        return self._path.read_text(encoding="utf-8")

    @staticmethod
    def _parse(content: str) -> Dict[str, str]:
        values: Dict[str, str] = {}
        for raw_line in content.splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            key, sep, value = line.partition("=")
            if not sep:
                continue
            # First occurrence wins, matching how writes pick the line to replace.
            values.setdefault(key.strip(), value.strip().strip('"').strip("'"))
        return values

    def read(self, identity: str) -> RefreshSecret:
        """Return the persisted secret for ``identity``."""
        try:
            values = self._parse(self._read_text())
        except (OSError, UnicodeError) as exc:
            raise PersistenceError(
                f"Unable to read token file {self._path}: {exc}", identity=identity
            ) from exc

        record: Dict[str, Any] = {}
        for field in TOKEN_FIELDS:
            value = values.get(self.key_for(identity, field))
            if value:
                record[field] = value

        if not record.get("refresh_token"):
            raise RefreshSecretNotFoundError(
                f"No refresh token stored for {identity} "
                f"(expected {self.key_for(identity, 'refresh_token')}).",
                identity=identity,
            )
        try:
            return RefreshSecret(**record)
        except ValidationError as exc:
            raise PersistenceError(
                f"Stored credentials for {identity} are malformed: {exc}", identity=identity
            ) from exc

    def write(self, identity: str, fields: Mapping[str, Any]) -> None:
        """Merge ``fields`` into the file; empty values never replace stored ones."""
        updates = {
            self.key_for(identity, name): _format_value(value)
            for name, value in fields.items()
            if name in _FIELD_SUFFIXES and value not in (None, "")
        }
        if not updates:
            return

        with self._lock:
            try:
                self._rewrite(updates)
            except (OSError, UnicodeError) as exc:
                raise PersistenceError(
                    f"Unable to write token file {self._path}: {exc}", identity=identity
                ) from exc
        logger.debug("Persisted %s for %s", ", ".join(sorted(updates)), identity)

    def _rewrite(self, updates: Dict[str, str]) -> None:
        content = self._read_text()
        lines = content.splitlines(keepends=True)
        pending = dict(updates)

        for index, line in enumerate(lines):
            key, sep, _ = line.partition("=")
            key = key.strip()
            if sep and key in pending:
                ending = line[len(line.rstrip("\r\n")):]
                lines[index] = f"{key}={pending.pop(key)}{ending}"

        if pending:
            if lines and not lines[-1].endswith(("\n", "\r")):
                lines[-1] += "\n"
            lines.extend(f"{key}={value}\n" for key, value in pending.items())

        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self._path.name}.", dir=self._path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
                handle.write("".join(lines))
                handle.flush()
                os.fsync(handle.fileno())
            if self._path.exists():
                os.chmod(tmp_name, self._path.stat().st_mode & 0o777)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


__all__ = ["EnvFileTokenStore"]
