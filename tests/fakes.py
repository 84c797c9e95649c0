"""In-memory collaborators for exercising the credential core."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from homeboard.clients.errors import PersistenceError, RefreshSecretNotFoundError
from homeboard.models.tokens import MintedToken, RefreshSecret


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class MemoryTokenStore:
    def __init__(
        self,
        records: Optional[Dict[str, Dict[str, Any]]] = None,
        *,
        fail_writes: bool = False,
    ) -> None:
        self.records = {identity: dict(record) for identity, record in (records or {}).items()}
        self.writes: List[tuple[str, Dict[str, Any]]] = []
        self.fail_writes = fail_writes
        self.on_write: Optional[Callable[[str, Dict[str, Any]], None]] = None

    def read(self, identity: str) -> RefreshSecret:
        record = self.records.get(identity)
        if not record or not record.get("refresh_token"):
            raise RefreshSecretNotFoundError(f"nothing stored for {identity}", identity=identity)
        return RefreshSecret(**record)

    def write(self, identity: str, fields: Mapping[str, Any]) -> None:
        if self.on_write is not None:
            self.on_write(identity, dict(fields))
        if self.fail_writes:
            raise PersistenceError("disk full", identity=identity)
        self.writes.append((identity, dict(fields)))
        self.records.setdefault(identity, {}).update(
            {name: value for name, value in fields.items() if value not in (None, "")}
        )


Outcome = Union[MintedToken, Exception]


class ScriptedMinter:
    """Returns scripted outcomes in order, repeating the last one once exhausted."""

    def __init__(self, *outcomes: Outcome, gate: Optional[asyncio.Event] = None) -> None:
        self.outcomes = list(outcomes)
        self.calls: List[str] = []
        self.gate = gate

    async def refresh(self, secret: RefreshSecret) -> MintedToken:
        self.calls.append(secret.refresh_token)
        index = min(len(self.calls), len(self.outcomes)) - 1
        if self.gate is not None:
            await self.gate.wait()
        outcome = self.outcomes[index]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def minted(access_token: str, expires_in: Optional[int] = 3600, refresh_token: Optional[str] = None) -> MintedToken:
    return MintedToken(access_token=access_token, expires_in=expires_in, refresh_token=refresh_token)
