"""Registry mapping credential identities to their coordinators."""

from __future__ import annotations

from typing import Dict, Iterator, List

from homeboard.models.tokens import CredentialStatus
from homeboard.services.token_refresh import RefreshCoordinator, TokenMinter, TokenStore

ELECTROLUX = "electrolux"
GOOGLE_CALENDAR = "google-calendar"


class UnknownCredentialError(KeyError):
    """Raised when no coordinator is registered for an identity."""


class CredentialRegistry:
    """Holds one ``RefreshCoordinator`` per identity for the life of the process."""

    def __init__(
        self,
        store: TokenStore,
        *,
        safety_margin_seconds: float = 60.0,
        refresh_timeout_seconds: float = 10.0,
    ) -> None:
        self._store = store
        self._margin = safety_margin_seconds
        self._timeout = refresh_timeout_seconds
        self._coordinators: Dict[str, RefreshCoordinator] = {}

    def register(
        self,
        identity: str,
        minter: TokenMinter,
        *,
        default_lifetime_seconds: float,
        bootstrap_lifetime_seconds: float | None = None,
    ) -> RefreshCoordinator:
        """Create the coordinator for ``identity`` and seed it from the store."""
        if identity in self._coordinators:
            raise ValueError(f"Credential identity {identity!r} is already registered.")
        coordinator = RefreshCoordinator(
            identity,
            store=self._store,
            minter=minter,
            default_lifetime_seconds=default_lifetime_seconds,
            safety_margin_seconds=self._margin,
            refresh_timeout_seconds=self._timeout,
        )
        coordinator.seed_from_store(
            assumed_lifetime_seconds=bootstrap_lifetime_seconds or default_lifetime_seconds
        )
        self._coordinators[identity] = coordinator
        return coordinator

    def get(self, identity: str) -> RefreshCoordinator:
        try:
            return self._coordinators[identity]
        except KeyError:
            raise UnknownCredentialError(identity) from None

    def __contains__(self, identity: object) -> bool:
        return identity in self._coordinators

    def __iter__(self) -> Iterator[RefreshCoordinator]:
        return iter(list(self._coordinators.values()))

    def statuses(self) -> List[CredentialStatus]:
        return [coordinator.status() for coordinator in self]


__all__ = [
    "ELECTROLUX",
    "GOOGLE_CALENDAR",
    "CredentialRegistry",
    "UnknownCredentialError",
]
