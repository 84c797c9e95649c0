"""
Access token cache with single-flight refresh for one credential identity.

Every integration owns exactly one ``RefreshCoordinator`` per identity. Callers
share it; concurrent cache misses collapse into one call to the minter and
everyone waiting on that round sees the same token or the same error.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
from typing import Any, Callable, Mapping, Optional, Protocol

from homeboard.clients.errors import (
    AuthorizationRejectedError,
    CredentialError,
    InvalidGrantError,
    PersistenceError,
    RefreshSecretNotFoundError,
    TransientNetworkError,
)
from homeboard.models.tokens import CachedToken, CredentialStatus, MintedToken, RefreshSecret

logger = logging.getLogger(__name__)

_EXPIRED = float("-inf")


class TokenStore(Protocol):
    """Durable home of refresh secrets, keyed by credential identity."""

    def read(self, identity: str) -> RefreshSecret:
        ...

    def write(self, identity: str, fields: Mapping[str, Any]) -> None:
        ...


class TokenMinter(Protocol):
    """Redeems a refresh secret for a new access token."""

    async def refresh(self, secret: RefreshSecret) -> MintedToken:
        ...


def _consume_result(task: "asyncio.Task[CachedToken]") -> None:
    # Every waiter may have been cancelled; keep asyncio from reporting the error as lost.
    if not task.cancelled():
        task.exception()


class RefreshCoordinator:
    """Owns the cached access token and the in-flight refresh for one identity."""

    def __init__(
        self,
        identity: str,
        *,
        store: TokenStore,
        minter: TokenMinter,
        default_lifetime_seconds: float,
        safety_margin_seconds: float = 60.0,
        refresh_timeout_seconds: float = 10.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if safety_margin_seconds <= 0:
            raise ValueError("Safety margin must be strictly positive.")
        if safety_margin_seconds >= default_lifetime_seconds:
            raise ValueError("Safety margin must be shorter than the default token lifetime.")
        self._identity = identity
        self._store = store
        self._minter = minter
        self._default_lifetime = default_lifetime_seconds
        self._margin = safety_margin_seconds
        self._timeout = refresh_timeout_seconds
        self._clock = clock

        self._cached: Optional[CachedToken] = None
        self._inflight: Optional[asyncio.Task[CachedToken]] = None
        self._last_error: Optional[Exception] = None
        self.last_persistence_error: Optional[PersistenceError] = None

    @property
    def identity(self) -> str:
        return self._identity

    @property
    def cached_token(self) -> Optional[CachedToken]:
        return self._cached

    @property
    def refreshing(self) -> bool:
        return self._inflight is not None

    def seed_from_store(self, *, assumed_lifetime_seconds: float) -> bool:
        """
        Prime the cache with a persisted access token, if one still looks valid.

        A token stored without an expiry is assumed to have
        ``assumed_lifetime_seconds`` left. Returns whether the cache was seeded.
        """
        try:
            secret = self._store.read(self._identity)
        except RefreshSecretNotFoundError:
            return False
        except PersistenceError as exc:
            logger.warning("Could not seed %s token from store: %s", self._identity, exc)
            return False

        if not secret.access_token:
            return False

        now = self._clock()
        provider_expiry = secret.expires_at
        if provider_expiry is None:
            provider_expiry = now + assumed_lifetime_seconds
        seeded = CachedToken(value=secret.access_token, expires_at=provider_expiry - self._margin)
        if not seeded.is_valid(now):
            return False

        self._cached = seeded
        logger.info(
            "Seeded %s access token from store (valid for %.0fs)",
            self._identity,
            seeded.expires_at - now,
        )
        return True

    async def get_token(self) -> str:
        """Return a valid access token, refreshing at most once across all callers."""
        cached = self._cached
        if cached is not None and cached.is_valid(self._clock()):
            return cached.value
        token = await self._join_refresh()
        return token.value

    def invalidate(self) -> None:
        """Mark the cached token expired. The refresh secret is left alone."""
        cached = self._cached
        if cached is not None and cached.expires_at != _EXPIRED:
            self._cached = dataclasses.replace(cached, expires_at=_EXPIRED)
            logger.info("Invalidated cached %s access token", self._identity)

    async def force_refresh(self, rejected_token: Optional[str] = None) -> str:
        """
        Obtain a token to replace ``rejected_token`` after a downstream 401.

        Joins a refresh that is already running instead of starting another.
        If another caller already replaced the rejected token, that token is
        returned without touching the provider. Raises
        ``AuthorizationRejectedError`` when the provider hands back the very
        token that was rejected.
        """
        if self._inflight is not None:
            token = await self._join_refresh()
        else:
            current = self._cached
            if (
                rejected_token is not None
                and current is not None
                and current.value != rejected_token
                and current.is_valid(self._clock())
            ):
                return current.value
            self.invalidate()
            token = await self._join_refresh()

        if rejected_token is not None and token.value == rejected_token:
            raise AuthorizationRejectedError(
                f"{self._identity} token endpoint returned the token that was just rejected.",
                identity=self._identity,
            )
        return token.value

    def status(self) -> CredentialStatus:
        cached = self._cached
        error = self._last_error
        return CredentialStatus(
            identity=self._identity,
            has_token=cached is not None,
            valid=cached is not None and cached.is_valid(self._clock()),
            expires_at=cached.expires_at if cached and cached.expires_at != _EXPIRED else None,
            refreshing=self.refreshing,
            last_error=f"{getattr(error, 'kind', type(error).__name__)}: {error}" if error else None,
            last_persistence_error=str(self.last_persistence_error)
            if self.last_persistence_error
            else None,
        )

    async def _join_refresh(self) -> CachedToken:
        if self._inflight is None:
            task = asyncio.ensure_future(self._refresh())
            task.add_done_callback(_consume_result)
            self._inflight = task
        # Shielded so one waiter's cancellation does not abort the round for the rest.
        return await asyncio.shield(self._inflight)

    async def _refresh(self) -> CachedToken:
        try:
            secret = self._store.read(self._identity)
            logger.info("Refreshing %s access token", self._identity)
            issued_at = self._clock()
            try:
                minted = await asyncio.wait_for(self._minter.refresh(secret), self._timeout)
            except asyncio.TimeoutError as exc:
                raise TransientNetworkError(
                    f"{self._identity} token refresh timed out after {self._timeout:g}s.",
                    identity=self._identity,
                ) from exc

            lifetime = minted.expires_in or self._default_lifetime
            margin = self._margin
            if margin >= lifetime:
                margin = lifetime / 2
                logger.warning(
                    "%s token lifetime %ss is shorter than the safety margin; using %.0fs",
                    self._identity,
                    lifetime,
                    margin,
                )
            refreshed = CachedToken(
                value=minted.access_token,
                expires_at=issued_at + lifetime - margin,
            )

            # Persist first: a rotated refresh secret must survive a restart
            # before anyone is handed the token it produced.
            self._persist(secret, minted, expires_at=issued_at + lifetime)
            self._cached = refreshed
            self._last_error = None
            logger.info("Refreshed %s access token (lifetime %ss)", self._identity, lifetime)
            return refreshed
        except InvalidGrantError as exc:
            self._last_error = exc
            logger.error(
                "%s refresh token was rejected; re-authorization required: %s",
                self._identity,
                exc,
            )
            raise
        except CredentialError as exc:
            self._last_error = exc
            logger.warning("%s token refresh failed: %s", self._identity, exc)
            raise
        except Exception as exc:
            self._last_error = exc
            logger.exception("Unexpected error while refreshing %s access token", self._identity)
            raise
        finally:
            self._inflight = None

    def _persist(self, secret: RefreshSecret, minted: MintedToken, *, expires_at: float) -> None:
        fields: dict[str, Any] = {
            "access_token": minted.access_token,
            "expires_at": expires_at,
        }
        rotated = minted.refresh_token and minted.refresh_token != secret.refresh_token
        if rotated:
            fields["refresh_token"] = minted.refresh_token
        try:
            self._store.write(self._identity, fields)
        except PersistenceError as exc:
            self.last_persistence_error = exc
            logger.warning(
                "Could not persist refreshed %s credentials%s: %s",
                self._identity,
                " (refresh token rotated)" if rotated else "",
                exc,
            )
        else:
            self.last_persistence_error = None


__all__ = ["RefreshCoordinator", "TokenMinter", "TokenStore"]
