"""
Factory functions to provide shared clients and services as FastAPI dependencies.

Each credential identity gets exactly one coordinator per process; every
factory below hands out that same instance.
"""

from functools import lru_cache

from homeboard.clients.electrolux import ElectroluxClient, ElectroluxTokenMinter
from homeboard.clients.env_file_store import EnvFileTokenStore
from homeboard.clients.google_auth import GoogleOAuthClient
from homeboard.clients.google_calendar import GoogleCalendarClient
from homeboard.clients.sqlite_store import SQLiteTokenStore
from homeboard.core.config import get_settings
from homeboard.services import (
    CredentialRegistry,
    GuardedCall,
    TokenCipherService,
    TokenStore,
)
from homeboard.services.credentials import ELECTROLUX, GOOGLE_CALENDAR
from homeboard.services.dashboard import DashboardService
from homeboard.services.laundry import LaundryService

_ENV_PREFIXES = {
    ELECTROLUX: "ELECTROLUX_",
    GOOGLE_CALENDAR: "GOOGLE_OAUTH_",
}


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide symmetric encryption helper for token storage."""
    tokens = _settings().tokens
    if not tokens.encryption_secret:
        raise RuntimeError("TOKEN_ENCRYPTION_SECRET is required for the sqlite token store.")
    previous = [value.strip() for value in tokens.encryption_previous_secrets.split(",")]
    return TokenCipherService(secret=tokens.encryption_secret, previous_secrets=previous)


@lru_cache()
def get_token_store() -> TokenStore:
    """Provide the configured durable token store."""
    tokens = _settings().tokens
    if tokens.store_backend == "sqlite":
        return SQLiteTokenStore(tokens.store_db_path, cipher=get_token_cipher_service())
    return EnvFileTokenStore(tokens.store_path, prefixes=_ENV_PREFIXES)


@lru_cache()
def get_credential_registry() -> CredentialRegistry:
    """Build every coordinator once, seeded from persisted tokens."""
    settings = _settings()
    registry = CredentialRegistry(
        get_token_store(),
        safety_margin_seconds=settings.tokens.safety_margin_seconds,
        refresh_timeout_seconds=settings.tokens.refresh_timeout_seconds,
    )
    registry.register(
        ELECTROLUX,
        ElectroluxTokenMinter(settings.electrolux, identity=ELECTROLUX),
        default_lifetime_seconds=settings.electrolux.default_token_lifetime_seconds,
        bootstrap_lifetime_seconds=settings.electrolux.bootstrap_token_lifetime_seconds,
    )
    registry.register(
        GOOGLE_CALENDAR,
        GoogleOAuthClient(settings.google, identity=GOOGLE_CALENDAR),
        default_lifetime_seconds=settings.google.default_token_lifetime_seconds,
        bootstrap_lifetime_seconds=settings.google.bootstrap_token_lifetime_seconds,
    )
    return registry


@lru_cache()
def get_electrolux_client() -> ElectroluxClient:
    """Provide the appliance client bound to the Electrolux coordinator."""
    coordinator = get_credential_registry().get(ELECTROLUX)
    return ElectroluxClient(_settings().electrolux, GuardedCall(coordinator))


@lru_cache()
def get_google_calendar_client() -> GoogleCalendarClient:
    """Provide the calendar client bound to the Google coordinator."""
    coordinator = get_credential_registry().get(GOOGLE_CALENDAR)
    return GoogleCalendarClient(_settings().google, GuardedCall(coordinator))


def get_laundry_service() -> LaundryService:
    """Build a laundry service for the configured washer and dryer."""
    settings = _settings()
    return LaundryService(
        get_electrolux_client(),
        washer_id=settings.electrolux.washer_id,
        dryer_id=settings.electrolux.dryer_id,
    )


def get_dashboard_service() -> DashboardService:
    """Build the home screen aggregator."""
    return DashboardService(
        laundry=get_laundry_service(),
        calendar=get_google_calendar_client(),
    )


__all__ = [
    "get_credential_registry",
    "get_dashboard_service",
    "get_electrolux_client",
    "get_google_calendar_client",
    "get_laundry_service",
    "get_token_cipher_service",
    "get_token_store",
]
