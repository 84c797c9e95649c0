"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_credential_registry,
    get_dashboard_service,
    get_electrolux_client,
    get_google_calendar_client,
    get_laundry_service,
    get_token_cipher_service,
    get_token_store,
)
from .config import SettingsDependency, get_app_settings

__all__ = [
    "SettingsDependency",
    "get_app_settings",
    "get_credential_registry",
    "get_dashboard_service",
    "get_electrolux_client",
    "get_google_calendar_client",
    "get_laundry_service",
    "get_token_cipher_service",
    "get_token_store",
]
