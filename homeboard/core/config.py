"""
Application configuration models and helpers.

Centralizes settings so the FastAPI app, the credential coordinators and the
operator scripts share one configuration surface.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class _EnvSettings(BaseSettings):
    """Base class reading from the process environment and ``.env``."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


class TokenSettings(_EnvSettings):
    """Credential cache and token persistence configuration."""

    store_backend: Literal["env", "sqlite"] = Field(
        "env", validation_alias="TOKEN_STORE_BACKEND"
    )
    store_path: str = Field(
        ".env",
        validation_alias="TOKEN_STORE_PATH",
        description="KEY=value file holding refresh secrets for the env backend.",
    )
    store_db_path: str = Field("data/credentials.db", validation_alias="TOKEN_STORE_DB_PATH")
    encryption_secret: Optional[str] = Field(
        None,
        validation_alias="TOKEN_ENCRYPTION_SECRET",
        description="Secret used to derive the key encrypting tokens in SQLite.",
    )
    encryption_previous_secrets: str = Field(
        "",
        validation_alias="TOKEN_ENCRYPTION_PREVIOUS_SECRETS",
        description="Comma-separated retired secrets still accepted for decryption.",
    )
    safety_margin_seconds: float = Field(
        60.0, gt=0, validation_alias="TOKEN_SAFETY_MARGIN_SECONDS"
    )
    refresh_timeout_seconds: float = Field(
        10.0, gt=0, validation_alias="TOKEN_REFRESH_TIMEOUT_SECONDS"
    )


class ElectroluxSettings(_EnvSettings):
    """Electrolux One appliance API configuration."""

    api_key: Optional[str] = Field(None, validation_alias="ELECTROLUX_API_KEY")
    base_url: str = Field(
        "https://api.developer.electrolux.one/api/v1",
        validation_alias="ELECTROLUX_BASE_URL",
    )
    washer_id: Optional[str] = Field(None, validation_alias="ELECTROLUX_WASHER_ID")
    dryer_id: Optional[str] = Field(None, validation_alias="ELECTROLUX_DRYER_ID")
    default_token_lifetime_seconds: int = Field(
        43200,
        gt=0,
        validation_alias="ELECTROLUX_TOKEN_LIFETIME",
        description="Lifetime assumed when the token endpoint omits expiresIn.",
    )
    bootstrap_token_lifetime_seconds: int = Field(
        39600,
        gt=0,
        validation_alias="ELECTROLUX_BOOTSTRAP_LIFETIME",
        description="Remaining lifetime assumed for a persisted token with no expiry.",
    )


class GoogleSettings(_EnvSettings):
    """Google OAuth client and Calendar API configuration."""

    client_id: Optional[str] = Field(None, validation_alias="GOOGLE_OAUTH_CLIENT_ID")
    client_secret: Optional[str] = Field(
        None, validation_alias="GOOGLE_OAUTH_CLIENT_SECRET"
    )
    calendar_base_url: str = Field(
        "https://www.googleapis.com/calendar/v3",
        validation_alias="GOOGLE_CALENDAR_BASE_URL",
    )
    calendar_lookahead_days: int = Field(365, gt=0, validation_alias="CALENDAR_LOOKAHEAD_DAYS")
    calendar_max_events: int = Field(500, gt=0, validation_alias="CALENDAR_MAX_EVENTS")
    default_token_lifetime_seconds: int = Field(
        3600, gt=0, validation_alias="GOOGLE_TOKEN_LIFETIME"
    )
    bootstrap_token_lifetime_seconds: int = Field(
        1800, gt=0, validation_alias="GOOGLE_BOOTSTRAP_LIFETIME"
    )


class AppSettings(_EnvSettings):
    """Root settings object for the FastAPI application."""

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    tokens: TokenSettings = Field(default_factory=TokenSettings)
    electrolux: ElectroluxSettings = Field(default_factory=ElectroluxSettings)
    google: GoogleSettings = Field(default_factory=GoogleSettings)

    @model_validator(mode="after")
    def _margin_below_lifetimes(self) -> "AppSettings":
        """A margin at or above a token lifetime would refresh on every call."""
        margin = self.tokens.safety_margin_seconds
        lifetimes = {
            "ELECTROLUX_TOKEN_LIFETIME": self.electrolux.default_token_lifetime_seconds,
            "ELECTROLUX_BOOTSTRAP_LIFETIME": self.electrolux.bootstrap_token_lifetime_seconds,
            "GOOGLE_TOKEN_LIFETIME": self.google.default_token_lifetime_seconds,
            "GOOGLE_BOOTSTRAP_LIFETIME": self.google.bootstrap_token_lifetime_seconds,
        }
        for name, lifetime in lifetimes.items():
            if margin >= lifetime:
                raise ValueError(
                    f"TOKEN_SAFETY_MARGIN_SECONDS ({margin}) must be below {name} ({lifetime})."
                )
        return self


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()


__all__ = [
    "AppSettings",
    "ElectroluxSettings",
    "GoogleSettings",
    "TokenSettings",
    "get_settings",
]
