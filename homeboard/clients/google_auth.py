"""
Google OAuth token minting for the calendar integration.

Only the steady-state refresh grant lives here; the one-time consent flow that
produces the refresh token is handled outside the application.
"""

from __future__ import annotations

from typing import Optional

import httpx
from pydantic import ValidationError

from homeboard.clients.errors import TokenRefreshError
from homeboard.clients.token_endpoint import post_token_request
from homeboard.core.config import GoogleSettings
from homeboard.models.tokens import MintedToken, RefreshSecret


class GoogleOAuthClient:
    """Exchange a stored Google refresh token for a new access token."""

    TOKEN_URL = "https://oauth2.googleapis.com/token"

    def __init__(
        self,
        google_settings: GoogleSettings,
        *,
        identity: str = "google-calendar",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._google = google_settings
        self._identity = identity
        self._transport = transport

    async def refresh(self, secret: RefreshSecret) -> MintedToken:
        """Refresh the access token using a stored refresh token."""
        client_id = secret.client_id or self._google.client_id
        client_secret = secret.client_secret or self._google.client_secret
        if not client_id or not client_secret:
            raise TokenRefreshError(
                "Google OAuth client credentials are not configured.",
                identity=self._identity,
            )

        payload = {
            "client_id": client_id,
            "client_secret": client_secret,
            "refresh_token": secret.refresh_token,
            "grant_type": "refresh_token",
        }
        token_payload = await post_token_request(
            self.TOKEN_URL,
            identity=self._identity,
            data=payload,
            transport=self._transport,
        )

        try:
            return MintedToken(
                access_token=token_payload.get("access_token") or "",
                expires_in=token_payload.get("expires_in"),
                refresh_token=token_payload.get("refresh_token"),
            )
        except ValidationError as exc:
            raise TokenRefreshError(
                "Incomplete refresh payload returned from Google.",
                identity=self._identity,
            ) from exc


__all__ = ["GoogleOAuthClient"]
