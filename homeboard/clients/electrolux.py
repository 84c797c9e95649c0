"""
Electrolux One API integration: token minting and appliance state.
"""

from __future__ import annotations

import re
from http import HTTPStatus
from typing import Any, Dict, Literal, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from homeboard.clients.errors import TokenRefreshError
from homeboard.clients.token_endpoint import post_token_request
from homeboard.core.config import ElectroluxSettings
from homeboard.models.tokens import MintedToken, RefreshSecret
from homeboard.schemas.dashboard import ApplianceState
from homeboard.services.guarded_call import GuardedCall

ApplianceKind = Literal["WM", "TD"]


class ApplianceRequestError(Exception):
    """Raised when the appliance API answers with a non-success status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ElectroluxTokenMinter:
    """Redeem an Electrolux refresh token at ``/token/refresh``."""

    def __init__(
        self,
        settings: ElectroluxSettings,
        *,
        identity: str = "electrolux",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._identity = identity
        self._transport = transport

    async def refresh(self, secret: RefreshSecret) -> MintedToken:
        if not self._settings.api_key:
            raise TokenRefreshError("ELECTROLUX_API_KEY is not configured.", identity=self._identity)

        payload = await post_token_request(
            f"{self._settings.base_url}/token/refresh",
            identity=self._identity,
            json={"refreshToken": secret.refresh_token},
            headers={"x-api-key": self._settings.api_key},
            transport=self._transport,
            invalid_grant_statuses=(HTTPStatus.UNAUTHORIZED, HTTPStatus.FORBIDDEN),
        )
        try:
            return MintedToken(
                access_token=payload.get("accessToken") or "",
                expires_in=payload.get("expiresIn"),
                refresh_token=payload.get("refreshToken"),
            )
        except ValidationError as exc:
            raise TokenRefreshError(
                "Incomplete refresh payload returned from Electrolux.",
                identity=self._identity,
            ) from exc


def format_program(uid: Optional[str]) -> Optional[str]:
    """Turn ``WM_PR_COTTON_ECO`` into ``Cotton Eco``."""
    if not uid:
        return None
    name = re.sub(r"^.*_PR_", "", uid).replace("_", " ").lower()
    return re.sub(r"\b\w", lambda match: match.group(0).upper(), name)


def parse_appliance_state(reported: Dict[str, Any], kind: ApplianceKind) -> ApplianceState:
    """Map the ``properties.reported`` block onto an ``ApplianceState``."""
    state = reported.get("applianceState")
    if state == "RUNNING":
        status = "running"
    elif state in ("FINISHED", "END_OF_CYCLE"):
        status = "done"
    else:
        status = "idle"

    selections = reported.get("userSelections") or {}
    time_to_end = reported.get("timeToEnd") or 0
    result: Dict[str, Any] = {
        "status": status,
        "connected": reported.get("connectivityState") == "connected",
        "door_state": reported.get("doorState"),
        "cycle_phase": reported.get("cyclePhase"),
        "time_remaining": round(time_to_end / 60)
        if status == "running" and time_to_end > 0
        else None,
        "program": format_program(selections.get("programUID")),
    }

    if kind == "WM":
        spin_speed = selections.get("analogSpinSpeed")
        result["total_cycles"] = reported.get("totalWashCyclesCount") or 0
        result["temperature"] = selections.get("analogTemperature") or None
        result["spin_speed"] = spin_speed.replace("_RPM", " RPM") if spin_speed else None
    elif kind == "TD":
        result["total_cycles"] = reported.get("totalCycleCounter") or 0

    return ApplianceState(**result)


class ElectroluxClient:
    """Read appliance state through a token-refreshing guard."""

    def __init__(
        self,
        settings: ElectroluxSettings,
        guard: GuardedCall,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._guard = guard
        self._transport = transport

    async def get_appliance_state(self, appliance_id: str, kind: ApplianceKind) -> ApplianceState:
        url = f"{self._settings.base_url}/appliances/{quote(appliance_id, safe='')}/state"

        async with httpx.AsyncClient(timeout=10.0, transport=self._transport) as client:

            async def fetch(token: str) -> httpx.Response:
                return await client.get(
                    url,
                    headers={
                        "x-api-key": self._settings.api_key or "",
                        "Authorization": f"Bearer {token}",
                        "Accept": "application/json",
                    },
                )

            response = await self._guard.execute(fetch)

        if response.status_code != HTTPStatus.OK:
            raise ApplianceRequestError(
                f"Appliance state failed ({response.status_code})",
                status_code=response.status_code,
            )
        body = response.json()
        reported = (body.get("properties") or {}).get("reported") or {}
        return parse_appliance_state(reported, kind)


__all__ = [
    "ApplianceRequestError",
    "ElectroluxClient",
    "ElectroluxTokenMinter",
    "format_program",
    "parse_appliance_state",
]
