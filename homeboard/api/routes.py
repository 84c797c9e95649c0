"""
FastAPI routes for the home dashboard integrations and credential status.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Any, List, NoReturn, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from homeboard.clients.errors import (
    AuthorizationRejectedError,
    CredentialError,
    InvalidGrantError,
    RefreshSecretNotFoundError,
    TransientNetworkError,
)
from homeboard.clients.google_calendar import CalendarRequestError
from homeboard.core.config import AppSettings
from homeboard.dependencies import (
    SettingsDependency,
    get_credential_registry,
    get_dashboard_service,
    get_google_calendar_client,
    get_laundry_service,
)
from homeboard.models.tokens import CredentialStatus
from homeboard.schemas import CalendarEvent, DashboardSnapshot, LaundryStatus
from homeboard.services.credentials import UnknownCredentialError

router = APIRouter()
logger = logging.getLogger(__name__)


def _raise_for_credential_error(exc: CredentialError) -> NoReturn:
    """Translate a credential failure into the matching HTTP error."""
    if isinstance(exc, RefreshSecretNotFoundError):
        status_code, detail = HTTPStatus.NOT_FOUND, "No refresh token stored for this provider."
    elif isinstance(exc, InvalidGrantError):
        status_code, detail = HTTPStatus.UNAUTHORIZED, "Provider rejected the refresh token; re-authorization required."
    elif isinstance(exc, TransientNetworkError):
        status_code, detail = HTTPStatus.SERVICE_UNAVAILABLE, "Provider token endpoint unreachable; try again."
    elif isinstance(exc, AuthorizationRejectedError):
        status_code, detail = HTTPStatus.BAD_GATEWAY, "Provider rejected a freshly refreshed token."
    else:
        status_code, detail = HTTPStatus.BAD_GATEWAY, "Provider token refresh failed."
    raise HTTPException(status_code=status_code, detail=detail) from exc


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.get("/dashboard", response_model=DashboardSnapshot)
async def get_dashboard(
    service: Annotated[Any, Depends(get_dashboard_service)],
) -> DashboardSnapshot:
    """Everything the home screen needs; failing sections are listed in ``errors``."""
    return await service.snapshot()


@router.get("/appliances/laundry", response_model=LaundryStatus)
async def get_laundry_status(
    service: Annotated[Any, Depends(get_laundry_service)],
) -> LaundryStatus:
    return await service.get_laundry_status()


@router.get("/calendar/events", response_model=List[CalendarEvent])
async def list_calendar_events(
    calendar: Annotated[Any, Depends(get_google_calendar_client)],
    settings: AppSettings = SettingsDependency,
    days: Optional[int] = Query(
        default=None,
        ge=1,
        le=365,
        description="How many days ahead to include (defaults to CALENDAR_LOOKAHEAD_DAYS).",
    ),
) -> List[CalendarEvent]:
    days = days or settings.google.calendar_lookahead_days
    try:
        return await calendar.list_upcoming_events(days=days)
    except CredentialError as exc:
        _raise_for_credential_error(exc)
    except CalendarRequestError as exc:
        logger.warning("Calendar listing failed: %s", exc)
        raise HTTPException(
            status_code=HTTPStatus.BAD_GATEWAY,
            detail="Google Calendar request failed.",
        ) from exc


@router.get("/auth/credentials", response_model=List[CredentialStatus])
async def list_credentials(
    registry: Annotated[Any, Depends(get_credential_registry)],
) -> List[CredentialStatus]:
    """Report cache and refresh state for every provider. Token values are never exposed."""
    return registry.statuses()


@router.post("/auth/credentials/{identity}/refresh", response_model=CredentialStatus)
async def refresh_credential(
    identity: str,
    registry: Annotated[Any, Depends(get_credential_registry)],
) -> CredentialStatus:
    """Discard the cached token for ``identity`` and mint a new one."""
    try:
        coordinator = registry.get(identity)
    except UnknownCredentialError as exc:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail=f"Unknown credential identity {identity!r}.",
        ) from exc

    try:
        await coordinator.force_refresh()
    except CredentialError as exc:
        _raise_for_credential_error(exc)
    return coordinator.status()


__all__ = ["router"]
