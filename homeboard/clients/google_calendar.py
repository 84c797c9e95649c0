"""Google Calendar reader used by the dashboard and the calendar sync."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from http import HTTPStatus
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from homeboard.core.config import GoogleSettings
from homeboard.schemas.dashboard import CalendarEvent
from homeboard.services.guarded_call import GuardedCall

logger = logging.getLogger(__name__)


class CalendarRequestError(Exception):
    """Raised when the Calendar API answers with a non-success status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _to_event(item: Dict[str, Any], calendar_id: str, calendar_name: Optional[str]) -> CalendarEvent:
    start = item.get("start") or {}
    end = item.get("end") or {}
    return CalendarEvent(
        id=item["id"],
        calendar_id=calendar_id,
        calendar_name=calendar_name,
        title=item.get("summary") or "No title",
        start=start.get("dateTime") or start.get("date"),
        end=end.get("dateTime") or end.get("date"),
        all_day=not start.get("dateTime"),
        location=item.get("location"),
        description=item.get("description"),
        color_id=item.get("colorId"),
    )


class GoogleCalendarClient:
    """List calendars and upcoming events with automatic token recovery."""

    def __init__(
        self,
        settings: GoogleSettings,
        guard: GuardedCall,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._guard = guard
        self._transport = transport

    async def _get_json(
        self, client: httpx.AsyncClient, path: str, params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        url = f"{self._settings.calendar_base_url}{path}"

        async def fetch(token: str) -> httpx.Response:
            return await client.get(
                url,
                params=params,
                headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
            )

        response = await self._guard.execute(fetch)
        if response.status_code != HTTPStatus.OK:
            raise CalendarRequestError(
                f"Calendar request {path} failed ({response.status_code})",
                status_code=response.status_code,
            )
        return response.json()

    async def list_calendars(self) -> List[Dict[str, Optional[str]]]:
        async with httpx.AsyncClient(timeout=10.0, transport=self._transport) as client:
            payload = await self._get_json(client, "/users/me/calendarList")
        return [
            {"id": item["id"], "name": item.get("summary")}
            for item in payload.get("items", [])
            if item.get("id")
        ]

    async def list_upcoming_events(
        self, *, days: Optional[int] = None, max_results: Optional[int] = None
    ) -> List[CalendarEvent]:
        """
        Fetch events from every calendar for the next ``days`` days.

        A calendar that fails to load is logged and skipped so the others are
        still returned. Authorization and refresh failures are not swallowed:
        they affect every calendar equally.
        """
        days = days or self._settings.calendar_lookahead_days
        max_results = max_results or self._settings.calendar_max_events
        now = datetime.now(timezone.utc)
        params = {
            "timeMin": now.isoformat(),
            "timeMax": (now + timedelta(days=days)).isoformat(),
            "maxResults": max_results,
            "singleEvents": "true",
            "orderBy": "startTime",
        }

        calendars = await self.list_calendars()
        logger.info("Found %d calendars", len(calendars))

        events: List[CalendarEvent] = []
        async with httpx.AsyncClient(timeout=10.0, transport=self._transport) as client:
            for calendar in calendars:
                calendar_id = calendar["id"] or ""
                try:
                    payload = await self._get_json(
                        client, f"/calendars/{quote(calendar_id, safe='')}/events", params
                    )
                except (CalendarRequestError, httpx.HTTPError, ValueError) as exc:
                    logger.warning(
                        "Failed to fetch events from %r: %s", calendar["name"], exc
                    )
                    continue
                items = payload.get("items", [])
                events.extend(
                    _to_event(item, calendar_id, calendar["name"])
                    for item in items
                    if item.get("id")
                )

        events.sort(key=lambda event: event.start or "")
        return events


__all__ = ["CalendarRequestError", "GoogleCalendarClient"]
