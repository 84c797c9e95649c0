"""Aggregate every credentialed integration behind the home screen."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from homeboard.clients.google_calendar import GoogleCalendarClient
from homeboard.schemas.dashboard import DashboardSnapshot
from homeboard.services.laundry import LaundryService

logger = logging.getLogger(__name__)


class DashboardService:
    """
    Collect the laundry and calendar sections independently.

    Each section sits behind its own credential identity, so a revoked
    Google grant must not blank out the washer status and vice versa. A
    failed section is left empty and described in ``errors``.
    """

    def __init__(
        self,
        *,
        laundry: Optional[LaundryService],
        calendar: Optional[GoogleCalendarClient],
        calendar_days: int = 7,
    ) -> None:
        self._laundry = laundry
        self._calendar = calendar
        self._calendar_days = calendar_days

    @staticmethod
    async def _section(
        name: str, loader: Callable[[], Awaitable[Any]]
    ) -> Tuple[str, Any, Optional[str]]:
        try:
            return name, await loader(), None
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Dashboard section %s failed: %s", name, exc)
            return name, None, str(exc)

    async def snapshot(self) -> DashboardSnapshot:
        loaders: Dict[str, Callable[[], Awaitable[Any]]] = {}
        if self._laundry is not None:
            loaders["laundry"] = self._laundry.get_laundry_status
        if self._calendar is not None:
            calendar = self._calendar
            loaders["events"] = lambda: calendar.list_upcoming_events(days=self._calendar_days)

        results = await asyncio.gather(
            *(self._section(name, loader) for name, loader in loaders.items())
        )

        snapshot = DashboardSnapshot()
        for name, value, error in results:
            if error is not None:
                snapshot.errors[name] = error
            elif value is not None:
                setattr(snapshot, name, value)
        return snapshot


__all__ = ["DashboardService"]
