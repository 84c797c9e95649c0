"""Washer and dryer status for the dashboard."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from homeboard.clients.electrolux import ApplianceKind, ElectroluxClient
from homeboard.schemas.dashboard import ApplianceState, LaundryStatus

logger = logging.getLogger(__name__)


class LaundryService:
    """Fetch both appliances concurrently; one failing does not hide the other."""

    def __init__(
        self,
        client: ElectroluxClient,
        *,
        washer_id: Optional[str],
        dryer_id: Optional[str],
    ) -> None:
        self._client = client
        self._washer_id = washer_id
        self._dryer_id = dryer_id

    async def _appliance(self, appliance_id: Optional[str], kind: ApplianceKind) -> ApplianceState:
        if not appliance_id:
            return ApplianceState.failed("Appliance is not configured.")
        try:
            return await self._client.get_appliance_state(appliance_id, kind)
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Failed to read %s appliance %s: %s", kind, appliance_id, exc)
            return ApplianceState.failed(str(exc))

    async def get_laundry_status(self) -> LaundryStatus:
        # Both lookups share the coordinator, so a cold cache costs one refresh.
        washer, dryer = await asyncio.gather(
            self._appliance(self._washer_id, "WM"),
            self._appliance(self._dryer_id, "TD"),
        )
        return LaundryStatus(
            washer=washer,
            dryer=dryer,
            updated_at=datetime.now(timezone.utc),
        )


__all__ = ["LaundryService"]
