"""Response schemas for the dashboard integrations."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class ApplianceState(BaseModel):
    """Normalized snapshot of one laundry appliance."""

    status: Literal["idle", "running", "done", "error"]
    connected: bool = False
    door_state: Optional[str] = None
    cycle_phase: Optional[str] = None
    time_remaining: Optional[int] = Field(
        None, description="Minutes left in the running cycle."
    )
    program: Optional[str] = None
    total_cycles: Optional[int] = None
    temperature: Optional[str] = None
    spin_speed: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def failed(cls, message: str) -> "ApplianceState":
        return cls(status="error", error=message)


class LaundryStatus(BaseModel):
    washer: ApplianceState
    dryer: ApplianceState
    updated_at: datetime


class CalendarEvent(BaseModel):
    """Calendar event flattened for the dashboard."""

    id: str
    calendar_id: str
    calendar_name: Optional[str] = None
    title: str = "No title"
    start: Optional[str] = None
    end: Optional[str] = None
    all_day: bool = False
    location: Optional[str] = None
    description: Optional[str] = None
    color_id: Optional[str] = None


class DashboardSnapshot(BaseModel):
    """Everything the home screen shows; failed sections are reported in ``errors``."""

    laundry: Optional[LaundryStatus] = None
    events: List[CalendarEvent] = Field(default_factory=list)
    errors: Dict[str, str] = Field(default_factory=dict)


__all__ = [
    "ApplianceState",
    "CalendarEvent",
    "DashboardSnapshot",
    "LaundryStatus",
]
