"""Public schema exports."""

from .dashboard import ApplianceState, CalendarEvent, DashboardSnapshot, LaundryStatus

__all__ = [
    "ApplianceState",
    "CalendarEvent",
    "DashboardSnapshot",
    "LaundryStatus",
]
