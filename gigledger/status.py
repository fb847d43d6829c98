"""Status enums for maintenance urgency and tracking sessions."""

from enum import Enum


class MaintenanceStatus(Enum):
    """Maintenance status categories. Lower value = more urgent."""

    OVERDUE = 1
    URGENT = 2
    UPCOMING = 3
    OK = 4
    COMPLETED = 5  # Maintenance deactivated

    @property
    def label(self) -> str:
        return self.name.lower()


class TrackerStatus(Enum):
    """Lifecycle of a GPS tracking session."""

    IDLE = "idle"  # No session; never persisted
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"

    @property
    def is_open(self) -> bool:
        return self in (TrackerStatus.ACTIVE, TrackerStatus.PAUSED)
