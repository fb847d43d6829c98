"""KMTrackerSession class for GPS-measured driving sessions."""

from datetime import datetime
from typing import List, Optional

from .gps import GPSPoint
from .status import TrackerStatus


class KMTrackerSession:
    """
    A bounded interval of GPS-derived distance measurement.

    Only running aggregates are needed to keep measuring: ``last_point``,
    ``total_distance_km`` and ``max_speed``. ``points`` is a log of the most
    recent accepted samples, capped by the engine.
    """

    def __init__(
        self,
        id: str,
        start_time: datetime,
        vehicle_id: Optional[str] = None,
        status: TrackerStatus = TrackerStatus.ACTIVE,
        end_time: Optional[datetime] = None,
        total_distance_km: float = 0,
        points: Optional[List[GPSPoint]] = None,
        last_point: Optional[GPSPoint] = None,
        duration: float = 0,
        max_speed: Optional[float] = None,
        avg_speed: Optional[float] = None,
        earnings_record_id: Optional[str] = None,
        auto_saved: bool = False,
        created_at: Optional[datetime] = None,
    ):
        self.id = id
        self.vehicle_id = vehicle_id
        self.start_time = start_time
        self.end_time = end_time
        self.status = status
        self.total_distance_km = total_distance_km
        self.points = points or []
        self.last_point = last_point
        self.duration = duration  # seconds
        self.max_speed = max_speed  # km/h
        self.avg_speed = avg_speed  # km/h
        self.earnings_record_id = earnings_record_id
        self.auto_saved = auto_saved
        self.created_at = created_at or datetime.now()

    @property
    def duration_hours(self) -> float:
        return self.duration / 3600

    def elapsed(self, now: datetime) -> float:
        """Seconds since start (final duration once completed)."""
        if self.end_time is not None:
            return self.duration
        return max(0.0, (now - self.start_time).total_seconds())
