"""GPS samples, great-circle distance, and a replaying location provider."""

import json
import logging
import math
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Union

import yaml

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371


class GPSPoint:
    """A single location sample pushed by the location provider."""

    def __init__(
        self,
        latitude: float,
        longitude: float,
        timestamp: datetime,
        accuracy: Optional[float] = None,
        speed: Optional[float] = None,
    ):
        self.latitude = latitude
        self.longitude = longitude
        self.timestamp = timestamp
        self.accuracy = accuracy  # meters
        self.speed = speed  # m/s

    @property
    def speed_kmh(self) -> Optional[float]:
        if self.speed is None:
            return None
        return self.speed * 3.6


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in km between two coordinates."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_between(a: GPSPoint, b: GPSPoint) -> float:
    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)


PointCallback = Callable[[GPSPoint], object]


class ReplayProvider:
    """
    Location provider that pushes a recorded track to its subscribers.

    Stands in for a device location watch: the engine subscribes and the
    provider pushes samples, the engine never polls.
    """

    def __init__(self, points: List[GPSPoint]):
        self.points = points
        self._callbacks: List[PointCallback] = []

    @classmethod
    def from_file(cls, filename: Union[str, Path]) -> "ReplayProvider":
        """Load a track from a YAML or JSON list of samples."""
        with open(filename, "r") as fp:
            if str(filename).endswith(".json"):
                raw = json.load(fp)
            else:
                raw = yaml.load(fp, Loader=yaml.SafeLoader)
        points = []
        for item in raw or []:
            timestamp = item["timestamp"]
            if isinstance(timestamp, str):
                timestamp = datetime.fromisoformat(timestamp)
            points.append(
                GPSPoint(
                    item["latitude"],
                    item["longitude"],
                    timestamp,
                    item.get("accuracy"),
                    item.get("speed"),
                )
            )
        return cls(points)

    def subscribe(self, callback: PointCallback) -> Callable[[], None]:
        """Register a callback; returns a function that unsubscribes it."""
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    @property
    def is_watching(self) -> bool:
        return bool(self._callbacks)

    def replay(self) -> int:
        """Push every sample to the current subscribers. Returns samples sent."""
        sent = 0
        for point in self.points:
            if not self._callbacks:
                logger.debug("Replay stopped: no subscribers left")
                break
            for callback in list(self._callbacks):
                callback(point)
            sent += 1
        return sent
