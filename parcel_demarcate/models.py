"""Data models for captured points and saved demarcations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Final


DEFAULT_TZ: Final[str] = "UTC"
# Nominal accuracy for points placed by hand (map click / typed coordinates).
MANUAL_ACCURACY_M: Final[float] = 5.0
LOW_ACCURACY_THRESHOLD_M: Final[float] = 10.0
MIN_POLYGON_POINTS: Final[int] = 3


def _utcnow() -> datetime:
    return datetime.now(UTC)


class CaptureMode(str, Enum):
    """How points enter a capture session."""

    MANUAL = "manual"
    WALKING = "walking"


@dataclass(frozen=True, slots=True)
class Fix:
    """A position reported by the positioning collaborator."""

    latitude: float
    longitude: float
    accuracy_m: float


@dataclass(frozen=True, slots=True)
class GpsPoint:
    """A single polygon vertex captured during a demarcation.

    Attributes:
        point_id: Identifier generated at capture time.
        latitude: Latitude in decimal degrees, [-90, 90].
        longitude: Longitude in decimal degrees, [-180, 180].
        accuracy_m: Device-reported horizontal error radius in meters.
            Informational only; a poor accuracy never rejects a point.
        captured_at: Timezone-aware capture time.
    """

    point_id: str
    latitude: float
    longitude: float
    accuracy_m: float
    captured_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude out of range: {self.latitude!r}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude out of range: {self.longitude!r}")

    @property
    def low_accuracy(self) -> bool:
        return self.accuracy_m > LOW_ACCURACY_THRESHOLD_M

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.point_id,
            "lat": self.latitude,
            "lng": self.longitude,
            "accuracy": self.accuracy_m,
            "timestamp": self.captured_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GpsPoint:
        return cls(
            point_id=str(data["id"]),
            latitude=float(data["lat"]),
            longitude=float(data["lng"]),
            accuracy_m=float(data.get("accuracy", 0.0) or 0.0),
            captured_at=datetime.fromisoformat(data["timestamp"]),
        )


@dataclass(frozen=True, slots=True)
class DemarcationRecord:
    """A finished demarcation, as handed to the persistence layer.

    Area is in hectares and perimeter in meters. Both are derived from
    ``points`` at save time.
    """

    points: tuple[GpsPoint, ...]
    area_ha: float
    perimeter_m: float
    created_at: datetime
    producer_id: str | None = None
    name: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "producer_id": self.producer_id,
            "points": [p.to_dict() for p in self.points],
            "area_ha": self.area_ha,
            "perimeter_m": self.perimeter_m,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DemarcationRecord:
        return cls(
            points=tuple(GpsPoint.from_dict(p) for p in data.get("points", [])),
            area_ha=float(data["area_ha"]),
            perimeter_m=float(data["perimeter_m"]),
            created_at=datetime.fromisoformat(data["created_at"]),
            producer_id=data.get("producer_id"),
            name=str(data.get("name", "") or ""),
        )


@dataclass(frozen=True, slots=True)
class TrackPoint:
    """A single row of a recorded track export.

    Attributes:
        geo_time_ms: Unix epoch milliseconds.
        latitude: Latitude in decimal degrees.
        longitude: Longitude in decimal degrees.
        altitude_m: Altitude in meters. May be 0.0 depending on device/app.
        speed_mps: Speed in meters/second. Some rows may use -1.0 as sentinel.
        horizontal_accuracy_m: Horizontal accuracy in meters. Some rows use -1.0.
        location_type: App-specific integer describing the positioning source.
    """

    geo_time_ms: int
    latitude: float
    longitude: float
    altitude_m: float
    speed_mps: float
    horizontal_accuracy_m: float
    location_type: int

    def to_fix(self) -> Fix:
        # -1.0 means "unknown" in the export
        return Fix(
            latitude=self.latitude,
            longitude=self.longitude,
            accuracy_m=max(0.0, self.horizontal_accuracy_m),
        )
