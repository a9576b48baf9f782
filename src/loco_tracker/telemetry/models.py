"""Telemetry data models."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone

NOT_AVAILABLE = "N/A"


@dataclass(frozen=True)
class Position:
    """A WGS-84 coordinate pair in decimal degrees.

    Raises ``ValueError`` if either value is non-finite or out of range.
    """

    lat: float
    """Latitude [-90, 90]."""

    lng: float
    """Longitude [-180, 180]."""

    def __post_init__(self) -> None:
        if not (math.isfinite(self.lat) and math.isfinite(self.lng)):
            raise ValueError(f"Non-finite coordinates: ({self.lat}, {self.lng})")
        if not -90.0 <= self.lat <= 90.0:
            raise ValueError(f"Latitude out of range: {self.lat}")
        if not -180.0 <= self.lng <= 180.0:
            raise ValueError(f"Longitude out of range: {self.lng}")


@dataclass(frozen=True)
class TelemetryPoint:
    """A single provider-reported position plus status reading."""

    lat: float
    lng: float
    station: str = NOT_AVAILABLE
    event: str = NOT_AVAILABLE
    speed: str = NOT_AVAILABLE
    """Speed as reported by the source, e.g. ``"42 Kmph"``; not parsed."""

    def __post_init__(self) -> None:
        Position(self.lat, self.lng)

    @property
    def position(self) -> Position:
        return Position(self.lat, self.lng)

    def to_dict(self) -> dict:
        return {
            "lat": self.lat,
            "lng": self.lng,
            "station": self.station,
            "event": self.event,
            "speed": self.speed,
        }


@dataclass(frozen=True)
class HistoryRecord:
    """A stored (or in-memory synthesized) point on an asset's trail.

    ``record_id`` is ``None`` for entries the engine built in memory without
    persisting them.
    """

    asset_id: str
    point: TelemetryPoint
    created_at: float
    """UNIX epoch seconds (UTC)."""

    record_id: int | None = None

    @property
    def position(self) -> Position:
        return self.point.position

    @property
    def persisted(self) -> bool:
        return self.record_id is not None

    @property
    def timestamp(self) -> str:
        """``created_at`` as an ISO-8601 UTC string."""
        return (
            datetime.fromtimestamp(self.created_at, tz=timezone.utc)
            .isoformat(timespec="seconds")
            .replace("+00:00", "Z")
        )

    def to_dict(self) -> dict:
        d = self.point.to_dict()
        d["timestamp"] = self.timestamp
        return d


@dataclass
class Snapshot:
    """Current position plus ordered (oldest first) trail for one poll.

    When the asset has not moved and stored history exists, ``current`` is
    *not* repeated as the last ``history`` entry.  Use :meth:`trail` to get
    the merged, de-duplicated list of positions to draw.
    """

    current: TelemetryPoint
    history: list[HistoryRecord] = field(default_factory=list)
    moved: bool = False
    persisted: bool = False

    def trail(self) -> list[Position]:
        """Return history positions followed by ``current`` unless it is already last."""
        positions = [rec.position for rec in self.history]
        current = self.current.position
        if not positions or positions[-1] != current:
            positions.append(current)
        return positions

    def to_dict(self) -> dict:
        return {
            "current": self.current.to_dict(),
            "history": [rec.to_dict() for rec in self.history],
        }
