"""Tracker configuration."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from typing import Any

from loco_tracker.telemetry.source import FoisClient
from loco_tracker.telemetry.storage import DEFAULT_RETENTION_S
from loco_tracker.tracking.movement import COORDINATE_TOLERANCE
from loco_tracker.tracking.session import DEFAULT_POLL_INTERVAL_S


def _env_float(env: Mapping[str, str], key: str) -> float | None:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return None
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{key} must be a number, got {raw!r}") from exc


@dataclasses.dataclass(frozen=True)
class TrackerConfig:
    """Runtime settings for the tracker.

    Parameters
    ----------
    db_path : str
        SQLite file holding the position trail.
    fois_url : str
        FOIS RTIS endpoint.
    request_timeout_s : float
        Outbound telemetry request timeout.
    coordinate_tolerance : float
        Movement gate in degrees.  A change at or below this on both axes
        is treated as standing still.
    retention_s : float
        How long stored points stay visible.
    poll_interval_s : float
        Cadence of a tracking session.
    """

    db_path: str = "loco_tracker.db"
    fois_url: str = FoisClient.BASE_URL
    request_timeout_s: float = 15.0
    coordinate_tolerance: float = COORDINATE_TOLERANCE
    retention_s: float = DEFAULT_RETENTION_S
    poll_interval_s: float = DEFAULT_POLL_INTERVAL_S

    def __post_init__(self) -> None:
        for name in ("request_timeout_s", "retention_s", "poll_interval_s"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.coordinate_tolerance < 0:
            raise ValueError("coordinate_tolerance must be non-negative")

    @classmethod
    def from_env(cls, **overrides: Any) -> TrackerConfig:
        """Create configuration from ``LOCO_TRACKER_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ
        kwargs: dict[str, Any] = {}

        db_path = env.get("LOCO_TRACKER_DB")
        if db_path:
            kwargs["db_path"] = db_path
        fois_url = env.get("LOCO_TRACKER_FOIS_URL")
        if fois_url:
            kwargs["fois_url"] = fois_url

        _ENV_FLOAT_MAP = {
            "LOCO_TRACKER_TIMEOUT": "request_timeout_s",
            "LOCO_TRACKER_TOLERANCE": "coordinate_tolerance",
            "LOCO_TRACKER_RETENTION": "retention_s",
            "LOCO_TRACKER_POLL_INTERVAL": "poll_interval_s",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            value = _env_float(env, env_key)
            if value is not None:
                kwargs[field_name] = value

        kwargs.update(overrides)
        return cls(**kwargs)
