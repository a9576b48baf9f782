"""Error taxonomy for loco tracking.

Every failure the engine can surface is one of these kinds.  Each class
carries the HTTP status the web layer maps it to.
"""

from __future__ import annotations


class TrackingError(Exception):
    """Base exception for all tracking failures."""

    status_code: int = 500


class InvalidRequest(TrackingError, ValueError):
    """Missing or empty asset id.  Not retried; the user must correct it."""

    status_code = 400


class AssetNotFound(TrackingError):
    """The telemetry source has no rows for this asset id."""

    status_code = 404


class TelemetryUnavailable(TrackingError):
    """Transient upstream failure (network, timeout, non-2xx, bad JSON)."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.upstream_status = status_code
        super().__init__(message)


class MalformedTelemetry(TrackingError):
    """The telemetry payload does not have the expected shape."""


class StoreUnavailable(TrackingError):
    """Persistence failure.  Logged by the engine, never fatal to a poll."""
