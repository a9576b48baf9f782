"""Movement gate — decides whether a new fix is real movement."""

from __future__ import annotations

from loco_tracker.telemetry.models import Position

COORDINATE_TOLERANCE = 1e-4  # degrees; above GPS jitter, below a real move


def has_moved(
    last: Position | None,
    current: Position,
    tolerance: float = COORDINATE_TOLERANCE,
) -> bool:
    """Return True if *current* differs from *last* by more than *tolerance*.

    Either axis exceeding the tolerance counts as movement.  With no last
    known position the asset is always considered to have moved.
    """
    if last is None:
        return True
    return abs(last.lat - current.lat) > tolerance or abs(last.lng - current.lng) > tolerance
