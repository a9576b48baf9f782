"""Reconciliation and client-side tracking sessions."""

from loco_tracker.tracking.engine import ReconciliationEngine
from loco_tracker.tracking.movement import COORDINATE_TOLERANCE, has_moved
from loco_tracker.tracking.session import SessionState, TrackingSession, TrackingStatus

__all__ = [
    "COORDINATE_TOLERANCE",
    "ReconciliationEngine",
    "SessionState",
    "TrackingSession",
    "TrackingStatus",
    "has_moved",
]
