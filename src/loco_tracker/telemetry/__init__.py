"""Loco telemetry acquisition and persistence.

Public API
----------
Position         - validated lat/lng pair
TelemetryPoint   - one parsed position + status reading
HistoryRecord    - a stored (or synthesized) trail point
Snapshot         - current point + ordered trail returned per poll
TelemetryParser  - raw FOIS payload → TelemetryPoint
parse_popup_msg  - best-effort Station/Event/Speed extraction
FoisClient       - outbound HTTP fetch of the live loco report
HistoryStorage   - SQLite trail with a retention window
"""

from loco_tracker.telemetry.models import HistoryRecord, Position, Snapshot, TelemetryPoint
from loco_tracker.telemetry.parser import TelemetryParser, parse_popup_msg
from loco_tracker.telemetry.source import FoisClient
from loco_tracker.telemetry.storage import HistoryStorage

__all__ = [
    "FoisClient",
    "HistoryRecord",
    "HistoryStorage",
    "Position",
    "Snapshot",
    "TelemetryParser",
    "TelemetryPoint",
    "parse_popup_msg",
]
