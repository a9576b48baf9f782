"""TelemetryParser — converts a raw FOIS RTIS response to TelemetryPoint."""

from __future__ import annotations

import math
import re

from loco_tracker.exceptions import AssetNotFound, MalformedTelemetry
from loco_tracker.telemetry.models import NOT_AVAILABLE, TelemetryPoint

# PopUpMsg label → TelemetryPoint field.  Values sit inside <b>…</b>.
_POPUP_FIELDS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("station", re.compile(r"Station:\s*<b>(.*?)</b>", re.DOTALL)),
    ("event",   re.compile(r"Event:\s*<b>(.*?)</b>", re.DOTALL)),
    ("speed",   re.compile(r"Speed:\s*<b>(.*?)</b>", re.DOTALL)),
)


def parse_popup_msg(text: object) -> dict[str, str]:
    """Extract ``station``/``event``/``speed`` from a PopUpMsg annotation.

    Each field is matched independently; a missing field (or a non-string
    annotation) yields ``"N/A"``.  Never raises.
    """
    if not isinstance(text, str):
        text = ""
    result: dict[str, str] = {}
    for name, pattern in _POPUP_FIELDS:
        match = pattern.search(text)
        value = match.group(1).strip() if match else ""
        result[name] = value or NOT_AVAILABLE
    return result


def _coordinate(row: dict, key: str) -> float:
    raw = row.get(key)
    if raw is None or isinstance(raw, bool):
        raise MalformedTelemetry(f"Missing coordinate field {key!r}")
    try:
        value = float(str(raw).strip())
    except ValueError as exc:
        raise MalformedTelemetry(f"Non-numeric coordinate {key}={raw!r}") from exc
    if not math.isfinite(value):
        raise MalformedTelemetry(f"Non-finite coordinate {key}={raw!r}")
    return value


def _has_rows(payload: dict) -> bool:
    if str(payload.get("RowCont", "")).strip() == "0":
        return False
    return bool(payload.get("LocoDtls"))


class TelemetryParser:
    """Parses a FOIS RTIS JSON payload into a :class:`TelemetryPoint`.

    Only the first ``LocoDtls`` row is used.  Coordinates are strict; the
    free-text annotation is best effort.
    """

    def parse(self, payload: object) -> TelemetryPoint:
        """Convert *payload* to a validated :class:`TelemetryPoint`.

        Raises
        ------
        AssetNotFound
            If the payload reports zero rows.
        MalformedTelemetry
            If the payload or its coordinates have an unexpected shape.
        """
        if not isinstance(payload, dict):
            raise MalformedTelemetry(f"Expected a JSON object, got {type(payload).__name__}")
        if not _has_rows(payload):
            raise AssetNotFound("Loco not found or no data available.")

        rows = payload["LocoDtls"]
        if not isinstance(rows, list) or not isinstance(rows[0], dict):
            raise MalformedTelemetry("LocoDtls is not a list of objects")
        row = rows[0]

        lat = _coordinate(row, "Lttd")
        lng = _coordinate(row, "Lgtd")
        try:
            return TelemetryPoint(lat=lat, lng=lng, **parse_popup_msg(row.get("PopUpMsg")))
        except ValueError as exc:
            raise MalformedTelemetry(str(exc)) from exc
