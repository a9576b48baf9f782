"""Shared fixtures and payload builders."""

from __future__ import annotations

import pytest

from loco_tracker.telemetry.storage import HistoryStorage

POPUP = (
    "Loco: <b>37875</b><br>Station: <b>NDLS</b><br>"
    "Event: <b>Departed</b><br>Speed: <b>42 Kmph</b>"
)


def make_payload(lat: float | str = 28.61, lng: float | str = 77.20, popup: str | None = POPUP) -> dict:
    """Build a one-row FOIS RTIS response."""
    row: dict = {"Lttd": str(lat), "Lgtd": str(lng)}
    if popup is not None:
        row["PopUpMsg"] = popup
    return {"RowCont": "1", "LocoDtls": [row]}


EMPTY_PAYLOAD = {"RowCont": "0"}


class FakeSource:
    """Telemetry source returning queued payloads (the last one repeats)."""

    def __init__(self, *payloads: object) -> None:
        self.payloads = list(payloads) or [make_payload()]
        self.calls: list[str] = []

    def push(self, payload: object) -> None:
        self.payloads.append(payload)

    def fetch(self, asset_id: str) -> object:
        self.calls.append(asset_id)
        if len(self.payloads) > 1:
            payload = self.payloads.pop(0)
        else:
            payload = self.payloads[0]
        if isinstance(payload, Exception):
            raise payload
        return payload


class FakeClock:
    """Manually advanced UNIX clock."""

    def __init__(self, start: float = 1_760_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage(tmp_path, clock):
    s = HistoryStorage(str(tmp_path / "trail.db"), retention_s=6 * 3600, clock=clock)
    yield s
    s.close()
