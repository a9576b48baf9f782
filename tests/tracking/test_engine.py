"""Tests for ReconciliationEngine."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

import pytest

from loco_tracker.exceptions import (
    AssetNotFound,
    InvalidRequest,
    MalformedTelemetry,
    StoreUnavailable,
    TelemetryUnavailable,
)
from loco_tracker.telemetry.models import HistoryRecord, TelemetryPoint
from loco_tracker.tracking.engine import ReconciliationEngine
from tests.conftest import EMPTY_PAYLOAD, FakeSource, make_payload

LOCO = "37875"


def make_engine(source, storage, clock=None) -> ReconciliationEngine:
    kwargs = {"clock": clock} if clock is not None else {}
    return ReconciliationEngine(source, storage, **kwargs)


# ---------------------------------------------------------------------------
# Reference scenario
# ---------------------------------------------------------------------------

def test_first_second_third_poll_scenario(storage, clock):
    source = FakeSource(
        make_payload(28.61, 77.20),
        make_payload(28.61, 77.20),
        make_payload(28.62, 77.21),
    )
    engine = make_engine(source, storage, clock)

    first = engine.reconcile(LOCO)
    assert len(first.history) == 1
    assert first.history[0].point == first.current
    assert first.moved and first.persisted

    clock.advance(30)
    second = engine.reconcile(LOCO)
    assert len(second.history) == 1
    assert second.current == first.current
    assert not second.moved and not second.persisted

    clock.advance(30)
    third = engine.reconcile(LOCO)
    assert len(third.history) == 2
    assert (third.history[-1].point.lat, third.history[-1].point.lng) == (28.62, 77.21)
    assert (third.current.lat, third.current.lng) == (28.62, 77.21)
    assert third.moved and third.persisted


def test_identical_polls_do_not_grow_store(storage, clock):
    engine = make_engine(FakeSource(make_payload()), storage, clock)
    engine.reconcile(LOCO)
    before = len(storage.list_ascending(LOCO))
    clock.advance(30)
    engine.reconcile(LOCO)
    clock.advance(30)
    engine.reconcile(LOCO)
    assert len(storage.list_ascending(LOCO)) == before == 1


def test_jitter_below_tolerance_is_not_persisted(storage):
    source = FakeSource(make_payload(28.61, 77.20), make_payload(28.61005, 77.20003))
    engine = make_engine(source, storage)
    engine.reconcile(LOCO)
    snap = engine.reconcile(LOCO)
    assert not snap.moved
    assert len(storage.list_ascending(LOCO)) == 1


# ---------------------------------------------------------------------------
# History payload rules
# ---------------------------------------------------------------------------

def test_not_moved_with_history_does_not_append_current(storage):
    source = FakeSource(make_payload(10.0, 10.0), make_payload(20.0, 20.0), make_payload(20.0, 20.0))
    engine = make_engine(source, storage)
    engine.reconcile(LOCO)
    engine.reconcile(LOCO)

    snap = engine.reconcile(LOCO)

    assert len(snap.history) == 2
    assert all(rec.persisted for rec in snap.history)
    assert [r.point.lat for r in snap.history] == [10.0, 20.0]
    assert snap.current.station == "NDLS"


def test_not_moved_current_not_repeated_after_stored_last(storage):
    # Stored last point and live point differ by jitter: current stays outside history.
    source = FakeSource(make_payload(28.61, 77.20), make_payload(28.61004, 77.20))
    engine = make_engine(source, storage)
    engine.reconcile(LOCO)
    snap = engine.reconcile(LOCO)
    assert snap.history[-1].point != snap.current
    assert len(snap.history) == 1


def test_empty_store_always_returns_current_in_history():
    storage = MagicMock()
    storage.list_ascending.return_value = []
    storage.insert.side_effect = StoreUnavailable("disk full")
    snap = make_engine(FakeSource(make_payload()), storage).reconcile(LOCO)
    assert len(snap.history) >= 1
    assert snap.history[-1].point == snap.current


def test_history_is_oldest_first(storage, clock):
    source = FakeSource(*(make_payload(10.0 + i, 10.0) for i in range(4)))
    engine = make_engine(source, storage, clock)
    for _ in range(4):
        snap = engine.reconcile(LOCO)
        clock.advance(30)
    stamps = [r.created_at for r in snap.history]
    assert stamps == sorted(stamps)
    assert [r.point.lat for r in snap.history] == [10.0, 11.0, 12.0, 13.0]


def test_asset_id_is_stripped(storage):
    source = FakeSource(make_payload())
    make_engine(source, storage).reconcile("  37875 ")
    assert source.calls == ["37875"]
    assert len(storage.list_ascending("37875")) == 1


# ---------------------------------------------------------------------------
# Store failures are non-fatal
# ---------------------------------------------------------------------------

def test_insert_failure_returns_in_memory_snapshot(caplog):
    stored = HistoryRecord(LOCO, TelemetryPoint(10.0, 10.0), created_at=1.0, record_id=1)
    storage = MagicMock()
    storage.list_ascending.return_value = [stored]
    storage.insert.side_effect = StoreUnavailable("database is locked")

    with caplog.at_level(logging.WARNING, logger="loco_tracker.tracking.engine"):
        snap = make_engine(FakeSource(make_payload(20.0, 20.0)), storage).reconcile(LOCO)

    assert snap.moved and not snap.persisted
    assert len(snap.history) == 2
    assert snap.history[0] is stored
    assert not snap.history[-1].persisted
    assert snap.history[-1].point == snap.current
    assert "database is locked" in caplog.text


def test_read_failure_treated_as_empty_history():
    storage = MagicMock()
    storage.list_ascending.side_effect = StoreUnavailable("cannot open")
    storage.insert.side_effect = StoreUnavailable("cannot open")
    snap = make_engine(FakeSource(make_payload()), storage).reconcile(LOCO)
    assert snap.moved
    assert len(snap.history) == 1


def test_at_most_one_insert_per_call(storage):
    storage_spy = MagicMock(wraps=storage)
    make_engine(FakeSource(make_payload()), storage_spy).reconcile(LOCO)
    assert storage_spy.insert.call_count == 1


# ---------------------------------------------------------------------------
# Telemetry failures are fatal and never touch the store
# ---------------------------------------------------------------------------

def test_zero_rows_raises_not_found_without_store_access():
    storage = MagicMock()
    with pytest.raises(AssetNotFound):
        make_engine(FakeSource(EMPTY_PAYLOAD), storage).reconcile(LOCO)
    storage.list_ascending.assert_not_called()
    storage.insert.assert_not_called()


def test_source_failure_propagates_without_store_access():
    storage = MagicMock()
    with pytest.raises(TelemetryUnavailable):
        make_engine(FakeSource(TelemetryUnavailable("FOIS API failed: 502")), storage).reconcile(LOCO)
    storage.list_ascending.assert_not_called()


def test_malformed_payload_propagates():
    storage = MagicMock()
    with pytest.raises(MalformedTelemetry):
        make_engine(FakeSource({"RowCont": "1", "LocoDtls": [{}]}), storage).reconcile(LOCO)
    storage.insert.assert_not_called()


@pytest.mark.parametrize("asset_id", ["", "   ", None])
def test_empty_asset_id_is_invalid(asset_id):
    source = FakeSource()
    with pytest.raises(InvalidRequest):
        make_engine(source, MagicMock()).reconcile(asset_id)
    assert source.calls == []
