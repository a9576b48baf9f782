"""ReconciliationEngine — one poll: fetch, compare, maybe persist, build a Snapshot."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from loco_tracker.exceptions import InvalidRequest, StoreUnavailable
from loco_tracker.telemetry.models import HistoryRecord, Snapshot, TelemetryPoint
from loco_tracker.telemetry.parser import TelemetryParser
from loco_tracker.tracking.movement import COORDINATE_TOLERANCE, has_moved

_logger = logging.getLogger(__name__)


class ReconciliationEngine:
    """Turns fresh telemetry plus stored history into a :class:`Snapshot`.

    At most one record is persisted per call.  Store failures are logged
    and never fail the poll; telemetry failures always do.

    Parameters
    ----------
    source:
        Object with ``fetch(asset_id) -> dict`` raising
        :class:`~loco_tracker.exceptions.TelemetryUnavailable`.
    storage:
        Object with ``list_ascending(asset_id)`` and ``insert(asset_id, point)``,
        e.g. :class:`~loco_tracker.telemetry.storage.HistoryStorage`.
    parser:
        Payload parser; defaults to :class:`TelemetryParser`.
    tolerance:
        Movement gate in degrees.
    clock:
        Timestamp source for in-memory (unpersisted) history entries.
    """

    def __init__(
        self,
        source,
        storage,
        parser: TelemetryParser | None = None,
        tolerance: float = COORDINATE_TOLERANCE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._source = source
        self._storage = storage
        self._parser = parser or TelemetryParser()
        self._tolerance = tolerance
        self._clock = clock

    def reconcile(self, asset_id: str) -> Snapshot:
        """Run one reconciliation cycle for *asset_id*.

        Raises
        ------
        InvalidRequest
            If *asset_id* is empty.
        AssetNotFound, TelemetryUnavailable, MalformedTelemetry
            If current telemetry cannot be obtained.  The store is not
            touched in that case.
        """
        asset_id = (asset_id or "").strip()
        if not asset_id:
            raise InvalidRequest("Loco ID is required")

        # ------------------------------------------------------------------
        # Step 1: Live telemetry
        # ------------------------------------------------------------------
        current = self._parser.parse(self._source.fetch(asset_id))
        _logger.debug("Loco %s at (%.6f, %.6f)", asset_id, current.lat, current.lng)

        # ------------------------------------------------------------------
        # Step 2: Stored trail
        # ------------------------------------------------------------------
        try:
            stored = self._storage.list_ascending(asset_id)
        except StoreUnavailable as exc:
            _logger.warning("History unavailable for loco %s: %s", asset_id, exc)
            stored = []
        last = stored[-1] if stored else None

        # ------------------------------------------------------------------
        # Step 3: Movement gate
        # ------------------------------------------------------------------
        moved = has_moved(
            last.position if last is not None else None,
            current.position,
            self._tolerance,
        )

        # ------------------------------------------------------------------
        # Step 4: Persist new point
        # ------------------------------------------------------------------
        new_record: HistoryRecord | None = None
        if moved:
            try:
                new_record = self._storage.insert(asset_id, current)
            except StoreUnavailable as exc:
                _logger.warning("Failed to save new point for loco %s: %s", asset_id, exc)
                new_record = self._synthesize(asset_id, current)

        # ------------------------------------------------------------------
        # Step 5: History payload
        # ------------------------------------------------------------------
        # An empty trail always counts as moved, so history is never empty here.
        history = list(stored)
        if new_record is not None:
            history.append(new_record)

        persisted = new_record is not None and new_record.persisted
        _logger.info(
            "Loco %s: moved=%s persisted=%s history=%d",
            asset_id,
            moved,
            persisted,
            len(history),
        )
        return Snapshot(current=current, history=history, moved=moved, persisted=persisted)

    def _synthesize(self, asset_id: str, point: TelemetryPoint) -> HistoryRecord:
        return HistoryRecord(asset_id=asset_id, point=point, created_at=self._clock())
