"""TrackingService — wires the reconciliation engine for one Web API request."""

from __future__ import annotations

from loco_tracker.config import TrackerConfig
from loco_tracker.telemetry.models import Snapshot
from loco_tracker.telemetry.source import FoisClient
from loco_tracker.telemetry.storage import HistoryStorage
from loco_tracker.tracking.engine import ReconciliationEngine


class TrackingService:
    """Runs one reconciliation per request with request-scoped resources.

    Parameters
    ----------
    config:
        Tracker settings.  Read from the environment when None.
    source:
        Optional telemetry source for testing injection.  If None a
        :class:`FoisClient` is created (and closed) per call.
    """

    def __init__(
        self,
        config: TrackerConfig | None = None,
        source: FoisClient | None = None,
    ) -> None:
        self._config = config or TrackerConfig.from_env()
        self._source = source

    def track(self, loco_id: str) -> Snapshot:
        """Reconcile *loco_id* once and return the snapshot.

        Raises
        ------
        TrackingError
            Any of the taxonomy kinds the engine surfaces.
        """
        cfg = self._config
        source = self._source or FoisClient(cfg.fois_url, timeout=cfg.request_timeout_s)
        storage = HistoryStorage(cfg.db_path, retention_s=cfg.retention_s)
        try:
            engine = ReconciliationEngine(source, storage, tolerance=cfg.coordinate_tolerance)
            return engine.reconcile(loco_id)
        finally:
            storage.close()
            if self._source is None:
                source.close()
