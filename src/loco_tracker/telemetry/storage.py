"""HistoryStorage — persists loco trail points to SQLite with a retention window.

Schema design notes:
  - ``INTEGER PRIMARY KEY`` is a rowid alias; ties on ``created_at`` are
    broken by it so ascending order always equals insertion order.
  - ``created_at`` is REAL epoch seconds.  On insert it is clamped to the
    newest existing ``created_at`` for the asset, so a clock step backwards
    can never reorder the trail.
  - Retention is enforced on read (``created_at >= now - retention``); rows
    are physically purged opportunistically on insert.  Eviction is
    therefore eventual, not transactional.
  - No uniqueness constraint.  Near-duplicate points are kept out by the
    movement gate, not by the schema.
"""

from __future__ import annotations

import sqlite3
import threading
import time
from collections.abc import Callable

from loco_tracker.exceptions import StoreUnavailable
from loco_tracker.telemetry.models import HistoryRecord, TelemetryPoint

DEFAULT_RETENTION_S = 6 * 60 * 60

_DDL = """
PRAGMA journal_mode = WAL;
PRAGMA synchronous  = NORMAL;

CREATE TABLE IF NOT EXISTS loco_positions (
    id         INTEGER PRIMARY KEY,
    asset_id   TEXT    NOT NULL,
    lat        REAL    NOT NULL,
    lng        REAL    NOT NULL,
    station    TEXT    NOT NULL,
    event      TEXT    NOT NULL,
    speed      TEXT    NOT NULL,
    created_at REAL    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_positions_asset_created
    ON loco_positions (asset_id, created_at);

CREATE INDEX IF NOT EXISTS idx_positions_created
    ON loco_positions (created_at)
"""

_INSERT_POSITION = """
INSERT INTO loco_positions (asset_id, lat, lng, station, event, speed, created_at)
VALUES (?, ?, ?, ?, ?, ?, ?)
"""

_SELECT_NEWEST = """
SELECT MAX(created_at) FROM loco_positions WHERE asset_id = ?
"""

_SELECT_TRAIL = """
SELECT id, asset_id, lat, lng, station, event, speed, created_at
FROM   loco_positions
WHERE  asset_id = ? AND created_at >= ?
ORDER  BY created_at, id
"""

_DELETE_EXPIRED = "DELETE FROM loco_positions WHERE created_at < ?"


class HistoryStorage:
    """Stores and retrieves a loco's recent trail from a SQLite database.

    Parameters
    ----------
    db_path:
        Path to the SQLite file.  Pass ``":memory:"`` for in-process testing.
    retention_s:
        Points older than this many seconds are never returned.
    clock:
        Returns the current UNIX time; injected for testing.
    """

    def __init__(
        self,
        db_path: str = "loco_tracker.db",
        retention_s: float = DEFAULT_RETENTION_S,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._db_path = db_path
        self._retention_s = retention_s
        self._clock = clock
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def list_ascending(self, asset_id: str) -> list[HistoryRecord]:
        """Return unexpired points for *asset_id*, oldest first."""
        cutoff = self._clock() - self._retention_s
        try:
            with self._lock:
                rows = self._connection().execute(_SELECT_TRAIL, (asset_id, cutoff)).fetchall()
        except sqlite3.Error as exc:
            raise StoreUnavailable(f"History read failed: {exc}") from exc
        return [self._to_record(row) for row in rows]

    def insert(self, asset_id: str, point: TelemetryPoint) -> HistoryRecord:
        """Persist *point* for *asset_id* and return the stored record."""
        now = self._clock()
        try:
            with self._lock:
                conn = self._connection()
                self._purge_locked(conn, now - self._retention_s)
                newest = conn.execute(_SELECT_NEWEST, (asset_id,)).fetchone()[0]
                created_at = max(now, newest) if newest is not None else now
                cursor = conn.execute(
                    _INSERT_POSITION,
                    (
                        asset_id,
                        point.lat,
                        point.lng,
                        point.station,
                        point.event,
                        point.speed,
                        created_at,
                    ),
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise StoreUnavailable(f"History insert failed: {exc}") from exc
        return HistoryRecord(
            asset_id=asset_id,
            point=point,
            created_at=created_at,
            record_id=cursor.lastrowid,
        )

    def purge_expired(self) -> int:
        """Delete points past the retention window; return how many were removed."""
        cutoff = self._clock() - self._retention_s
        try:
            with self._lock:
                conn = self._connection()
                removed = self._purge_locked(conn, cutoff)
                conn.commit()
        except sqlite3.Error as exc:
            raise StoreUnavailable(f"History purge failed: {exc}") from exc
        return removed

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _connection(self) -> sqlite3.Connection:
        """Open the database and create the schema on first use.  Caller holds the lock."""
        if self._conn is None:
            conn = sqlite3.connect(self._db_path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            try:
                for stmt in _DDL.strip().split(";"):
                    stmt = stmt.strip()
                    if stmt:
                        conn.execute(stmt)
                conn.commit()
            except sqlite3.Error:
                conn.close()
                raise
            self._conn = conn
        return self._conn

    @staticmethod
    def _purge_locked(conn: sqlite3.Connection, cutoff: float) -> int:
        """Delete rows created before *cutoff*.  Caller holds the lock and commits."""
        return conn.execute(_DELETE_EXPIRED, (cutoff,)).rowcount

    @staticmethod
    def _to_record(row: sqlite3.Row) -> HistoryRecord:
        point = TelemetryPoint(
            lat=float(row["lat"]),
            lng=float(row["lng"]),
            station=row["station"],
            event=row["event"],
            speed=row["speed"],
        )
        return HistoryRecord(
            asset_id=row["asset_id"],
            point=point,
            created_at=float(row["created_at"]),
            record_id=int(row["id"]),
        )
