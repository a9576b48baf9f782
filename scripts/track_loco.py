"""Terminal loco tracker — polls FOIS and prints the live position and trail.

Usage:
  uv run python scripts/track_loco.py --loco 37875
  uv run python scripts/track_loco.py --loco 37875 --db trail.db --interval 60
  uv run python scripts/track_loco.py --loco 37875 --once

Ctrl+C stops tracking.  Settings not given on the command line are read from
LOCO_TRACKER_* environment variables (and .env).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import threading

from dotenv import load_dotenv

from loco_tracker.config import TrackerConfig
from loco_tracker.exceptions import TrackingError
from loco_tracker.telemetry.source import FoisClient
from loco_tracker.telemetry.storage import HistoryStorage
from loco_tracker.tracking.engine import ReconciliationEngine
from loco_tracker.tracking.session import SessionState, TrackingSession, TrackingStatus


def _print_state(state: SessionState) -> None:
    if state.status is TrackingStatus.ERROR:
        print(f"\n× {state.error}", file=sys.stderr)
        return
    snap = state.last_snapshot
    if snap is None:
        return
    cur = snap.current
    print(
        f"\r#{state.polls:>4}  ({cur.lat:>9.5f}, {cur.lng:>9.5f})  "
        f"{cur.station:<20.20}  {cur.event:<12.12}  {cur.speed:>10.10}  "
        f"trail={len(snap.trail()):>3}{'  moved' if snap.moved else ''}",
        end="",
        flush=True,
    )


def main() -> None:
    load_dotenv()
    ap = argparse.ArgumentParser(description="Track a locomotive's live position")
    ap.add_argument("--loco", required=True, help="Locomotive ID")
    ap.add_argument("--db", default=None, help="SQLite trail database path")
    ap.add_argument("--interval", type=float, default=None, help="Seconds between polls")
    ap.add_argument("--once", action="store_true", help="Poll once and print the snapshot as JSON")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = ap.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    overrides = {}
    if args.db:
        overrides["db_path"] = args.db
    if args.interval:
        overrides["poll_interval_s"] = args.interval
    cfg = TrackerConfig.from_env(**overrides)

    source = FoisClient(cfg.fois_url, timeout=cfg.request_timeout_s)
    storage = HistoryStorage(cfg.db_path, retention_s=cfg.retention_s)
    engine = ReconciliationEngine(source, storage, tolerance=cfg.coordinate_tolerance)

    try:
        if args.once:
            try:
                snapshot = engine.reconcile(args.loco)
            except TrackingError as exc:
                print(f"× {exc}", file=sys.stderr)
                sys.exit(1)
            print(json.dumps(snapshot.to_dict(), indent=2, ensure_ascii=False))
            return

        halted = threading.Event()

        def on_update(state: SessionState) -> None:
            _print_state(state)
            if state.status is not TrackingStatus.ACTIVE:
                halted.set()

        session = TrackingSession(engine, interval_s=cfg.poll_interval_s, on_update=on_update)
        print(f"Loco     : {args.loco}")
        print(f"Database : {cfg.db_path}")
        print(f"Interval : {cfg.poll_interval_s:.0f}s   (Ctrl+C to stop)\n")

        try:
            session.start(args.loco)
            halted.wait()
        except KeyboardInterrupt:
            session.stop()
            print("\n\nTracking stopped.")
        session.join(timeout=2.0)
        if session.status is TrackingStatus.ERROR:
            sys.exit(1)
    finally:
        storage.close()
        source.close()


if __name__ == "__main__":
    main()
