"""TrackingSession — start/stop/poll state machine with a cancellable cadence."""

from __future__ import annotations

import dataclasses
import enum
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass

from loco_tracker.exceptions import TrackingError
from loco_tracker.telemetry.models import Snapshot

_logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_S = 30.0


class TrackingStatus(enum.Enum):
    IDLE = "idle"
    ACTIVE = "active"
    ERROR = "error"


@dataclass
class SessionState:
    """Mutable state of one tracking session."""

    asset_id: str = ""
    status: TrackingStatus = TrackingStatus.IDLE
    last_snapshot: Snapshot | None = None
    error: str | None = None
    """User-visible message, set only in ``ERROR``."""

    polls: int = 0
    """Successful polls applied since the last start."""


class TrackingSession:
    """Drives periodic reconciliation for one asset.

    ``start`` runs the first poll synchronously, then a daemon thread polls
    every *interval_s* seconds.  Each start issues a fresh cancellation token
    (a ``threading.Event``) after cancelling the previous one; a poll whose
    token was cancelled while it was in flight never applies its result.
    Any failure moves the session to ``ERROR`` and stops the cadence; there
    is no automatic retry.

    Parameters
    ----------
    engine:
        Object with ``reconcile(asset_id) -> Snapshot``.
    interval_s:
        Seconds between the end of one poll and the start of the next.
    on_update:
        Optional callback receiving a copy of the :class:`SessionState`
        after every applied transition.
    """

    def __init__(
        self,
        engine,
        interval_s: float = DEFAULT_POLL_INTERVAL_S,
        on_update: Callable[[SessionState], None] | None = None,
    ) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        self._engine = engine
        self._interval = interval_s
        self._on_update = on_update
        self._state = SessionState()
        self._token: threading.Event | None = None
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()  # guards _state and _token
        self._poll_lock = threading.Lock()  # one poll in flight at a time

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        """A copy of the current state."""
        with self._lock:
            return dataclasses.replace(self._state)

    @property
    def status(self) -> TrackingStatus:
        with self._lock:
            return self._state.status

    def start(self, asset_id: str) -> SessionState:
        """Begin (or restart) tracking *asset_id*.  Valid from any state."""
        asset_id = (asset_id or "").strip()
        with self._lock:
            self._cancel_locked()
            token = threading.Event()
            self._token = token
            self._state = SessionState(asset_id=asset_id, status=TrackingStatus.ACTIVE)
        _logger.info("Tracking started for loco %r", asset_id)

        if self._poll(token, blocking=True):
            self._schedule(token, asset_id)
        return self.state

    def tick(self) -> SessionState:
        """Run one poll now if ``ACTIVE`` and no poll is already in flight."""
        with self._lock:
            token = self._token
            active = self._state.status is TrackingStatus.ACTIVE
        if token is not None and active:
            self._poll(token, blocking=False)
        return self.state

    def stop(self) -> SessionState:
        """Cancel the cadence and return to ``IDLE``; the snapshot is dropped."""
        with self._lock:
            self._cancel_locked()
            self._state = SessionState(asset_id=self._state.asset_id)
            state = dataclasses.replace(self._state)
        _logger.info("Tracking stopped for loco %r", state.asset_id)
        self._notify(state)
        return state

    def join(self, timeout: float | None = None) -> None:
        """Wait for the cadence thread to exit (after ``stop`` or an error)."""
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _cancel_locked(self) -> None:
        if self._token is not None:
            self._token.set()
            self._token = None

    def _schedule(self, token: threading.Event, asset_id: str) -> None:
        self._thread = threading.Thread(
            target=self._run,
            args=(token,),
            daemon=True,
            name=f"LocoPoll-{asset_id}",
        )
        self._thread.start()

    def _run(self, token: threading.Event) -> None:
        while not token.wait(self._interval):
            self._poll(token, blocking=False)

    def _poll(self, token: threading.Event, *, blocking: bool) -> bool:
        """Run one reconcile for *token*; return True if a success was applied."""
        if not self._poll_lock.acquire(blocking=blocking):
            _logger.debug("Poll skipped: previous poll still in flight")
            return False
        try:
            with self._lock:
                if token.is_set() or token is not self._token:
                    return False
                asset_id = self._state.asset_id

            snapshot: Snapshot | None = None
            error: str | None = None
            try:
                snapshot = self._engine.reconcile(asset_id)
            except TrackingError as exc:
                error = str(exc) or type(exc).__name__
            except Exception as exc:
                _logger.exception("Unexpected error polling loco %r", asset_id)
                error = str(exc) or type(exc).__name__

            with self._lock:
                if token.is_set() or token is not self._token:
                    _logger.debug("Discarding result of cancelled poll for loco %r", asset_id)
                    return False
                if error is not None:
                    token.set()
                    self._state.status = TrackingStatus.ERROR
                    self._state.error = error
                else:
                    self._state.last_snapshot = snapshot
                    self._state.polls += 1
                state = dataclasses.replace(self._state)

            if error is not None:
                _logger.warning("Tracking halted for loco %r: %s", asset_id, error)
            self._notify(state)
            return error is None
        finally:
            self._poll_lock.release()

    def _notify(self, state: SessionState) -> None:
        if self._on_update is None:
            return
        try:
            self._on_update(state)
        except Exception:
            _logger.exception("on_update callback failed for loco %r", state.asset_id)
