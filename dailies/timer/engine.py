"""Timer collection state machine for Dailies.

Each timer is either running or not; at most one runs at a time and
``active_timer_id`` names the timer the widget and live activity show.

Operations
----------
add             append a stopped timer (name must not be blank)
start           pause whichever timer is running, then run this one
pause           bank elapsed time; the timer stays active (shown as paused)
toggle          pause if running, start otherwise
stop            bank elapsed time and drop it from the widget/live activity
reset           zero elapsed time; drop it from the widget if active
rename / set_reference_duration
remove          stop, then delete

Every mutation persists the collection, republishes the widget state and
asks the sync engine for a debounced two-way sync.  Operations on an
unknown id do nothing; a concurrent merge may have removed the timer.

Lifecycle
---------
``will_resign_active`` / ``did_enter_background`` bracket the app leaving
the foreground.  If the transition looks like the device being locked the
active timer keeps running (the lock screen still shows it); otherwise it
is paused.  ``will_terminate`` banks the running timer and flushes.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Callable

from PyQt6.QtCore import QObject, pyqtSignal, pyqtSlot
from sqlalchemy.exc import SQLAlchemyError

from ..database import store as kv
from ..database.store import KeyValueStore
from ..errors import NotConfigured, ValidationError
from ..sync.engine import RemoteSyncEngine
from ..sync.merge import merge_timers
from .lifecycle import LifecycleSample, is_likely_lock_screen_transition
from .models import Timer, WidgetState, utcnow
from .projection import derive_widget_state

logger = logging.getLogger(__name__)

DEFAULT_BRIGHTNESS = 1.0
UNKNOWN_RESIGN_INTERVAL = 1.0  # seconds assumed when no resign was seen


# ── engine ────────────────────────────────────────────────────────────────


class TimerEngine(QObject):
    """Owns the timer collection and enforces the single-running rule.

    Signals
    -------
    timers_changed(timers: list[Timer])
        Emitted after every mutation with a snapshot of the collection.
    active_timer_changed(timer_id: uuid.UUID | None)
    widget_state_changed(state: WidgetState)
    activity_started(state: WidgetState)
        The live activity should (re)start showing this timer.
    activity_updated(state: WidgetState)
        The active timer was paused; keep it visible as paused.
    activity_ended()
        Remove the live activity entirely.
    """

    timers_changed = pyqtSignal(object)
    active_timer_changed = pyqtSignal(object)
    widget_state_changed = pyqtSignal(object)
    activity_started = pyqtSignal(object)
    activity_updated = pyqtSignal(object)
    activity_ended = pyqtSignal()

    def __init__(
        self,
        parent: QObject | None = None,
        *,
        store: KeyValueStore | None = None,
        sync: RemoteSyncEngine | None = None,
        clock: Callable[[], datetime] = utcnow,
        lock_detector: Callable[[LifecycleSample], bool] = is_likely_lock_screen_transition,
    ) -> None:
        super().__init__(parent)

        self._store = store
        self._sync = sync
        self._clock = clock
        self._lock_detector = lock_detector

        # ── collection state ──────────────────────────────────────────
        self._timers: list[Timer] = []
        self._active_id: uuid.UUID | None = None
        self._removed_ids: set[uuid.UUID] = set()
        self._widget_state: WidgetState = WidgetState.empty(clock())

        # ── lifecycle bookkeeping ─────────────────────────────────────
        self._brightness_before: float = DEFAULT_BRIGHTNESS
        self._resigned_at: datetime | None = None

        if self._store is not None:
            self._restore()

        if self._sync is not None:
            self._sync.sync_finished.connect(self.apply_remote_updates)

    # ══════════════════════════════════════════════════════════════════
    #  PUBLIC PROPERTIES
    # ══════════════════════════════════════════════════════════════════

    @property
    def timers(self) -> list[Timer]:
        """Snapshot of the collection in display order."""
        return [t.copy() for t in self._timers]

    @property
    def active_timer_id(self) -> uuid.UUID | None:
        return self._active_id

    @property
    def active_timer(self) -> Timer | None:
        timer = self._find(self._active_id)
        return timer.copy() if timer else None

    @property
    def running_timer(self) -> Timer | None:
        for timer in self._timers:
            if timer.running:
                return timer.copy()
        return None

    @property
    def widget_state(self) -> WidgetState:
        return self._widget_state

    def get(self, timer_id: uuid.UUID) -> Timer | None:
        timer = self._find(timer_id)
        return timer.copy() if timer else None

    def current_elapsed(self, timer_id: uuid.UUID) -> float:
        """Live elapsed seconds for display; 0 for an unknown id."""
        timer = self._find(timer_id)
        return timer.current_elapsed(self._clock()) if timer else 0.0

    # ══════════════════════════════════════════════════════════════════
    #  CONTROLS
    # ══════════════════════════════════════════════════════════════════

    def add(self, name: str, reference_duration: float = 0.0) -> Timer:
        """Append a new stopped timer.  Raises :class:`ValidationError`."""
        name = (name or "").strip()
        if not name:
            raise ValidationError("Timer name must not be empty")
        timer = Timer(name=name, reference_duration=max(0.0, reference_duration))
        self._timers.append(timer)
        self._commit()
        return timer.copy()

    def start(self, timer_id: uuid.UUID) -> None:
        target = self._find(timer_id)
        if target is None or target.running:
            return
        now = self._clock()

        # Force-pause whatever else is running before this one starts
        for timer in self._timers:
            if timer.running:
                timer.bank(now)

        target.begin(now)
        self._set_active(target.id)
        self.activity_started.emit(self._project(now))
        self._commit()

    def pause(self, timer_id: uuid.UUID) -> None:
        timer = self._find(timer_id)
        if timer is None or not timer.running:
            return
        now = self._clock()
        timer.bank(now)
        if timer.id == self._active_id:
            self.activity_updated.emit(self._project(now))
        self._commit()

    def toggle(self, timer_id: uuid.UUID) -> None:
        timer = self._find(timer_id)
        if timer is None:
            return
        if timer.running:
            self.pause(timer_id)
        else:
            self.start(timer_id)

    def toggle_active_timer(self) -> None:
        """Widget / live-activity intent: toggle whatever is active."""
        if self._active_id is not None:
            self.toggle(self._active_id)

    def stop(self, timer_id: uuid.UUID) -> None:
        """Keep the elapsed time but take the timer off the widget."""
        if self._stop(timer_id):
            self._commit()

    def reset(self, timer_id: uuid.UUID) -> None:
        timer = self._find(timer_id)
        if timer is None:
            return
        timer.zero(self._clock())
        if timer.id == self._active_id:
            self._set_active(None)
            self.activity_ended.emit()
        self._commit()

    def rename(self, timer_id: uuid.UUID, new_name: str) -> None:
        timer = self._find(timer_id)
        new_name = (new_name or "").strip()
        if timer is None or not new_name:
            return
        timer.name = new_name
        self._commit()

    def set_reference_duration(self, timer_id: uuid.UUID, seconds: float) -> None:
        timer = self._find(timer_id)
        if timer is None:
            return
        timer.reference_duration = max(0.0, seconds)
        self._commit()

    def remove(self, timer_id: uuid.UUID) -> None:
        timer = self._find(timer_id)
        if timer is None:
            return
        self._stop(timer_id)
        self._timers.remove(timer)
        self._removed_ids.add(timer.id)
        self._commit()

    # ══════════════════════════════════════════════════════════════════
    #  SYNC
    # ══════════════════════════════════════════════════════════════════

    def manual_sync(self) -> list[Timer]:
        """Sync right now, bypassing the debounce.  Raises ``SyncError``."""
        if self._sync is None:
            raise NotConfigured()
        merged = self._sync.two_way_sync(self._timers, self._removed_ids)
        self.apply_remote_updates(merged)
        return self.timers

    @pyqtSlot(object)
    def apply_remote_updates(self, merged: list[Timer]) -> None:
        """Fold a sync result into the current collection.

        The user may have acted while the sync was in flight, so the
        result is merged again against live state rather than adopted.
        ``merged`` is what was just pushed, so a tombstone whose id is
        absent from it is no longer on the sheet and can be dropped.
        """
        result = merge_timers(
            self._timers, merged, self._clock(), exclude_ids=self._removed_ids
        )
        pushed_ids = {t.id for t in merged}
        pruned = self._removed_ids - pushed_ids
        self._removed_ids &= pushed_ids

        if result.changed:
            self._timers = result.timers
            self._commit(schedule_sync=False)
        elif pruned:
            self._persist()

    # ══════════════════════════════════════════════════════════════════
    #  APP LIFECYCLE
    # ══════════════════════════════════════════════════════════════════

    def will_resign_active(self, brightness: float) -> None:
        self._brightness_before = brightness
        self._resigned_at = self._clock()

    def did_enter_background(self, brightness: float) -> None:
        now = self._clock()
        if self._resigned_at is not None:
            since = (now - self._resigned_at).total_seconds()
        else:
            since = UNKNOWN_RESIGN_INTERVAL
        sample = LifecycleSample(self._brightness_before, brightness, since)

        active = self._find(self._active_id)
        if not self._lock_detector(sample) and active is not None and active.running:
            logger.info("App backgrounded, pausing %r", active.name)
            self.pause(active.id)
            return

        self._persist()
        self._publish_widget()

    def did_become_active(self) -> None:
        self._resigned_at = None
        self._request_sync()

    def announce_active_timer(self) -> None:
        """Re-request the live activity for a timer restored as running.

        Restore happens inside ``__init__`` before anything can connect,
        so hosts call this once their activity consumer is wired up.
        """
        active = self._find(self._active_id)
        if active is not None and active.running:
            self.activity_started.emit(self._project(self._clock()))

    def will_terminate(self) -> None:
        active = self._find(self._active_id)
        if active is not None and active.running:
            active.bank(self._clock())
        self._persist()
        self._publish_widget()
        self.activity_ended.emit()

    # ══════════════════════════════════════════════════════════════════
    #  INTERNAL
    # ══════════════════════════════════════════════════════════════════

    def _find(self, timer_id: uuid.UUID | None) -> Timer | None:
        if timer_id is None:
            return None
        for timer in self._timers:
            if timer.id == timer_id:
                return timer
        return None

    def _stop(self, timer_id: uuid.UUID) -> bool:
        timer = self._find(timer_id)
        if timer is None:
            return False
        timer.bank(self._clock())
        if timer.id == self._active_id:
            self._set_active(None)
            self.activity_ended.emit()
        return True

    def _set_active(self, timer_id: uuid.UUID | None) -> None:
        if timer_id == self._active_id:
            return
        self._active_id = timer_id
        self.active_timer_changed.emit(timer_id)

    def _project(self, now: datetime) -> WidgetState:
        return derive_widget_state(self._timers, self._active_id, now)

    def _commit(self, schedule_sync: bool = True) -> None:
        self._persist()
        self._publish_widget()
        self.timers_changed.emit(self.timers)
        if schedule_sync:
            self._request_sync()

    def _request_sync(self) -> None:
        if self._sync is not None:
            self._sync.schedule_auto_sync(self._timers, self._removed_ids)

    def _publish_widget(self) -> None:
        self._widget_state = self._project(self._clock())
        if self._store is not None:
            try:
                kv.save_widget_state(self._store, self._widget_state)
            except (SQLAlchemyError, OSError) as exc:
                logger.error("Could not persist widget state: %s", exc)
        self.widget_state_changed.emit(self._widget_state)

    # ══════════════════════════════════════════════════════════════════
    #  INTERNAL: persistence
    # ══════════════════════════════════════════════════════════════════

    def _persist(self) -> None:
        if self._store is None:
            return
        try:
            kv.save_timers(self._store, self._timers)
            kv.save_active_timer_id(self._store, self._active_id)
            kv.save_removed_ids(self._store, self._removed_ids)
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Could not persist timers: %s", exc)

    def _restore(self) -> None:
        self._timers = kv.load_timers(self._store)
        self._removed_ids = kv.load_removed_ids(self._store)
        active_id = kv.load_active_timer_id(self._store)
        if self._find(active_id) is None:
            active_id = None

        now = self._clock()
        running = [t for t in self._timers if t.running]
        keep = None
        if running:
            keep = next((t for t in running if t.id == active_id), running[0])
        for timer in running:
            # Bank the time accrued while we were gone; the kept one runs on
            timer.bank(now)
            if timer is keep:
                timer.begin(now)
        if keep is not None:
            active_id = keep.id

        self._active_id = active_id
        self._persist()
        self._publish_widget()
