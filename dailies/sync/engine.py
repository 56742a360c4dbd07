"""Remote synchronisation engine.

Auto-sync
---------
Every local mutation calls :meth:`RemoteSyncEngine.schedule_auto_sync`
with a snapshot of the timer list.  A single-shot ``QTimer`` restarts on
each call, so a burst of edits produces one sync once the user has been
quiet for ``debounce_seconds``.  When it fires, the latest snapshot is
handed to a one-worker executor; a mutation arriving after that moment
simply arms the next cycle.

Two-way sync
------------
fetch remote rows → merge in memory → overwrite the whole sheet → record
``last_sync_at``.  Nothing is written remotely until the merge is complete
and nothing local changes until the caller receives the result.  At most
one two-way sync (or push) runs at a time.

Signals
-------
sync_started()
sync_finished(timers: list[Timer])
    Emitted after a successful background sync with the merged list.
sync_failed(error: SyncError)
    Emitted when a background sync fails.  Auto-sync retries naturally on
    the next mutation.
"""

from __future__ import annotations

import logging
import threading
import uuid
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from ..errors import NotConfigured, SyncError, WriteNotPermitted
from ..settings import Settings
from ..timer.models import Timer, utcnow
from .merge import merge_timers
from .sheets import SheetsClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectionResult:
    success: bool
    message: str
    timestamp: datetime


class RemoteSyncEngine(QObject):
    """Keeps the local timer list and the spreadsheet eventually consistent."""

    sync_started = pyqtSignal()
    sync_finished = pyqtSignal(object)
    sync_failed = pyqtSignal(object)

    def __init__(
        self,
        settings: Settings,
        client: SheetsClient | None,
        parent: QObject | None = None,
        *,
        executor: Executor | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        super().__init__(parent)
        self._settings = settings
        self._client = client
        self._clock = clock
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="dailies-sync"
        )

        self._sync_lock = threading.Lock()
        self._syncing = False
        self._last_sync_at: datetime | None = None
        self._last_error: SyncError | None = None

        self._pending: tuple[list[Timer], set[uuid.UUID]] | None = None
        self._debounce_timer = QTimer(self)
        self._debounce_timer.setSingleShot(True)
        self._debounce_timer.setInterval(int(settings.debounce_seconds * 1000))
        self._debounce_timer.timeout.connect(self._on_debounce_elapsed)

    # ══════════════════════════════════════════════════════════════════
    #  PUBLIC PROPERTIES
    # ══════════════════════════════════════════════════════════════════

    @property
    def is_configured(self) -> bool:
        return self._client is not None

    @property
    def can_write(self) -> bool:
        """Writes need a service account in the settings and on the client."""
        if self._client is None or self._client.credentials.read_only:
            return False
        return self._settings.can_write

    @property
    def auto_sync_available(self) -> bool:
        return self._settings.auto_sync_enabled and self.can_write

    @property
    def is_syncing(self) -> bool:
        return self._syncing

    @property
    def has_pending_sync(self) -> bool:
        return self._debounce_timer.isActive()

    @property
    def last_sync_at(self) -> datetime | None:
        return self._last_sync_at

    @property
    def last_error(self) -> SyncError | None:
        return self._last_error

    def reconfigure(self, settings: Settings, client: SheetsClient | None) -> None:
        """Swap in new settings (e.g. after the settings form is saved)."""
        self.cancel_pending()
        self._settings = settings
        self._client = client
        self._debounce_timer.setInterval(int(settings.debounce_seconds * 1000))

    # ══════════════════════════════════════════════════════════════════
    #  AUTO-SYNC (debounced)
    # ══════════════════════════════════════════════════════════════════

    def schedule_auto_sync(
        self, timers: Iterable[Timer], exclude_ids: Iterable[uuid.UUID] = ()
    ) -> None:
        if not self.auto_sync_available:
            return
        self._pending = ([t.copy() for t in timers], set(exclude_ids))
        self._debounce_timer.start()

    def cancel_pending(self) -> None:
        self._debounce_timer.stop()
        self._pending = None

    def shutdown(self) -> None:
        self.cancel_pending()
        self._executor.shutdown(wait=False)

    def _on_debounce_elapsed(self) -> None:
        pending, self._pending = self._pending, None
        if pending is None:
            return
        timers, exclude_ids = pending
        future = self._executor.submit(self._run_background_sync, timers, exclude_ids)
        future.add_done_callback(_log_unexpected)

    def _run_background_sync(
        self, timers: list[Timer], exclude_ids: set[uuid.UUID]
    ) -> None:
        self.sync_started.emit()
        try:
            merged = self.two_way_sync(timers, exclude_ids)
        except SyncError as exc:
            logger.error("Auto-sync failed: %s", exc)
            self.sync_failed.emit(exc)
            return
        self.sync_finished.emit(merged)

    # ══════════════════════════════════════════════════════════════════
    #  SYNC OPERATIONS
    # ══════════════════════════════════════════════════════════════════

    def two_way_sync(
        self,
        local_timers: Iterable[Timer],
        exclude_ids: Iterable[uuid.UUID] = (),
    ) -> list[Timer]:
        """Merge with the sheet and push the result.  Returns the merge."""
        client = self._writable_client()
        local = [t.copy() for t in local_timers]

        with self._sync_lock:
            self._syncing = True
            try:
                remote = client.fetch_timers()
                now = self._clock()
                result = merge_timers(local, remote, now, exclude_ids=exclude_ids)
                client.put_timers(result.timers, now)
            except SyncError as exc:
                self._last_error = exc
                raise
            finally:
                self._syncing = False

            self._last_sync_at = self._clock()
            self._last_error = None

        if result.changed:
            logger.info("Two-way sync complete with remote updates")
        else:
            logger.info("Two-way sync complete (no remote updates)")
        return result.timers

    def push_timers(self, timers: Iterable[Timer]) -> None:
        """Overwrite the sheet with ``timers`` without reading it first."""
        client = self._writable_client()
        snapshot = [t.copy() for t in timers]
        with self._sync_lock:
            self._syncing = True
            try:
                client.put_timers(snapshot, self._clock())
            except SyncError as exc:
                self._last_error = exc
                raise
            finally:
                self._syncing = False
            self._last_sync_at = self._clock()
            self._last_error = None

    def fetch_timers(self) -> list[Timer]:
        """Read the sheet.  Works with a read-only API key."""
        if self._client is None:
            raise NotConfigured()
        try:
            timers = self._client.fetch_timers()
        except SyncError as exc:
            self._last_error = exc
            raise
        self._last_sync_at = self._clock()
        return timers

    def test_connection(self) -> ConnectionResult:
        """Read the spreadsheet title to check the configuration."""
        try:
            if self._client is None:
                raise NotConfigured()
            title = self._client.fetch_title()
        except SyncError as exc:
            self._last_error = exc
            return ConnectionResult(False, str(exc), self._clock())
        message = f'Connected to: "{title}"' if title else "Connection successful!"
        return ConnectionResult(True, message, self._clock())

    def _writable_client(self) -> SheetsClient:
        if self._client is None:
            raise NotConfigured()
        if not self.can_write:
            raise WriteNotPermitted()
        return self._client


def _log_unexpected(future: Future) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.error("Background sync crashed", exc_info=exc)
