"""Merge rules between the local timer list and a remote snapshot.

The same rules run twice: once inside a two-way sync (local snapshot vs.
freshly fetched rows) and once when the engine folds the sync result into
whatever the user did while the network round-trip was in flight.

* A timer reset within :data:`RECENT_RESET_WINDOW` seconds keeps its local
  value; the remote copy is almost certainly the pre-reset total.
* A running timer is never touched; its live clock is authoritative.
* Otherwise a strictly greater remote elapsed value wins.
* Remote rows with no local counterpart are appended, not running, unless
  their id is in ``exclude_ids`` (timers deleted locally).

Known gap: a remote write that lands after the reset window has closed
can still bring back a pre-reset total.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from ..timer.models import Timer

logger = logging.getLogger(__name__)

RECENT_RESET_WINDOW = 10.0  # seconds


@dataclass
class MergeResult:
    timers: list[Timer]
    updated_ids: list[uuid.UUID] = field(default_factory=list)
    added_ids: list[uuid.UUID] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.updated_ids or self.added_ids)


def merge_timers(
    local: Iterable[Timer],
    remote: Iterable[Timer],
    now: datetime,
    *,
    exclude_ids: Iterable[uuid.UUID] = (),
    recent_reset_window: float = RECENT_RESET_WINDOW,
) -> MergeResult:
    merged = [t.copy() for t in local]
    by_id = {t.id: t for t in merged}
    excluded = set(exclude_ids)
    result = MergeResult(merged)

    for incoming in remote:
        current = by_id.get(incoming.id)
        if current is None:
            if incoming.id in excluded:
                continue
            added = incoming.copy()
            added.running = False
            added.run_started_at = None
            merged.append(added)
            by_id[added.id] = added
            result.added_ids.append(added.id)
            logger.info("Adding timer %r from remote", added.name)
            continue

        if current.was_reset_within(recent_reset_window, now):
            logger.info(
                "Timer %r was reset recently, keeping local value", current.name
            )
            continue
        if current.running:
            continue
        local_elapsed = current.current_elapsed(now)
        if incoming.accumulated_elapsed > local_elapsed:
            logger.info(
                "Updating %r from remote: %.0fs -> %.0fs",
                current.name, local_elapsed, incoming.accumulated_elapsed,
            )
            current.accumulated_elapsed = incoming.accumulated_elapsed
            result.updated_ids.append(current.id)

    return result
