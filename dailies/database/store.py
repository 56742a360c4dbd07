"""Durable key-value store shared by the app and its widget surfaces.

The engine only ever needs ``get(key) -> bytes | None`` and
``set(key, bytes)``; :class:`SqlKeyValueStore` provides them on top of the
SQLAlchemy session helpers.  The ``load_*``/``save_*`` functions hold the
JSON encoding of each key.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Protocol

from .db import get_session
from .models import KeyValueEntry
from ..timer.models import Timer, WidgetState

logger = logging.getLogger(__name__)

TIMERS_KEY = "timers"
ACTIVE_TIMER_ID_KEY = "activeTimerId"
WIDGET_STATE_KEY = "widgetState"
REMOVED_TIMER_IDS_KEY = "removedTimerIds"


class KeyValueStore(Protocol):
    def get(self, key: str) -> bytes | None: ...

    def set(self, key: str, value: bytes) -> None: ...


class SqlKeyValueStore:
    """``KeyValueStore`` backed by the ``kv_entries`` table."""

    def get(self, key: str) -> bytes | None:
        with get_session() as db:
            entry = db.get(KeyValueEntry, key)
            return bytes(entry.value) if entry is not None else None

    def set(self, key: str, value: bytes) -> None:
        with get_session() as db:
            entry = db.get(KeyValueEntry, key)
            if entry is None:
                db.add(KeyValueEntry(key=key, value=value))
            else:
                entry.value = value


# ── typed accessors ───────────────────────────────────────────────────────


def _dump(value) -> bytes:
    return json.dumps(value).encode("utf-8")


def _load(store: KeyValueStore, key: str):
    raw = store.get(key)
    if raw is None:
        return None
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        logger.warning("Discarding unreadable value under %r", key)
        return None


def save_timers(store: KeyValueStore, timers: list[Timer]) -> None:
    store.set(TIMERS_KEY, _dump([t.to_dict() for t in timers]))


def load_timers(store: KeyValueStore) -> list[Timer]:
    data = _load(store, TIMERS_KEY) or []
    timers = []
    for item in data:
        try:
            timers.append(Timer.from_dict(item))
        except (KeyError, TypeError, ValueError):
            logger.warning("Skipping unreadable persisted timer: %r", item)
    return timers


def save_active_timer_id(store: KeyValueStore, timer_id: uuid.UUID | None) -> None:
    store.set(ACTIVE_TIMER_ID_KEY, _dump(str(timer_id) if timer_id else None))


def load_active_timer_id(store: KeyValueStore) -> uuid.UUID | None:
    raw = _load(store, ACTIVE_TIMER_ID_KEY)
    if not raw:
        return None
    try:
        return uuid.UUID(raw)
    except (TypeError, ValueError):
        return None


def save_widget_state(store: KeyValueStore, state: WidgetState) -> None:
    store.set(WIDGET_STATE_KEY, _dump(state.to_dict()))


def load_widget_state(store: KeyValueStore) -> WidgetState:
    data = _load(store, WIDGET_STATE_KEY)
    if not data:
        return WidgetState.empty()
    try:
        return WidgetState.from_dict(data)
    except (KeyError, TypeError, ValueError):
        return WidgetState.empty()


def save_removed_ids(store: KeyValueStore, ids: set[uuid.UUID]) -> None:
    store.set(REMOVED_TIMER_IDS_KEY, _dump(sorted(str(i) for i in ids)))


def load_removed_ids(store: KeyValueStore) -> set[uuid.UUID]:
    ids = set()
    for raw in _load(store, REMOVED_TIMER_IDS_KEY) or []:
        try:
            ids.add(uuid.UUID(raw))
        except (TypeError, ValueError):
            continue
    return ids
