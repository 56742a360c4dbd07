"""Derive the widget / live-activity projection from engine state."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Iterable

from .models import Timer, WidgetState


def derive_widget_state(
    timers: Iterable[Timer],
    active_timer_id: uuid.UUID | None,
    now: datetime,
) -> WidgetState:
    if active_timer_id is None:
        return WidgetState.empty(now)
    for timer in timers:
        if timer.id == active_timer_id:
            return WidgetState(
                active_timer_id=timer.id,
                active_timer_name=timer.name,
                elapsed_time=timer.current_elapsed(now),
                running=timer.running,
                last_updated=now,
            )
    return WidgetState.empty(now)
