"""Timer entity and the widget projection record.

Elapsed time is never ticked.  A running timer stores when its current
run began and :meth:`Timer.current_elapsed` derives the total from the
wall clock on demand, so reads are pure and safe from any thread.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_dt(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value)


def _fmt_dt(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def format_duration(seconds: float) -> str:
    """``H:MM:SS`` from one hour upwards, ``MM:SS`` below."""
    total = int(max(0, seconds))
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


# ── timer ─────────────────────────────────────────────────────────────────


@dataclass
class Timer:
    """A single count-up timer.

    ``reference_duration`` is advisory: it drives ``progress`` and
    ``exceeded`` but never stops the count.
    """

    name: str
    reference_duration: float = 0.0
    accumulated_elapsed: float = 0.0
    running: bool = False
    run_started_at: datetime | None = None
    last_reset_at: datetime | None = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    # ── derived ───────────────────────────────────────────────────────

    def current_elapsed(self, now: datetime | None = None) -> float:
        if not self.running or self.run_started_at is None:
            return self.accumulated_elapsed
        now = now or utcnow()
        return self.accumulated_elapsed + max(
            0.0, (now - self.run_started_at).total_seconds()
        )

    def progress(self, now: datetime | None = None) -> float:
        """Fraction of the reference duration (may exceed 1.0)."""
        if self.reference_duration <= 0:
            return 0.0
        return self.current_elapsed(now) / self.reference_duration

    def exceeded(self, now: datetime | None = None) -> bool:
        if self.reference_duration <= 0:
            return False
        return self.current_elapsed(now) > self.reference_duration

    def formatted_time(self, now: datetime | None = None) -> str:
        return format_duration(self.current_elapsed(now))

    @property
    def formatted_reference_duration(self) -> str:
        return format_duration(self.reference_duration)

    # ── state changes ─────────────────────────────────────────────────

    def bank(self, now: datetime) -> None:
        """Fold the current run into ``accumulated_elapsed`` and stop."""
        self.accumulated_elapsed = self.current_elapsed(now)
        self.running = False
        self.run_started_at = None

    def begin(self, now: datetime) -> None:
        self.running = True
        self.run_started_at = now

    def zero(self, now: datetime) -> None:
        self.accumulated_elapsed = 0.0
        self.running = False
        self.run_started_at = None
        self.last_reset_at = now

    def was_reset_within(self, seconds: float, now: datetime) -> bool:
        if self.last_reset_at is None:
            return False
        return (now - self.last_reset_at).total_seconds() < seconds

    def copy(self) -> Timer:
        return replace(self)

    # ── serialisation ─────────────────────────────────────────────────

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "name": self.name,
            "referenceDuration": self.reference_duration,
            "elapsedTime": self.accumulated_elapsed,
            "isRunning": self.running,
            "lastStartTime": _fmt_dt(self.run_started_at),
            "lastResetTime": _fmt_dt(self.last_reset_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Timer:
        running = bool(data.get("isRunning", False))
        started = _parse_dt(data.get("lastStartTime"))
        if running and started is None:
            running = False
        return cls(
            id=uuid.UUID(data["id"]),
            name=data["name"],
            reference_duration=float(data.get("referenceDuration", 0)),
            accumulated_elapsed=float(data.get("elapsedTime", 0)),
            running=running,
            run_started_at=started if running else None,
            last_reset_at=_parse_dt(data.get("lastResetTime")),
        )

    def __repr__(self) -> str:
        return (
            f"<Timer id={self.id} name={self.name!r} "
            f"elapsed={self.accumulated_elapsed:.1f} running={self.running}>"
        )


# ── widget projection ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class WidgetState:
    """What the home-screen widget and the live activity render."""

    active_timer_id: uuid.UUID | None
    active_timer_name: str | None
    elapsed_time: float
    running: bool
    last_updated: datetime

    @classmethod
    def empty(cls, now: datetime | None = None) -> WidgetState:
        return cls(None, None, 0.0, False, now or utcnow())

    def to_dict(self) -> dict:
        return {
            "activeTimerId": str(self.active_timer_id) if self.active_timer_id else None,
            "activeTimerName": self.active_timer_name,
            "elapsedTime": self.elapsed_time,
            "isRunning": self.running,
            "lastUpdated": self.last_updated.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> WidgetState:
        raw_id = data.get("activeTimerId")
        return cls(
            active_timer_id=uuid.UUID(raw_id) if raw_id else None,
            active_timer_name=data.get("activeTimerName"),
            elapsed_time=float(data.get("elapsedTime", 0)),
            running=bool(data.get("isRunning", False)),
            last_updated=datetime.fromisoformat(data["lastUpdated"]),
        )
