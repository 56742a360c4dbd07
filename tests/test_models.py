"""Tests for the Timer entity, widget projection and lifecycle heuristic."""

import uuid
from datetime import timedelta

import pytest

from dailies.timer.lifecycle import LifecycleSample, is_likely_lock_screen_transition
from dailies.timer.models import Timer, WidgetState, format_duration
from dailies.timer.projection import derive_widget_state

from helpers import FakeClock


@pytest.fixture
def now():
    return FakeClock().now


# ═══════════════════════════════════════════════════════════════════════════
#  DERIVED VALUES
# ═══════════════════════════════════════════════════════════════════════════


class TestDerived:

    def test_stopped_elapsed_is_accumulated(self, now):
        t = Timer(name="A", accumulated_elapsed=12)
        assert t.current_elapsed(now) == 12

    def test_running_elapsed_adds_current_run(self, now):
        t = Timer(name="A", accumulated_elapsed=10, running=True,
                  run_started_at=now - timedelta(seconds=5))
        assert t.current_elapsed(now) == pytest.approx(15)

    def test_clock_behind_run_start_never_subtracts(self, now):
        t = Timer(name="A", accumulated_elapsed=10, running=True,
                  run_started_at=now + timedelta(seconds=30))
        assert t.current_elapsed(now) == 10

    def test_progress_without_reference_is_zero(self, now):
        t = Timer(name="A", accumulated_elapsed=100)
        assert t.progress(now) == 0.0
        assert t.exceeded(now) is False

    def test_progress_and_exceeded(self, now):
        t = Timer(name="A", reference_duration=100, accumulated_elapsed=150)
        assert t.progress(now) == pytest.approx(1.5)
        assert t.exceeded(now) is True

    def test_exactly_at_reference_is_not_exceeded(self, now):
        t = Timer(name="A", reference_duration=100, accumulated_elapsed=100)
        assert t.exceeded(now) is False

    def test_bank_folds_run_into_accumulated(self, now):
        t = Timer(name="A", accumulated_elapsed=3, running=True,
                  run_started_at=now - timedelta(seconds=4))
        t.bank(now)
        assert t.accumulated_elapsed == pytest.approx(7)
        assert t.running is False
        assert t.run_started_at is None

    def test_zero_records_reset_time(self, now):
        t = Timer(name="A", accumulated_elapsed=3)
        t.zero(now)
        assert t.accumulated_elapsed == 0
        assert t.last_reset_at == now
        assert t.was_reset_within(10, now + timedelta(seconds=9)) is True
        assert t.was_reset_within(10, now + timedelta(seconds=10)) is False


class TestFormatting:

    @pytest.mark.parametrize("seconds, expected", [
        (0, "00:00"),
        (59, "00:59"),
        (61, "01:01"),
        (3599, "59:59"),
        (3600, "1:00:00"),
        (36125, "10:02:05"),
        (-4, "00:00"),
    ])
    def test_format_duration(self, seconds, expected):
        assert format_duration(seconds) == expected

    def test_formatted_reference_duration(self):
        assert Timer(name="A", reference_duration=1500).formatted_reference_duration == "25:00"


class TestSerialisation:

    def test_running_timer_survives_round_trip(self, now):
        t = Timer(name="Focus", reference_duration=1500, accumulated_elapsed=42.5,
                  running=True, run_started_at=now, last_reset_at=now)
        assert Timer.from_dict(t.to_dict()) == t

    def test_running_without_start_time_loads_stopped(self):
        data = Timer(name="A").to_dict()
        data["isRunning"] = True
        assert Timer.from_dict(data).running is False


# ═══════════════════════════════════════════════════════════════════════════
#  PROJECTION
# ═══════════════════════════════════════════════════════════════════════════


class TestProjection:

    def test_no_active_timer_gives_empty_state(self, now):
        state = derive_widget_state([Timer(name="A")], None, now)
        assert state == WidgetState.empty(now)

    def test_active_timer_projected(self, now):
        t = Timer(name="A", accumulated_elapsed=5, running=True,
                  run_started_at=now - timedelta(seconds=5))
        state = derive_widget_state([Timer(name="B"), t], t.id, now)
        assert state.active_timer_id == t.id
        assert state.active_timer_name == "A"
        assert state.elapsed_time == pytest.approx(10)
        assert state.running is True
        assert state.last_updated == now

    def test_dangling_active_id_gives_empty_state(self, now):
        state = derive_widget_state([Timer(name="A")], uuid.uuid4(), now)
        assert state.active_timer_id is None


# ═══════════════════════════════════════════════════════════════════════════
#  LOCK-SCREEN HEURISTIC
# ═══════════════════════════════════════════════════════════════════════════


class TestLockHeuristic:

    @pytest.mark.parametrize("before, after, since, locked", [
        (0.8, 0.0, 2.0, True),     # panel off
        (0.8, 0.005, 2.0, True),   # near zero
        (0.8, 0.3, 0.1, True),     # quick and dimmed by more than half
        (0.8, 0.5, 0.1, False),    # quick but not dimmed enough
        (0.8, 0.3, 0.5, False),    # dimmed but too slow
        (0.8, 0.8, 0.1, False),    # app switch
    ])
    def test_classification(self, before, after, since, locked):
        sample = LifecycleSample(before, after, since)
        assert is_likely_lock_screen_transition(sample) is locked
