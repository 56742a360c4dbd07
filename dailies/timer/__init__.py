"""Timer package.

The engine lives in :mod:`dailies.timer.engine`; it pulls in Qt and the
sync stack, so it is not re-exported here.
"""

from .lifecycle import LifecycleSample, is_likely_lock_screen_transition
from .models import Timer, WidgetState, format_duration, utcnow
from .projection import derive_widget_state

__all__ = [
    "LifecycleSample",
    "is_likely_lock_screen_transition",
    "Timer",
    "WidgetState",
    "format_duration",
    "utcnow",
    "derive_widget_state",
]
