"""Lock-screen vs. backgrounding heuristic.

When the app leaves the foreground we cannot ask the platform whether the
device was locked.  Brightness is the proxy: locking blanks the panel
almost instantly, switching apps does not.  Locking keeps the lock-screen
surfaces visible, so the active timer keeps running; a real backgrounding
pauses it.
"""

from __future__ import annotations

from dataclasses import dataclass

NEAR_ZERO_BRIGHTNESS = 0.01
QUICK_TRANSITION_SECONDS = 0.3
BRIGHTNESS_DROP_RATIO = 0.5


@dataclass(frozen=True)
class LifecycleSample:
    """Brightness readings taken around a resign/background pair."""

    brightness_before: float
    brightness_after: float
    seconds_since_resign: float


def is_likely_lock_screen_transition(sample: LifecycleSample) -> bool:
    if sample.brightness_after < NEAR_ZERO_BRIGHTNESS:
        return True
    quick = sample.seconds_since_resign < QUICK_TRANSITION_SECONDS
    dimmed = sample.brightness_after < sample.brightness_before * BRIGHTNESS_DROP_RATIO
    return quick and dimmed
