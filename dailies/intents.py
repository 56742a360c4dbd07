"""Deep links fired by the widget and the live activity.

``dailies-timer://toggle``  pause/resume the active timer
``dailies-timer://open``    just bring the app forward
"""

from __future__ import annotations

import logging
from urllib.parse import urlparse

from .timer.engine import TimerEngine

logger = logging.getLogger(__name__)

SCHEME = "dailies-timer"


def handle_url(engine: TimerEngine, url: str) -> bool:
    """Route *url* to the engine.  Returns True if it was ours."""
    parsed = urlparse(url)
    if parsed.scheme != SCHEME:
        return False
    if parsed.netloc == "toggle":
        engine.toggle_active_timer()
    elif parsed.netloc != "open":
        logger.warning("Ignoring unknown deep link %s", url)
    return True
