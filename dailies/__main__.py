"""Allow running Dailies as a module: python -m dailies [deep-link ...].

Without arguments this prints the current widget state.  Given one or more
``dailies-timer://`` links (what the widget fires) it applies them, waits
for the resulting sync to finish, and exits.
"""

import logging
import sys

import httpx
from PyQt6.QtCore import QCoreApplication, QObject, QTimer

from .database.db import init_db
from .database.store import SqlKeyValueStore
from .intents import handle_url
from .settings import Settings, load_settings
from .sync.engine import RemoteSyncEngine
from .sync.sheets import client_from_settings
from .timer.engine import TimerEngine
from .timer.models import format_duration


def build_services(
    settings: Settings,
    http_client: httpx.Client,
    parent: QObject | None = None,
) -> tuple[RemoteSyncEngine, TimerEngine]:
    """Construct the object graph once; consumers get references."""
    sync = RemoteSyncEngine(
        settings, client_from_settings(settings, http_client), parent
    )
    engine = TimerEngine(parent, store=SqlKeyValueStore(), sync=sync)
    return sync, engine


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    init_db()

    app = QCoreApplication(sys.argv)
    app.setApplicationName("Dailies")
    app.setOrganizationName("Dailies")

    settings = load_settings()
    http_client = httpx.Client(timeout=settings.request_timeout)
    sync, engine = build_services(settings, http_client, app)

    for arg in sys.argv[1:]:
        handle_url(engine, arg)

    state = engine.widget_state
    if state.active_timer_name:
        status = "running" if state.running else "paused"
        print(f"{state.active_timer_name}: {format_duration(state.elapsed_time)} ({status})")
    else:
        print("No active timer")

    if sync.has_pending_sync:
        sync.sync_finished.connect(app.quit)
        sync.sync_failed.connect(app.quit)
        grace_ms = int((settings.debounce_seconds + 3 * settings.request_timeout) * 1000)
        QTimer.singleShot(grace_ms, app.quit)
    else:
        QTimer.singleShot(0, app.quit)

    code = app.exec()
    sync.shutdown()
    http_client.close()
    sys.exit(code)


if __name__ == "__main__":
    main()
