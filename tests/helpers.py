"""Shared test helpers for Dailies."""

from concurrent.futures import Executor, Future
from datetime import datetime, timedelta, timezone

from dailies.errors import SyncError
from dailies.timer.models import Timer


class SignalCollector:
    """Utility to capture pyqtSignal emissions into a list."""

    def __init__(self):
        self.items: list = []

    def slot(self, *args):
        self.items.append(args if len(args) > 1 else args[0] if args else None)

    def __call__(self, *args):
        self.slot(*args)

    def __len__(self):
        return len(self.items)

    def __getitem__(self, idx):
        return self.items[idx]

    @property
    def last(self):
        return self.items[-1] if self.items else None

    def clear(self):
        self.items.clear()


class FakeClock:
    """Wall clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class InlineExecutor(Executor):
    """Runs submitted work immediately on the calling thread."""

    def __init__(self):
        self.submitted = 0

    def submit(self, fn, /, *args, **kwargs):
        self.submitted += 1
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except BaseException as exc:
            future.set_exception(exc)
        return future


class FakeCredentials:
    def __init__(self, read_only: bool = False):
        self.read_only = read_only


class FakeSheetsClient:
    """In-memory stand-in for ``SheetsClient``.

    ``remote`` is what every fetch returns; pushes are recorded but do not
    change it, so the remote stays stable between syncs.
    """

    def __init__(self, remote=None, *, read_only: bool = False):
        self.credentials = FakeCredentials(read_only)
        self.remote: list[Timer] = list(remote or [])
        self.pushes: list[list[Timer]] = []
        self.fetches = 0
        self.fetch_error: SyncError | None = None
        self.push_error: SyncError | None = None
        self.title = "Dailies"

    def fetch_timers(self):
        self.fetches += 1
        if self.fetch_error is not None:
            raise self.fetch_error
        return [t.copy() for t in self.remote]

    def put_timers(self, timers, now):
        if self.push_error is not None:
            raise self.push_error
        self.pushes.append([t.copy() for t in timers])

    def fetch_title(self):
        if self.fetch_error is not None:
            raise self.fetch_error
        return self.title


def elapsed_by_name(timers) -> dict[str, float]:
    return {t.name: t.accumulated_elapsed for t in timers}
