"""Shared pytest fixtures for Dailies tests."""

import sys
import pytest

from PyQt6.QtCore import QCoreApplication

from dailies.database.db import configure_engine, init_db
from dailies.database.store import SqlKeyValueStore
from dailies.settings import Settings
from dailies.sync.engine import RemoteSyncEngine
from dailies.timer.engine import TimerEngine

from helpers import FakeClock, FakeSheetsClient, InlineExecutor


@pytest.fixture(scope="session")
def qapp():
    """A single QCoreApplication instance shared across the entire test run."""
    app = QCoreApplication.instance() or QCoreApplication(sys.argv)
    yield app


@pytest.fixture(autouse=True)
def test_db():
    """Point every test at a fresh in-memory SQLite database."""
    configure_engine("sqlite:///:memory:")
    init_db()
    yield


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return SqlKeyValueStore()


@pytest.fixture
def sheets():
    """Writable fake remote store with no rows."""
    return FakeSheetsClient()


@pytest.fixture
def executor():
    return InlineExecutor()


@pytest.fixture
def sync(qapp, sheets, clock, executor):
    """RemoteSyncEngine over the fake sheet, running work inline."""
    engine = RemoteSyncEngine(Settings(), sheets, executor=executor, clock=clock)
    yield engine
    engine.cancel_pending()


@pytest.fixture
def engine(qapp, clock):
    """Fresh TimerEngine with no persistence and no sync."""
    return TimerEngine(clock=clock)


@pytest.fixture
def engine_db(qapp, clock, store):
    """TimerEngine persisting to the in-memory database."""
    return TimerEngine(store=store, clock=clock)


@pytest.fixture
def engine_sync(qapp, clock, store, sync):
    """TimerEngine wired to persistence and the fake remote."""
    return TimerEngine(store=store, sync=sync, clock=clock)
