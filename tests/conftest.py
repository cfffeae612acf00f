"""Shared pytest fixtures for HabitFlow tests."""

import sys
import pytest

from PyQt6.QtCore import QCoreApplication

from habitflow.database.db import configure_engine, init_db
from habitflow.records import Habit
from habitflow.repository.local import LocalHabitRepository
from habitflow.timer.engine import TimerEngine

from helpers import FakeClock, T0


@pytest.fixture(scope="session")
def qapp():
    """A single Qt application instance shared across the entire test run."""
    app = QCoreApplication.instance() or QCoreApplication(sys.argv)
    yield app


@pytest.fixture(autouse=True)
def test_db():
    """Point every test at a fresh in-memory SQLite database."""
    configure_engine("sqlite:///:memory:")
    init_db()
    yield


@pytest.fixture
def repo():
    return LocalHabitRepository()


@pytest.fixture
def habit(repo):
    """A saved habit with no tracked time and a one hour goal."""
    return repo.create(Habit(name="Reading", importance=8, goal="1 hour/day"))


@pytest.fixture
def other_habit(repo):
    return repo.create(Habit(name="Exercise", importance=9, goal="45 mins/day"))


@pytest.fixture
def clock():
    return FakeClock(T0)


@pytest.fixture
def engine(qapp, repo, clock):
    """Fresh TimerEngine on the local store with a controllable clock."""
    return TimerEngine(repo, clock=clock)
