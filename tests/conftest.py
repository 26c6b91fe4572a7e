import copy

import pytest

from core.timer_engine import TimerEngine
from domain.models import Streak, TimerConfig
from services.preferences_service import PreferencesService
from storage.db import Database
from storage.repos import AppStateRepo, SessionRepo, StreakRepo

T0 = 1_700_000_000_000  # epoch ms


class FakeClock:
    def __init__(self, now_ms: int = T0):
        self.now = now_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += int(seconds * 1000)


class MemoryStore:
    def __init__(self):
        self.data = {}
        self.writes = 0
        self.fail_reads = False
        self.fail_writes = False

    def get(self, key):
        if self.fail_reads:
            raise RuntimeError("store offline")
        return copy.deepcopy(self.data.get(key))

    def set(self, key, snapshot):
        if self.fail_writes:
            raise RuntimeError("store offline")
        self.data[key] = copy.deepcopy(snapshot)
        self.writes += 1
        return True


class RecordingSessionLogger:
    def __init__(self, fail: bool = False):
        self.events = []
        self.fail = fail

    def record_completed_session(self, event):
        self.events.append(event)
        if self.fail:
            raise RuntimeError("remote insert failed")
        return True


class RecordingStreaks:
    def __init__(self, fail: bool = False):
        self.dates = []
        self.fail = fail

    def touch(self, date):
        self.dates.append(date)
        if self.fail:
            raise RuntimeError("remote update failed")
        return Streak(current=1, longest=1, last_study_date=date)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def session_log():
    return RecordingSessionLogger()


@pytest.fixture
def streaks():
    return RecordingStreaks()


@pytest.fixture
def make_engine(clock, store, session_log, streaks):
    def _make(config=None, identity=None, **overrides):
        kwargs = dict(
            store=store,
            identity=identity,
            session_logger=session_log,
            streak_tracker=streaks,
            clock=clock,
        )
        kwargs.update(overrides)
        return TimerEngine(config or TimerConfig(), **kwargs)

    return _make


@pytest.fixture
def db():
    database = Database(db_path=":memory:")
    database.init_schema()
    yield database
    database.close()


@pytest.fixture
def state_repo(db):
    return AppStateRepo(db)


@pytest.fixture
def session_repo(db):
    return SessionRepo(db)


@pytest.fixture
def streak_repo(db):
    return StreakRepo(db)


@pytest.fixture
def preferences(state_repo):
    return PreferencesService(state_repo)
