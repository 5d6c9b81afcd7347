import heapq
import random
from itertools import count
from typing import List

import pytest

from flashdeck.database import init_db, make_engine
from flashdeck.models import AppState, Collection
from flashdeck.services.persistence_service import PersistenceService
from flashdeck.services.session_store import SessionStore
from flashdeck.services.storage_service import MemoryStorage, SqliteStorage


class ManualHandle:
    def __init__(self):
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Virtual clock. Callbacks run only when advance() passes their due time."""

    def __init__(self):
        self.now = 0
        self._queue = []
        self._seq = count()

    def call_later(self, delay_ms, callback):
        handle = ManualHandle()
        heapq.heappush(self._queue, (self.now + delay_ms, next(self._seq), callback, handle))
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for _, _, _, h in self._queue if not h.cancelled)

    def advance(self, ms: int):
        target = self.now + ms
        while self._queue and self._queue[0][0] <= target:
            due, _, callback, handle = heapq.heappop(self._queue)
            self.now = due
            if not handle.cancelled:
                callback()
        self.now = target


class Recorder:
    def __init__(self):
        self.notices: List[dict] = []
        self.renders = 0

    def notice(self, notice):
        self.notices.append(notice)

    def render(self):
        self.renders += 1

    def kinds(self):
        return [n["kind"] for n in self.notices]


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture
def persistence(memory_storage):
    return PersistenceService(memory_storage, key="test_key", schema_version=1, clock=lambda: 1_700_000_000_000)


@pytest.fixture
def sqlite_storage(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_db(engine)
    return SqliteStorage(engine)


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def make_store(scheduler, persistence, recorder):
    def _make(collection=None, seed=1234):
        state = AppState(collection or Collection())
        return SessionStore(
            state,
            scheduler,
            persistence,
            on_change=recorder.render,
            on_notice=recorder.notice,
            rng=random.Random(seed),
            autosave_delay_ms=1000,
            search_debounce_ms=300,
        )
    return _make


@pytest.fixture
def store(make_store):
    return make_store()
