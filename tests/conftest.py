import os
import sys
import pytest
from unittest.mock import AsyncMock, MagicMock

CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.dirname(CURRENT_DIR)
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from progress_sync.application.progress_store import ProgressStore
from progress_sync.application.sync_scheduler import SyncScheduler
from progress_sync.infrastructure.storage import SqlKeyValueStore


class FakeClock:
    """Управляемые часы для TTLCache"""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()

@pytest.fixture
def storage():
    """Хранилище ключ-значение на sqlite в памяти"""
    return SqlKeyValueStore.from_url("sqlite:///:memory:")

@pytest.fixture
def store(storage):
    s = ProgressStore(storage)
    s.initialize()
    return s

@pytest.fixture
def remote():
    """Мок удалённого сервиса прогресса"""
    r = MagicMock()
    r.update_one = AsyncMock(return_value={"ok": True})
    r.update_many = AsyncMock(return_value={"ok": True})
    return r

@pytest.fixture
def scheduler(store, remote, storage):
    return SyncScheduler(store, remote, storage, debounce_seconds=0.01)

@pytest.fixture
def beacon():
    b = MagicMock()
    b.send.return_value = True
    return b
