from datetime import datetime, timedelta, timezone

import pytest

from weatherly_auth.auth.service import AuthEngine
from weatherly_auth.stores.kv import MemoryStore


class FakeClock:
    """Controllable clock; call it like utc_now()."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def users_kv():
    return MemoryStore()


@pytest.fixture
def session_kv():
    return MemoryStore()


@pytest.fixture
def engine(users_kv, session_kv, clock):
    return AuthEngine(users_kv, session_kv, clock=clock)


@pytest.fixture
def ann(engine):
    result = engine.register("Ann", "ann@x.io", "longpw1234")
    assert result.success, result.message
    return engine
