from weatherly_auth.auth.service import AuthEngine
from weatherly_auth.stores.kv import MemoryStore
from weatherly_auth.utils.exceptions import StorageUnavailable


class BrokenStore(MemoryStore):
    """Reads work, writes fail."""

    def set(self, key, value):
        raise StorageUnavailable(f"disk full writing {key}")

    def delete(self, key):
        raise StorageUnavailable(f"disk full deleting {key}")


def test_register_reports_storage_failure():
    engine = AuthEngine(BrokenStore(), MemoryStore())
    result = engine.register("Ann", "ann@x.io", "longpw1234")
    assert not result.success
    assert result.error == "StorageUnavailable"
    assert result.message == "Storage unavailable"


def test_login_reports_storage_failure(clock):
    users = MemoryStore()
    AuthEngine(users, MemoryStore(), clock=clock).register("Ann", "ann@x.io", "longpw1234")

    engine = AuthEngine(users, BrokenStore(), clock=clock)
    result = engine.login("ann@x.io", "longpw1234")
    assert not result.success
    assert result.error == "StorageUnavailable"


def test_logout_swallows_storage_failure():
    engine = AuthEngine(MemoryStore(), BrokenStore())
    engine.logout()
    assert engine.current_session() is None
