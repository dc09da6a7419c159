import json

import pytest


def test_register_then_login(engine):
    result = engine.register("Ann", "ann@x.io", "longpw1234")
    assert result.success
    assert result.message == "User registered successfully"
    assert result.data is None

    login = engine.login("ann@x.io", "longpw1234")
    assert login.success
    assert login.user == {"name": "Ann", "email": "ann@x.io"}


def test_register_does_not_create_session(engine):
    engine.register("Ann", "ann@x.io", "longpw1234")
    assert engine.current_session() is None
    assert not engine.is_authenticated()


def test_duplicate_email_rejected(ann):
    result = ann.register("Other", "ann@x.io", "completely-different")
    assert not result.success
    assert result.error == "DuplicateUser"
    assert result.message == "User already exists with this email"
    # original record untouched
    assert ann.login("ann@x.io", "longpw1234").success


def test_duplicate_checked_before_password_length(ann):
    result = ann.register("Other", "ann@x.io", "short")
    assert result.error == "DuplicateUser"


def test_email_is_case_sensitive(ann):
    result = ann.register("Ann Upper", "ANN@x.io", "longpw1234")
    assert result.success
    assert not ann.login("Ann@x.io", "longpw1234").success


@pytest.mark.parametrize("password", ["", "1234567", "short"])
def test_weak_password_creates_no_record(engine, users_kv, password):
    result = engine.register("Ann", "ann@x.io", password)
    assert not result.success
    assert result.error == "WeakPassword"
    assert result.message == "Password must be at least 8 characters long"
    assert users_kv.get("weatherly_auth") is None


def test_eight_characters_is_enough(engine):
    assert engine.register("Ann", "ann@x.io", "12345678").success


def test_same_password_gets_distinct_salt_and_hash(engine, users_kv):
    engine.register("Ann", "ann@x.io", "samepassword")
    engine.register("Bob", "bob@x.io", "samepassword")
    stored = json.loads(users_kv.get("weatherly_auth"))
    assert stored["ann@x.io"]["salt"] != stored["bob@x.io"]["salt"]
    assert stored["ann@x.io"]["passwordHash"] != stored["bob@x.io"]["passwordHash"]


def test_stored_record_layout(engine, users_kv, clock):
    engine.register("Ann", "ann@x.io", "longpw1234")
    record = json.loads(users_kv.get("weatherly_auth"))["ann@x.io"]
    assert set(record) == {
        "name", "email", "passwordHash", "salt", "createdAt", "resetToken", "resetTokenExpiry",
    }
    assert record["resetToken"] is None
    assert record["resetTokenExpiry"] is None
    assert len(record["salt"]) == 32
    assert "longpw1234" not in json.dumps(record)


def test_corrupt_store_is_treated_as_empty(engine, users_kv):
    users_kv.set("weatherly_auth", "{not json")
    assert not engine.login("ann@x.io", "longpw1234").success
    assert engine.register("Ann", "ann@x.io", "longpw1234").success
    assert engine.login("ann@x.io", "longpw1234").success


def test_password_with_lone_surrogate_registers_and_logs_in(engine):
    password = b"pass\xffword".decode("utf-8", "surrogateescape")
    assert engine.register("Ann", "ann@x.io", password).success
    assert engine.login("ann@x.io", password).success


def test_unencodable_name_on_file_store_is_a_storage_failure(tmp_path):
    from weatherly_auth.auth.service import AuthEngine
    from weatherly_auth.stores.kv import FileStore

    engine = AuthEngine(FileStore(tmp_path), FileStore(tmp_path / "sessions"))
    name = b"An\xffn".decode("utf-8", "surrogateescape")
    result = engine.register(name, "ann@x.io", "longpw1234")
    assert not result.success
    assert result.error == "StorageUnavailable"
    assert sorted(p.name for p in tmp_path.iterdir()) == [".locks"]
