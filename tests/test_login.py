import json
from datetime import timedelta


def test_login_creates_session_for_24_hours(ann, clock):
    result = ann.login("ann@x.io", "longpw1234")
    assert result.success
    assert result.message == "Login successful"
    assert result.data == {"name": "Ann", "email": "ann@x.io"}

    session = ann.current_session()
    assert session is not None
    assert session.email == "ann@x.io"
    assert session.name == "Ann"
    assert session.expiry == clock() + timedelta(hours=24)
    assert len(session.token) == 64


def test_wrong_password_and_unknown_user_look_the_same(ann):
    wrong = ann.login("ann@x.io", "wrong")
    unknown = ann.login("nobody@x.io", "longpw1234")
    assert not wrong.success
    assert wrong.message == "Invalid email or password"
    assert wrong.model_dump() == unknown.model_dump()
    assert ann.current_session() is None


def test_login_never_exposes_hash_or_salt(ann):
    result = ann.login("ann@x.io", "longpw1234")
    dumped = json.dumps(result.model_dump())
    assert "passwordHash" not in dumped
    assert "salt" not in dumped


def test_new_login_overwrites_session_slot(ann):
    ann.register("Bob", "bob@x.io", "bobpassword")
    ann.login("ann@x.io", "longpw1234")
    first = ann.current_session()
    ann.login("bob@x.io", "bobpassword")
    second = ann.current_session()
    assert second.email == "bob@x.io"
    assert second.token != first.token


def test_failed_login_keeps_existing_session(ann):
    ann.login("ann@x.io", "longpw1234")
    token = ann.current_session().token
    ann.login("ann@x.io", "wrong")
    assert ann.current_session().token == token


def test_session_ttl_is_configurable(users_kv, session_kv, clock):
    from weatherly_auth.auth.service import AuthEngine

    engine = AuthEngine(users_kv, session_kv, clock=clock, session_ttl=timedelta(minutes=5))
    engine.register("Ann", "ann@x.io", "longpw1234")
    engine.login("ann@x.io", "longpw1234")
    clock.advance(minutes=5)
    assert engine.current_session() is None


def test_non_hex_stored_hash_fails_cleanly(ann, users_kv):
    stored = json.loads(users_kv.get("weatherly_auth"))
    stored["ann@x.io"]["passwordHash"] = "hashé"
    users_kv.set("weatherly_auth", json.dumps(stored))

    result = ann.login("ann@x.io", "longpw1234")
    assert not result.success
    assert result.error == "InvalidCredentials"
