from __future__ import annotations

import threading
from datetime import timedelta

import pytest

from gestionpro.client import (
    ApiClient,
    ApiError,
    FileTokenStorage,
    MemoryTokenStorage,
    SessionStatus,
    SessionStore,
)
from gestionpro.db import connect
from gestionpro.util.time import utcnow

from tests.conftest import register

CREDENTIALS = {"email": "alice@example.com", "password": "secret1"}
NEW_USER = {"nom": "Alice Martin", "email": "alice@example.com", "password": "secret1"}


def _store(client, storage=None):
    api = ApiClient("/api", http=client)
    return SessionStore(api, storage if storage is not None else MemoryTokenStorage())


def test_fresh_store_without_token_is_unauthenticated(client):
    store = _store(client)
    assert store.state.status is SessionStatus.UNAUTHENTICATED
    store.initialize()
    assert store.state.status is SessionStatus.UNAUTHENTICATED
    assert store.state.user is None


def test_register_persists_token(client):
    storage = MemoryTokenStorage()
    store = _store(client, storage)
    state = store.register(NEW_USER)
    assert state.status is SessionStatus.AUTHENTICATED
    assert state.is_authenticated is True
    assert state.user["email"] == "alice@example.com"
    assert "password_hash" not in state.user
    assert state.token and storage.get() == state.token
    assert state.error is None


def test_login_success_and_requests_carry_token(client):
    register(client)
    client.cookies.clear()
    store = _store(client)
    state = store.login(CREDENTIALS)
    assert state.status is SessionStatus.AUTHENTICATED

    # The API client attaches the bearer token without help from the caller.
    body = store._api.get_current_user()
    assert body["data"]["user"]["email"] == "alice@example.com"


def test_login_failure_surfaces_server_message_and_purges_token(client):
    register(client)
    client.cookies.clear()
    storage = MemoryTokenStorage("stale-token")
    store = _store(client, storage)
    state = store.login({"email": "alice@example.com", "password": "wrong"})
    assert state.status is SessionStatus.UNAUTHENTICATED
    assert state.error == "Incorrect email or password."
    assert storage.get() is None


def test_register_duplicate_surfaces_message(client):
    register(client)
    client.cookies.clear()
    state = _store(client).register(NEW_USER)
    assert state.status is SessionStatus.UNAUTHENTICATED
    assert state.error == "This email address is already in use."


def test_reset_error(client):
    store = _store(client)
    store.login({"email": "ghost@example.com", "password": "whatever"})
    assert store.state.error
    store.reset_error()
    assert store.state.error is None


def test_reload_restores_valid_session(client, tmp_path):
    path = tmp_path / "token"
    first = _store(client, FileTokenStorage(path))
    first.register(NEW_USER)
    client.cookies.clear()

    reloaded = _store(client, FileTokenStorage(path))
    assert reloaded.state.status is SessionStatus.LOADING
    assert reloaded.state.is_authenticated is False

    state = reloaded.initialize()
    assert state.status is SessionStatus.AUTHENTICATED
    assert state.user["email"] == "alice@example.com"


def test_reload_with_expired_token_purges_it(app, client, tmp_path):
    user_id = register(client).json()["data"]["user"]["user_id"]
    client.cookies.clear()
    expired = app.state.tokens.issue(user_id, now=utcnow() - timedelta(days=2))

    storage = FileTokenStorage(tmp_path / "token")
    storage.set(expired)
    store = _store(client, storage)
    assert store.state.status is SessionStatus.LOADING

    state = store.initialize()
    assert state.status is SessionStatus.UNAUTHENTICATED
    assert state.token is None
    assert storage.get() is None
    assert not (tmp_path / "token").exists()


def test_logout_is_local_and_immediate(client):
    storage = MemoryTokenStorage()
    store = _store(client, storage)
    store.register(NEW_USER)
    state = store.logout()
    assert state.status is SessionStatus.UNAUTHENTICATED
    assert state.user is None and state.token is None
    assert storage.get() is None


def test_any_401_invalidates_session(cfg, client):
    storage = MemoryTokenStorage()
    store = _store(client, storage)
    store.register(NEW_USER)
    client.cookies.clear()

    with connect(cfg.DB_DSN) as conn:
        conn.execute("DELETE FROM users")

    with pytest.raises(ApiError) as exc_info:
        store._api.get("/auth/me")
    assert exc_info.value.status_code == 401
    assert store.state.status is SessionStatus.UNAUTHENTICATED
    assert storage.get() is None


def test_listeners_receive_snapshots(client):
    store = _store(client)
    seen = []
    unsubscribe = store.subscribe(lambda s: seen.append(s.status))
    store.register(NEW_USER)
    assert SessionStatus.LOADING in seen
    assert seen[-1] is SessionStatus.AUTHENTICATED

    unsubscribe()
    count = len(seen)
    store.logout()
    assert len(seen) == count


class _BlockingApi:
    """Stands in for ApiClient; login blocks until released."""

    def __init__(self):
        self.token_provider = None
        self.on_unauthorized = None
        self.started = threading.Event()
        self.release = threading.Event()

    def login(self, credentials):
        self.started.set()
        self.release.wait(5)
        return {"status": "success", "token": "t-1", "data": {"user": {"user_id": 1, "email": credentials["email"]}}}

    def register(self, user_data):
        return self.login(user_data)

    def get_current_user(self):
        raise AssertionError("not used")


def test_loading_reflects_in_flight_operations():
    api = _BlockingApi()
    store = SessionStore(api, MemoryTokenStorage())
    t = threading.Thread(target=store.login, args=(CREDENTIALS,))
    t.start()
    assert api.started.wait(5)
    assert store.state.is_loading is True
    api.release.set()
    t.join(5)
    assert store.state.is_loading is False
    assert store.state.status is SessionStatus.AUTHENTICATED


def test_logout_discards_in_flight_login():
    api = _BlockingApi()
    storage = MemoryTokenStorage()
    store = SessionStore(api, storage)
    errors = []

    def run():
        try:
            store.login(CREDENTIALS)
        except Exception as e:
            errors.append(e)

    t = threading.Thread(target=run)
    t.start()
    assert api.started.wait(5)
    store.logout()
    api.release.set()
    t.join(5)

    assert errors == []
    assert store.state.status is SessionStatus.UNAUTHENTICATED
    assert storage.get() is None


def test_file_storage_roundtrip(tmp_path):
    storage = FileTokenStorage(tmp_path / "nested" / "token")
    assert storage.get() is None
    storage.set("abc")
    assert storage.get() == "abc"
    storage.clear()
    storage.clear()
    assert storage.get() is None
