from __future__ import annotations

import threading

import pytest

from gestionpro.auth.crud import (
    bootstrap_admin_if_needed,
    create_user,
    get_user_by_email,
    get_user_by_id,
    set_user_active,
    update_user,
    verify_user_credentials,
)
from gestionpro.auth.security import configure_hasher, verify_password
from gestionpro.db import connect, init_db
from gestionpro.errors import DuplicateError, ValidationError

from tests.conftest import make_config


@pytest.fixture(autouse=True)
def _fast_hasher():
    configure_hasher(1000)


def _create(db_dsn, **fields):
    values = {"nom": "Alice Martin", "email": "alice@example.com", "password": "secret1"}
    values.update(fields)
    with connect(db_dsn) as conn:
        return create_user(conn, **values)


def _stored_hash(db_dsn, user_id):
    with connect(db_dsn) as conn:
        row = conn.execute("SELECT password_hash FROM users WHERE user_id=?", (user_id,)).fetchone()
    return row["password_hash"]


def test_create_user_defaults(db_dsn):
    u = _create(db_dsn, nom="  Alice Martin ", email="  Alice@Example.COM ")
    assert u["nom"] == "Alice Martin"
    assert u["email"] == "alice@example.com"
    assert u["role"] == "Vendeur"
    assert u["active"] is True
    assert u["created_at"] and u["updated_at"]
    assert "password_hash" not in u
    assert "password" not in u


def test_password_is_stored_hashed(db_dsn):
    u = _create(db_dsn)
    stored = _stored_hash(db_dsn, u["user_id"])
    assert stored != "secret1"
    assert verify_password("secret1", stored)


@pytest.mark.parametrize("role", ["Vendeur", "Commercial", "Comptable", "Admin"])
def test_create_user_with_role(db_dsn, role):
    assert _create(db_dsn, role=role)["role"] == role


@pytest.mark.parametrize(
    "fields",
    [
        {"nom": ""},
        {"nom": "   "},
        {"email": ""},
        {"email": "not-an-email"},
        {"email": "a@b"},
        {"email": "élise@exemple.fr"},
        {"password": ""},
        {"password": "12345"},
        {"role": "Manager"},
    ],
)
def test_create_user_validation(db_dsn, fields):
    with pytest.raises(ValidationError):
        _create(db_dsn, **fields)


def test_duplicate_email_rejected_case_insensitively(db_dsn):
    _create(db_dsn)
    with pytest.raises(DuplicateError):
        _create(db_dsn, nom="Other", email="ALICE@example.com")


def test_concurrent_registrations_same_email(db_dsn):
    barrier = threading.Barrier(4)
    results = []
    lock = threading.Lock()

    def worker(i):
        barrier.wait()
        try:
            _create(db_dsn, nom=f"User {i}")
            outcome = "ok"
        except DuplicateError:
            outcome = "duplicate"
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(results) == ["duplicate", "duplicate", "duplicate", "ok"]
    with connect(db_dsn) as conn:
        n = conn.execute("SELECT COUNT(*) AS n FROM users").fetchone()["n"]
    assert n == 1


def test_lookup_by_email_hides_hash_unless_requested(db_dsn):
    _create(db_dsn)
    with connect(db_dsn) as conn:
        plain = get_user_by_email(conn, "ALICE@example.com")
        with_hash = get_user_by_email(conn, "alice@example.com", with_password=True)
        missing = get_user_by_email(conn, "bob@example.com")
    assert "password_hash" not in dict(plain)
    assert with_hash["password_hash"]
    assert missing is None


def test_lookup_by_id(db_dsn):
    u = _create(db_dsn)
    with connect(db_dsn) as conn:
        row = get_user_by_id(conn, u["user_id"])
        missing = get_user_by_id(conn, u["user_id"] + 100)
    assert row["email"] == "alice@example.com"
    assert "password_hash" not in dict(row)
    assert missing is None


def test_verify_credentials(db_dsn):
    _create(db_dsn)
    with connect(db_dsn) as conn:
        assert verify_user_credentials(conn, "alice@example.com", "secret1") is not None
        assert verify_user_credentials(conn, "alice@example.com", "wrong") is None
        assert verify_user_credentials(conn, "nobody@example.com", "secret1") is None


def test_unknown_email_pays_hash_cost(db_dsn, monkeypatch):
    _create(db_dsn)
    calls = []

    def _recording_verify(password, password_hash):
        calls.append(password_hash)
        return verify_password(password, password_hash)

    monkeypatch.setattr("gestionpro.auth.crud.verify_password", _recording_verify)
    with connect(db_dsn) as conn:
        assert verify_user_credentials(conn, "nobody@example.com", "secret1") is None
        assert verify_user_credentials(conn, "alice@example.com", "wrong") is None
    assert len(calls) == 2
    assert all(h.startswith("$pbkdf2-sha256$") for h in calls)


def test_unrelated_update_keeps_hash(db_dsn):
    u = _create(db_dsn)
    before = _stored_hash(db_dsn, u["user_id"])
    with connect(db_dsn) as conn:
        updated = update_user(conn, u["user_id"], nom="Alice Dupont", role="Comptable")
    assert updated["nom"] == "Alice Dupont"
    assert updated["role"] == "Comptable"
    assert _stored_hash(db_dsn, u["user_id"]) == before


def test_password_change_rehashes(db_dsn):
    u = _create(db_dsn)
    before = _stored_hash(db_dsn, u["user_id"])
    with connect(db_dsn) as conn:
        update_user(conn, u["user_id"], password="newpass1")
    after = _stored_hash(db_dsn, u["user_id"])
    assert after != before
    assert verify_password("newpass1", after)
    assert not verify_password("secret1", after)


def test_update_refuses_prehashed_password(db_dsn):
    u = _create(db_dsn)
    stored = _stored_hash(db_dsn, u["user_id"])
    with connect(db_dsn) as conn:
        with pytest.raises(ValidationError):
            update_user(conn, u["user_id"], password=stored)


def test_update_missing_user(db_dsn):
    with connect(db_dsn) as conn:
        assert update_user(conn, 999, nom="Ghost") is None


def test_set_user_active(db_dsn):
    u = _create(db_dsn)
    with connect(db_dsn) as conn:
        off = set_user_active(conn, u["user_id"], False)
        on = set_user_active(conn, u["user_id"], True)
    assert off["active"] is False
    assert on["active"] is True


def test_bootstrap_admin(tmp_path):
    cfg = make_config(
        tmp_path,
        AUTH_BOOTSTRAP_ADMIN_EMAIL="boss@example.com",
        AUTH_BOOTSTRAP_ADMIN_PASSWORD="bosspass",
    )
    init_db(cfg.DB_DSN)
    admin = bootstrap_admin_if_needed(cfg)
    assert admin["role"] == "Admin"
    assert admin["email"] == "boss@example.com"
    # Only runs on an empty table.
    assert bootstrap_admin_if_needed(cfg) is None


def test_bootstrap_disabled_without_credentials(cfg, db_dsn):
    assert bootstrap_admin_if_needed(cfg) is None
