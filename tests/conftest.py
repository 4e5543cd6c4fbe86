from __future__ import annotations

from typing import Any, Dict

import pytest
from fastapi.testclient import TestClient

from gestionpro.api.server import create_app
from gestionpro.config import Config
from gestionpro.db import init_db

TEST_SECRET = "test-secret-6f1c0f2a9b"


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    for name in (
        "AUTH_BOOTSTRAP_ADMIN_EMAIL",
        "AUTH_BOOTSTRAP_ADMIN_PASSWORD",
        "AUTH_COOKIE_SECURE",
        "AUTH_COOKIE_DOMAIN",
        "AUTH_COOKIE_NAME",
    ):
        monkeypatch.delenv(name, raising=False)


def make_config(tmp_path, **overrides: Any) -> Config:
    values: Dict[str, Any] = {
        "DB_DSN": str(tmp_path / "gestionpro-test.sqlite"),
        "APP_ENV": "test",
        "JWT_SECRET": TEST_SECRET,
        "JWT_EXPIRES_IN": "1d",
        "AUTH_PASSWORD_ROUNDS": 1000,
    }
    values.update(overrides)
    return Config(**values)


@pytest.fixture
def cfg(tmp_path) -> Config:
    return make_config(tmp_path)


@pytest.fixture
def db_dsn(cfg) -> str:
    init_db(cfg.DB_DSN)
    return cfg.DB_DSN


@pytest.fixture
def app(cfg):
    return create_app(cfg)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


def register(client: TestClient, **fields: Any):
    body = {"nom": "Alice Martin", "email": "alice@example.com", "password": "secret1"}
    body.update(fields)
    return client.post("/api/auth/register", json=body)


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
