import os

# keep the module-level app off the on-disk development database
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from alumni_network.auth import create_access_token
from alumni_network.config import Settings
from alumni_network.main import create_app


@pytest.fixture
def settings(tmp_path, monkeypatch):
    """Settings pointing at a fresh SQLite database for each test."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'test.db'}")
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    monkeypatch.delenv("PUBLIC_LISTINGS", raising=False)
    return Settings()


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def session(app):
    with Session(app.state.engine) as s:
        yield s


@pytest.fixture
def auth(settings):
    """Return Authorization headers carrying a token for `subject`."""
    def _headers(subject: str) -> dict:
        return {"Authorization": f"Bearer {create_access_token(subject, settings)}"}
    return _headers


@pytest.fixture
def make_user(client, auth):
    """Register a user record for `subject` through the API."""
    def _make(subject: str, **fields) -> dict:
        body = {"username": subject, **fields}
        r = client.post("/users", json=body, headers=auth(subject))
        assert r.status_code == 201, r.text
        return r.json()
    return _make
