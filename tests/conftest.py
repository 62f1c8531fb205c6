import os
import sys
import tempfile
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

# postgate.app builds a module-level app on import; keep its data out of the repo.
os.environ.setdefault("POSTGATE_DATA_DIR", tempfile.mkdtemp(prefix="postgate-tests-"))

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from postgate.app import create_app
from postgate.auth.service import AuthService
from postgate.auth.session import SessionStore
from postgate.auth.users import UserStore


@pytest.fixture(autouse=True)
def dev_env(monkeypatch):
    """Run every test as a development deployment with a known secret."""
    monkeypatch.setenv("POSTGATE_ENV", "development")
    monkeypatch.setenv("POSTGATE_SECRET_KEY", "test-secret")
    monkeypatch.delenv("POSTGATE_COOKIE_SECURE", raising=False)
    monkeypatch.delenv("POSTGATE_SESSION_TTL", raising=False)


@pytest.fixture()
def users(tmp_path: Path) -> UserStore:
    return UserStore(tmp_path / "users.yml")


@pytest.fixture()
def sessions() -> SessionStore:
    return SessionStore()


@pytest.fixture()
def auth(users, sessions) -> AuthService:
    return AuthService(users, sessions)


@pytest.fixture()
def app(tmp_path: Path):
    return create_app(data_dir=tmp_path)


@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture()
def register(client):
    """POST /register without following the redirect."""

    def _register(email: str = "alice@example.com", password: str = "secret1"):
        return client.post(
            "/register",
            data={"email": email, "password": password},
            follow_redirects=False,
        )

    return _register
