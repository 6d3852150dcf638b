"""Master test fixtures.

Environment variables are set BEFORE any application imports so that
``config.Settings()`` initialises with test-safe values and never
touches Docker secrets or the real upload directory.
"""

import os
import tempfile

# ── Set test env vars before any app import ──────────────────────────
os.environ.update({
    "APP_SECRET_KEY": "test-secret-key-for-jwt-signing-0123456789",
    "UPLOAD_DIR": tempfile.mkdtemp(prefix="fileshare-test-"),
    "LOG_LEVEL": "INFO",
})

import pytest

from httpx import ASGITransport, AsyncClient

# Now safe to import application code
from auth.credentials import CredentialStore
from config import Settings
from main import create_app

TEST_SECRET_KEY = os.environ["APP_SECRET_KEY"]


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings with a deterministic key and a per-test upload directory."""
    s = Settings(app_secret_key=TEST_SECRET_KEY)
    upload_dir = tmp_path / "uploads"
    upload_dir.mkdir()
    s.upload_dir = str(upload_dir)
    return s


@pytest.fixture
def app(test_settings):
    """A fresh application with its own empty store.

    The startup event is NOT run; ``test_settings`` already created the
    upload directory.
    """
    return create_app(test_settings)


@pytest.fixture
async def test_client(app):
    """HTTPX async client wired to the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def registered_user(app) -> dict:
    """Register a user directly in the app's store and return ``{username, password, token}``."""
    CredentialStore(app.state.store.accounts).register("test-user", "password123")
    token, _ = app.state.signer.issue("test-user")
    return {"username": "test-user", "password": "password123", "token": token}


@pytest.fixture
def auth_cookies(registered_user: dict) -> dict[str, str]:
    """Cookie header carrying the registered user's session token."""
    return {"Cookie": f"token={registered_user['token']}"}
