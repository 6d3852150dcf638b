"""Tests for /signup and /signin."""

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from http.cookies import SimpleCookie

import jwt as pyjwt
import pytest

from auth.jwt import ALGORITHM, SESSION_COOKIE


def _session_cookie(resp):
    cookie = SimpleCookie()
    cookie.load(resp.headers["set-cookie"])
    return cookie[SESSION_COOKIE]


class TestSignup:
    async def test_signup_returns_201(self, test_client, app):
        resp = await test_client.post("/signup", json={"username": "alice", "password": "pw1"})
        assert resp.status_code == 201
        assert "alice" in app.state.store.accounts

    async def test_password_not_stored_in_cleartext(self, test_client, app):
        await test_client.post("/signup", json={"username": "alice", "password": "pw1"})
        assert app.state.store.accounts.get("alice").password_hash != "pw1"

    async def test_duplicate_username_returns_409(self, test_client, registered_user):
        resp = await test_client.post(
            "/signup",
            json={"username": registered_user["username"], "password": "other"},
        )
        assert resp.status_code == 409
        assert "already registered" in resp.json()["detail"].lower()

    async def test_malformed_json_returns_400(self, test_client):
        resp = await test_client.post(
            "/signup",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid request payload"

    @pytest.mark.parametrize(
        "body",
        [{"username": "alice"}, {"password": "pw"}, {"username": "", "password": "pw"}],
    )
    async def test_incomplete_body_returns_400(self, test_client, body):
        resp = await test_client.post("/signup", json=body)
        assert resp.status_code == 400

    async def test_nul_byte_password_returns_400(self, test_client, app):
        resp = await test_client.post("/signup", json={"username": "alice", "password": "a\u0000b"})
        assert resp.status_code == 400
        assert "alice" not in app.state.store.accounts


class TestSignin:
    async def test_valid_credentials_set_cookie(self, test_client, registered_user, app):
        resp = await test_client.post(
            "/signin",
            json={"username": "test-user", "password": "password123"},
        )
        assert resp.status_code == 200
        assert resp.json()["username"] == "test-user"

        cookie = _session_cookie(resp)
        assert cookie["httponly"]
        assert cookie["expires"]
        assert app.state.signer.verify(cookie.value) == "test-user"

    async def test_cookie_expiry_matches_token_expiry(self, test_client, registered_user, app):
        resp = await test_client.post(
            "/signin",
            json={"username": "test-user", "password": "password123"},
        )
        cookie = _session_cookie(resp)
        claims = pyjwt.decode(cookie.value, app.state.settings.app_secret_key, algorithms=[ALGORITHM])
        token_expiry = datetime.fromtimestamp(claims["exp"], tz=timezone.utc)
        body_expiry = datetime.fromisoformat(resp.json()["expires_at"].replace("Z", "+00:00"))

        assert parsedate_to_datetime(cookie["expires"]) == token_expiry
        assert body_expiry == token_expiry
        assert claims["exp"] - claims["iat"] == app.state.settings.session_ttl_seconds

    async def test_wrong_password_returns_401(self, test_client, registered_user):
        resp = await test_client.post(
            "/signin",
            json={"username": "test-user", "password": "wrongpass"},
        )
        assert resp.status_code == 401
        assert "set-cookie" not in resp.headers

    async def test_unknown_username_returns_same_401(self, test_client, registered_user):
        wrong_pw = await test_client.post(
            "/signin",
            json={"username": "test-user", "password": "wrongpass"},
        )
        unknown = await test_client.post(
            "/signin",
            json={"username": "nobody", "password": "wrongpass"},
        )
        assert unknown.status_code == 401
        assert unknown.json() == wrong_pw.json()

    @pytest.mark.parametrize("username", ["test-user", "nobody"])
    async def test_nul_byte_password_returns_401(self, test_client, registered_user, username):
        resp = await test_client.post(
            "/signin",
            json={"username": username, "password": "a\u0000b"},
        )
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid username or password"

    async def test_malformed_body_returns_400(self, test_client):
        resp = await test_client.post("/signin", json={"username": "alice"})
        assert resp.status_code == 400


async def test_health(test_client):
    resp = await test_client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
