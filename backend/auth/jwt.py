"""Session token creation and validation."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

import jwt
from fastapi import Cookie, Depends, HTTPException, Request, status

from models.store import Store, get_store

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
SESSION_COOKIE = "token"

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenError(Exception):
    """Base class for every reason a session token is rejected."""

    kind = "invalid"


class TokenMalformed(TokenError):
    kind = "malformed"


class TokenExpired(TokenError):
    kind = "expired"


class TokenInvalid(TokenError):
    kind = "invalid"


class TokenSigner:
    """Issues and verifies HS256 session tokens bound to a username.

    Verification depends only on the token, the key and the clock, so a
    fixed key and clock make it deterministic.
    """

    def __init__(self, secret_key: str, ttl: timedelta, clock: Clock = _utcnow):
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        self._secret_key = secret_key
        self.ttl = ttl
        self._clock = clock

    def issue(self, username: str) -> tuple[str, datetime]:
        """Create a token for ``username``.

        Returns:
            (token, expires_at) tuple; expires_at is issuance time + ttl.
        """
        issued_at = self._clock().replace(microsecond=0)
        expires_at = issued_at + self.ttl
        payload = {
            "sub": username,
            "iat": issued_at,
            "exp": expires_at,
        }
        return jwt.encode(payload, self._secret_key, algorithm=ALGORITHM), expires_at

    def verify(self, token: str) -> str:
        """Validate ``token`` and return the username it was issued for.

        Raises:
            TokenInvalid: Signature does not match the key.
            TokenMalformed: Not a decodable token or required claims missing.
            TokenExpired: The current time is at or past the embedded expiry.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[ALGORITHM],
                options={"verify_exp": False, "verify_iat": False, "require": ["sub", "exp"]},
            )
        except jwt.InvalidSignatureError as exc:
            raise TokenInvalid("Signature mismatch") from exc
        except (jwt.DecodeError, jwt.MissingRequiredClaimError) as exc:
            raise TokenMalformed(str(exc)) from exc
        except jwt.InvalidTokenError as exc:
            raise TokenInvalid(str(exc)) from exc

        username = payload["sub"]
        exp = payload["exp"]
        if not isinstance(username, str) or not username:
            raise TokenMalformed("Invalid subject claim")
        if not isinstance(exp, (int, float)) or isinstance(exp, bool):
            raise TokenMalformed("Invalid expiry claim")

        if self._clock() >= datetime.fromtimestamp(exp, tz=timezone.utc):
            raise TokenExpired("Token expired")
        return username


def get_signer(request: Request) -> TokenSigner:
    """FastAPI dependency returning the signer configured for the app."""
    return request.app.state.signer


def get_current_username(
    token: str | None = Cookie(None, alias=SESSION_COOKIE),
    signer: TokenSigner = Depends(get_signer),
) -> str:
    """FastAPI dependency that extracts the username from the session cookie."""
    if token is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    if not token.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Bad request")

    try:
        return signer.verify(token)
    except TokenError as exc:
        logger.info("Rejected session token (%s): %s", exc.kind, exc)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


def get_current_account(
    username: str = Depends(get_current_username),
    store: Store = Depends(get_store),
) -> str:
    """Like get_current_username, but the account must still exist."""
    if username not in store.accounts:
        logger.info("Session token for unknown account %s", username)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return username
