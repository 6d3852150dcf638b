"""Authentication endpoints: signup and signin."""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from auth.credentials import AccountExists, AuthFailed, CredentialStore, InvalidPassword
from auth.jwt import SESSION_COOKIE, TokenSigner, get_signer
from models.store import Store, get_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


class CredentialsRequest(BaseModel):
    username: str = Field(min_length=1, max_length=150)
    password: str = Field(min_length=1)


class SigninResponse(BaseModel):
    username: str
    expires_at: datetime


def get_credentials(store: Store = Depends(get_store)) -> CredentialStore:
    return CredentialStore(store.accounts)


@router.post("/signup", status_code=status.HTTP_201_CREATED)
def signup(body: CredentialsRequest, credentials: CredentialStore = Depends(get_credentials)):
    """Register a new account."""
    try:
        credentials.register(body.username, body.password)
    except AccountExists:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username already registered")
    except InvalidPassword:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid password")
    except ValueError as exc:
        logger.error("Failed to hash password for %s: %s", body.username, exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create user"
        )
    return Response(status_code=status.HTTP_201_CREATED)


@router.post("/signin", response_model=SigninResponse)
def signin(
    body: CredentialsRequest,
    request: Request,
    credentials: CredentialStore = Depends(get_credentials),
    signer: TokenSigner = Depends(get_signer),
):
    """Check credentials and set the session cookie."""
    try:
        username = credentials.verify(body.username, body.password)
    except AuthFailed:
        logger.info("Failed signin for %s", body.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid username or password"
        )

    try:
        token, expires_at = signer.issue(username)
    except Exception:
        logger.exception("Failed to sign token for %s", username)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create token"
        )

    logger.info("Signed in %s", username)
    payload = SigninResponse(username=username, expires_at=expires_at)
    response = JSONResponse(content=payload.model_dump(mode="json"))
    response.set_cookie(
        key=SESSION_COOKIE,
        value=token,
        expires=expires_at,
        httponly=True,
        secure=request.app.state.settings.cookie_secure,
        samesite="lax",
    )
    return response
