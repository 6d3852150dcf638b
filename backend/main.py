"""Fileshare FastAPI application."""

import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from api import auth, files
from api.limits import UploadLimitMiddleware
from auth.jwt import TokenSigner
from config import Settings, settings as default_settings
from models.store import Store
from storage.blobs import LocalBlobStore

logging.basicConfig(
    level=default_settings.log_level,
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)
logger = logging.getLogger(__name__)


async def _invalid_payload(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Invalid payload for %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Invalid request payload"},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the upload directory."""
    app.state.blobs.ensure_root()
    logger.info("Storing uploads in %s", app.state.blobs.root.resolve())
    yield


def create_app(settings: Settings | None = None, store: Store | None = None) -> FastAPI:
    """Build an application owning its own store, blob directory and signer."""
    settings = settings or default_settings

    app = FastAPI(title="Fileshare API", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store or Store()
    app.state.blobs = LocalBlobStore(settings.upload_dir)
    app.state.signer = TokenSigner(
        settings.app_secret_key, ttl=timedelta(seconds=settings.session_ttl_seconds)
    )

    app.add_middleware(UploadLimitMiddleware, settings=settings)
    app.add_exception_handler(RequestValidationError, _invalid_payload)
    app.include_router(auth.router)
    app.include_router(files.router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
