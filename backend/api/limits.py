"""Request body size cap applied before any handler parses the body."""

import logging

from fastapi import HTTPException, status
from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from config import Settings

logger = logging.getLogger(__name__)


def _too_large_detail(limit: int) -> str:
    return f"Upload too large. Maximum size is {limit} bytes."


class UploadLimitMiddleware:
    """Caps request bodies on the given paths at ``settings.max_upload_bytes``.

    A declared Content-Length over the cap is answered with 413 without
    reading the body. Bodies without a usable length are counted as they
    stream in; crossing the cap raises a 413 HTTPException from ``receive``,
    which FastAPI passes through its body parsing untouched.
    """

    def __init__(self, app: ASGIApp, settings: Settings, paths: tuple[str, ...] = ("/upload",)):
        self.app = app
        self.settings = settings
        self.paths = paths

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["path"] not in self.paths:
            await self.app(scope, receive, send)
            return

        limit = self.settings.max_upload_bytes
        declared = Headers(scope=scope).get("content-length")
        if declared is not None:
            try:
                size = int(declared)
            except ValueError:
                response = JSONResponse(
                    {"detail": "Invalid Content-Length"}, status_code=status.HTTP_400_BAD_REQUEST
                )
                await response(scope, receive, send)
                return
            if size > limit:
                logger.info("Rejected %d-byte body for %s", size, scope["path"])
                response = JSONResponse(
                    {"detail": _too_large_detail(limit)},
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                )
                await response(scope, receive, send)
                return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > limit:
                    logger.info("Body for %s exceeded %d bytes while streaming", scope["path"], limit)
                    raise HTTPException(
                        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                        detail=_too_large_detail(limit),
                    )
            return message

        await self.app(scope, limited_receive, send)
