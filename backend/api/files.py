"""File endpoints: upload, download, list."""

import logging
import mimetypes
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status
from fastapi.responses import FileResponse
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from auth.jwt import get_current_account
from models.records import FileRecord
from models.store import Store, get_store
from storage.blobs import BlobError, LocalBlobStore, blob_name

logger = logging.getLogger(__name__)

router = APIRouter(tags=["files"])


class FileRecordResponse(BaseModel):
    filename: str
    uploaded_at: datetime
    uploader: str

    @classmethod
    def from_record(cls, record: FileRecord) -> "FileRecordResponse":
        return cls(filename=record.filename, uploaded_at=record.uploaded_at, uploader=record.uploader)


def get_blobs(request: Request) -> LocalBlobStore:
    """FastAPI dependency returning the blob store owned by the app."""
    return request.app.state.blobs


def get_upload_limit(request: Request) -> int:
    """Per-file byte cap; UploadLimitMiddleware already bounds the raw body."""
    return request.app.state.settings.max_upload_bytes


@router.post("/upload", status_code=status.HTTP_201_CREATED, response_model=FileRecordResponse)
async def upload_file(
    username: str = Depends(get_current_account),
    limit: int = Depends(get_upload_limit),
    file: UploadFile = File(...),
    store: Store = Depends(get_store),
    blobs: LocalBlobStore = Depends(get_blobs),
):
    """Store the uploaded file's bytes and record who uploaded it."""
    try:
        filename = blob_name(file.filename)
    except BlobError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    content = await file.read(limit + 1)
    if len(content) > limit:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Upload too large. Maximum size is {limit} bytes.",
        )

    try:
        await run_in_threadpool(blobs.write, filename, content)
    except OSError:
        logger.exception("Could not save file %s", filename)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Could not save file")

    record = FileRecord(filename=filename, uploaded_at=datetime.now(timezone.utc), uploader=username)
    store.files.put_record(record)
    logger.info("File %s uploaded by %s (%d bytes)", filename, username, len(content))
    return FileRecordResponse.from_record(record)


@router.get("/files", response_model=list[FileRecordResponse])
def list_files(
    username: str = Depends(get_current_account),
    store: Store = Depends(get_store),
):
    """All known files, sorted by filename."""
    return [FileRecordResponse.from_record(r) for r in store.files.list_records()]


@router.get("/files/{filename}")
def download_file(
    filename: str,
    username: str = Depends(get_current_account),
    store: Store = Depends(get_store),
    blobs: LocalBlobStore = Depends(get_blobs),
):
    """Stream a file's bytes to any authenticated caller."""
    record = store.files.get(filename)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")

    if not blobs.exists(record.filename):
        logger.error("Blob missing for recorded file %s", record.filename)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")

    logger.info(
        "File %s accessed by %s at %s",
        record.filename,
        username,
        datetime.now(timezone.utc).isoformat(timespec="seconds"),
    )
    media_type = mimetypes.guess_type(record.filename)[0] or "application/octet-stream"
    return FileResponse(blobs.path_for(record.filename), media_type=media_type, filename=record.filename)
