"""Entities held by the in-memory store."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Account:
    username: str
    password_hash: str


@dataclass(frozen=True)
class FileRecord:
    filename: str
    uploaded_at: datetime
    uploader: str
