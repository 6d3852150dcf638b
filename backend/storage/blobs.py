"""Local-directory blob storage for uploaded file bytes.

One file per name directly under the root directory. Names are reduced to
their final path component, so the original filename is the storage key and
same-name uploads overwrite each other.
"""

import logging
import os
from pathlib import Path, PurePosixPath, PureWindowsPath

logger = logging.getLogger(__name__)


class BlobError(ValueError):
    """Raised for names that cannot be used as a storage key."""


def blob_name(filename: str | None) -> str:
    """Reduce a client-declared filename to a bare storage key."""
    if not filename:
        raise BlobError("Missing filename")
    name = PurePosixPath(PureWindowsPath(filename).name).name.strip()
    if name in ("", ".", "..") or "\x00" in name:
        raise BlobError(f"Invalid filename: {filename!r}")
    return name


class LocalBlobStore:
    def __init__(self, root: str | os.PathLike):
        self.root = Path(root)

    def ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, name: str) -> Path:
        return self.root / blob_name(name)

    def write(self, name: str, data: bytes) -> Path:
        """Write ``data`` under ``name``, replacing any previous content."""
        path = self.path_for(name)
        path.write_bytes(data)
        logger.debug("Wrote %d bytes to %s", len(data), path)
        return path

    def exists(self, name: str) -> bool:
        try:
            return self.path_for(name).is_file()
        except BlobError:
            return False
