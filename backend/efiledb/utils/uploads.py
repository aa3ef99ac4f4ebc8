# backend/efiledb/utils/uploads.py

"""
Local disk storage for attachments and scanned signatures.

Override the root per environment:
  EFILING_UPLOAD_DIR=/var/lib/efiledb/uploads
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from fastapi import HTTPException, UploadFile, status

logger = logging.getLogger(__name__)

UPLOAD_ROOT = Path(os.getenv("EFILING_UPLOAD_DIR", "uploads")).resolve()
MAX_UPLOAD_BYTES = int(os.getenv("EFILING_MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))
UPLOAD_URL_PREFIX = "/uploads"
_CHUNK_BYTES = 1024 * 1024


def upload_dir(*parts: str) -> Path:
    path = UPLOAD_ROOT.joinpath(*parts)
    path.mkdir(parents=True, exist_ok=True)
    return ensure_safe_path(path)


def ensure_safe_path(path: Path) -> Path:
    resolved = path.resolve()
    if not resolved.is_relative_to(UPLOAD_ROOT):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid upload path.",
        )
    return resolved


def public_url(path: Path) -> str:
    relative = path.resolve().relative_to(UPLOAD_ROOT)
    return f"{UPLOAD_URL_PREFIX}/{relative.as_posix()}"


def _too_large() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
        detail=f"File exceeds the {MAX_UPLOAD_BYTES // (1024 * 1024)}MB limit",
    )


def save_upload(*, file: UploadFile, dest_path: Path, max_bytes: int = MAX_UPLOAD_BYTES) -> int:
    """Stream an upload to disk in chunks. Returns the stored size."""
    total = 0
    with dest_path.open("wb") as out:
        while True:
            chunk = file.file.read(_CHUNK_BYTES)
            if not chunk:
                break
            total += len(chunk)
            if max_bytes and total > max_bytes:
                out.close()
                delete_if_exists(dest_path)
                raise _too_large()
            out.write(chunk)
    return total


def save_bytes(data: bytes, dest_path: Path, *, max_bytes: int = MAX_UPLOAD_BYTES) -> int:
    if max_bytes and len(data) > max_bytes:
        raise _too_large()
    dest_path.write_bytes(data)
    return len(data)


def delete_if_exists(path: Optional[Path]) -> None:
    if not path:
        return
    try:
        if path.exists():
            path.unlink()
    except OSError:
        logger.warning("Could not remove stored upload", extra={"path": str(path)})
