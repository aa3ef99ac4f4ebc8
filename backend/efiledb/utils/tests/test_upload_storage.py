from __future__ import annotations

from io import BytesIO

import pytest
from fastapi import HTTPException, UploadFile

from efiledb.utils import uploads


def test_upload_dir_and_public_url():
    folder = uploads.upload_dir("attachments", "file-1")
    target = folder / "scan.pdf"

    assert uploads.save_bytes(b"%PDF-1.4", target) == 8
    assert uploads.public_url(target) == "/uploads/attachments/file-1/scan.pdf"


def test_paths_outside_root_are_rejected():
    with pytest.raises(HTTPException) as exc:
        uploads.ensure_safe_path(uploads.UPLOAD_ROOT / ".." / "etc")
    assert exc.value.status_code == 400


def test_sibling_directory_with_shared_prefix_is_rejected():
    sibling = uploads.UPLOAD_ROOT.parent / f"{uploads.UPLOAD_ROOT.name}-evil" / "scan.pdf"

    with pytest.raises(HTTPException):
        uploads.ensure_safe_path(sibling)


def test_save_bytes_enforces_limit():
    target = uploads.upload_dir("limits") / "big.bin"

    with pytest.raises(HTTPException) as exc:
        uploads.save_bytes(b"x" * 11, target, max_bytes=10)

    assert exc.value.status_code == 413
    assert not target.exists()


def test_streamed_upload_over_limit_leaves_nothing_behind():
    target = uploads.upload_dir("limits") / "streamed.bin"
    upload = UploadFile(file=BytesIO(b"y" * 32), filename="streamed.bin")

    with pytest.raises(HTTPException):
        uploads.save_upload(file=upload, dest_path=target, max_bytes=16)

    assert not target.exists()
    uploads.delete_if_exists(target)
    uploads.delete_if_exists(None)
