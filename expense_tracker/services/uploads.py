# expense_tracker/services/uploads.py
"""
Local-disk storage for multipart uploads (invoices, expense proofs, income
statements). Files land under `settings.upload_dir/<folder>/` and are served
read-only from `/uploads/<folder>/<name>`.
"""
import asyncio
import logging
import os
import secrets
import time
from dataclasses import dataclass
from pathlib import Path

from fastapi import UploadFile

from expense_tracker.errors import ApiError
from expense_tracker.settings import settings

log = logging.getLogger(__name__)

CHUNK = 1024 * 1024
PUBLIC_PREFIX = "/uploads/"

MIME_TYPES = {
    ".jpg": {"image/jpeg", "image/jpg"},
    ".jpeg": {"image/jpeg", "image/jpg"},
    ".png": {"image/png"},
    ".pdf": {"application/pdf"},
    ".doc": {"application/msword"},
    ".docx": {"application/vnd.openxmlformats-officedocument.wordprocessingml.document"},
}


@dataclass(frozen=True)
class UploadKind:
    folder: str
    prefix: str
    extensions: tuple[str, ...]
    error: str


INVOICE = UploadKind(
    "invoices", "invoice", (".jpeg", ".jpg", ".png", ".pdf"),
    "Only images (jpeg, jpg, png) and PDF files are allowed!",
)
EXPENSE_PROOF = UploadKind(
    "expense-proofs", "expense", (".jpeg", ".jpg", ".png", ".pdf", ".doc", ".docx"),
    "Only images (JPEG, PNG) and documents (PDF, DOC, DOCX) are allowed",
)
INCOME_STATEMENT = UploadKind(
    "income-statements", "income", (".jpeg", ".jpg", ".png", ".pdf", ".doc", ".docx"),
    "Only images (JPEG, PNG) and documents (PDF, DOC, DOCX) are allowed",
)


def upload_root() -> Path:
    return Path(settings.upload_dir)


def check_file(kind: UploadKind, file: UploadFile) -> str:
    """Returns the lower-cased extension or raises 400."""
    ext = os.path.splitext(file.filename or "")[1].lower()
    if ext not in kind.extensions:
        raise ApiError(400, kind.error)
    content_type = (file.content_type or "").lower()
    if content_type not in MIME_TYPES[ext]:
        raise ApiError(400, kind.error)
    return ext


async def save_upload(kind: UploadKind, file: UploadFile) -> str:
    """
    Stream the upload to disk and return its public path,
    e.g. /uploads/invoices/invoice-1718000000000-123456789.pdf
    """
    ext = check_file(kind, file)
    folder = upload_root() / kind.folder
    folder.mkdir(parents=True, exist_ok=True)

    name = f"{kind.prefix}-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{ext}"
    target = folder / name
    written = 0
    out = await asyncio.to_thread(open, target, "wb")
    try:
        while True:
            chunk = await file.read(CHUNK)
            if not chunk:
                break
            written += len(chunk)
            if written > settings.max_upload_bytes:
                break
            await asyncio.to_thread(out.write, chunk)
    finally:
        await asyncio.to_thread(out.close)

    if written > settings.max_upload_bytes:
        target.unlink(missing_ok=True)
        raise ApiError(400, f"File too large. Maximum size is {settings.max_upload_bytes // (1024 * 1024)}MB")

    return f"{PUBLIC_PREFIX}{kind.folder}/{name}"


def local_path(public_path: str | None) -> Path | None:
    """Map /uploads/<folder>/<name> back to disk; None for anything else."""
    if not public_path or not public_path.startswith(PUBLIC_PREFIX):
        return None
    relative = public_path[len(PUBLIC_PREFIX):]
    parts = Path(relative).parts
    if not parts or ".." in parts:
        return None
    return upload_root().joinpath(*parts)


def remove_upload(public_path: str | None) -> bool:
    """Delete a stored upload; missing files are not an error."""
    path = local_path(public_path)
    if path is None or not path.exists():
        return False
    try:
        path.unlink()
        return True
    except OSError as e:
        log.warning("Could not remove upload %s: %s", path, e)
        return False
