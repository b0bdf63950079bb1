"""Local disk storage for uploaded asset files."""
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from uuid import uuid4

from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from dam.core.constants import AssetErrorDetails
from dam.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]+")


@dataclass(frozen=True)
class StoredFile:
    path: str
    filename: str
    original_name: str
    mime_type: str
    size: int


def unique_filename(original_name: str) -> str:
    """``<basename>-<32 hex><ext>`` so two uploads of the same name never collide."""
    base, ext = os.path.splitext(os.path.basename(original_name))
    base = _UNSAFE_CHARS.sub("_", base).strip("_") or "file"
    return f"{base}-{uuid4().hex}{ext.lower()}"


class LocalFileStorage:
    def __init__(self, upload_dir: str, max_size_bytes: int):
        self.upload_dir = Path(upload_dir)
        self.max_size_bytes = max_size_bytes

    async def save(self, upload: UploadFile) -> StoredFile:
        """Stream an upload to disk, enforcing the size limit as bytes arrive."""
        if upload is None or not upload.filename:
            raise ValidationError(AssetErrorDetails.FILE_REQUIRED)

        await run_in_threadpool(self.upload_dir.mkdir, parents=True, exist_ok=True)
        filename = unique_filename(upload.filename)
        path = self.upload_dir / filename

        # Disk I/O runs in the threadpool so large uploads do not stall the event loop.
        size = 0
        out = await run_in_threadpool(open, path, "wb")
        try:
            while chunk := await upload.read(CHUNK_SIZE):
                size += len(chunk)
                if size > self.max_size_bytes:
                    break
                await run_in_threadpool(out.write, chunk)
        finally:
            await run_in_threadpool(out.close)

        if size > self.max_size_bytes:
            await run_in_threadpool(path.unlink, missing_ok=True)
            raise ValidationError(
                AssetErrorDetails.FILE_TOO_LARGE,
                data={"max_size_bytes": self.max_size_bytes},
            )

        logger.info(f"Stored upload {filename} ({size} bytes)")
        return StoredFile(
            path=str(path),
            filename=filename,
            original_name=upload.filename,
            mime_type=upload.content_type or "application/octet-stream",
            size=size,
        )

    def delete(self, path: str) -> None:
        try:
            Path(path).unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to remove stored file {path}: {e}")
