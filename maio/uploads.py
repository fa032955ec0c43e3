"""
Local-disk storage for uploaded images, logos and media files.
"""

from __future__ import annotations

import logging
import os
import random
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from fastapi import UploadFile

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/uploads/"


@dataclass(frozen=True)
class StoredFile:
    filename: str
    original_name: str
    size: int
    content_type: str

    @property
    def url(self) -> str:
        return f"{PUBLIC_PREFIX}{self.filename}"


def generate_filename(field_name: str, original_name: Optional[str]) -> str:
    """Build ``{field}-{epoch millis}-{random}{ext}`` for a new upload."""
    extension = os.path.splitext(original_name or "")[1]
    suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
    return f"{field_name}-{suffix}{extension}"


def media_type_for(content_type: Optional[str]) -> str:
    content_type = content_type or ""
    if content_type.startswith("image/"):
        return "image"
    if content_type.startswith("video/"):
        return "video"
    return "other"


@dataclass
class UploadStore:
    """Writes uploads under ``directory`` and removes them best-effort."""

    directory: str = "uploads"

    def __post_init__(self):
        self.root = Path(self.directory).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    async def save(self, field_name: str, upload: UploadFile) -> StoredFile:
        filename = generate_filename(field_name, upload.filename)
        contents = await upload.read()
        (self.root / filename).write_bytes(contents)
        logger.info("Stored upload %s (%d bytes)", filename, len(contents))
        return StoredFile(
            filename=filename,
            original_name=upload.filename or filename,
            size=len(contents),
            content_type=upload.content_type or "application/octet-stream",
        )

    def path_for(self, reference: Optional[str]) -> Optional[Path]:
        """Resolve a filename or ``/uploads/...`` reference inside the upload directory."""
        if not reference:
            return None
        name = reference[len(PUBLIC_PREFIX):] if reference.startswith(PUBLIC_PREFIX) else reference
        if not name or "/" in name or "\\" in name or name in (".", ".."):
            return None
        return self.root / name

    def delete(self, reference: Optional[str]) -> bool:
        """Remove an uploaded file. Failures are logged, never raised."""
        path = self.path_for(reference)
        if path is None:
            if reference:
                logger.debug("Not a local upload, skipping delete: %s", reference)
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError:
            logger.exception("Error deleting uploaded file %s", path)
            return False
        logger.info("Deleted upload %s", path.name)
        return True
