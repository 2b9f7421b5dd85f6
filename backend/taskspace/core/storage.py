"""
Local file storage for task attachments.
"""

from __future__ import annotations

import logging
import mimetypes
import uuid
from dataclasses import dataclass
from pathlib import Path

from fastapi import UploadFile

from taskspace.core.config import settings
from taskspace.core.exceptions import ValidationFailed

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class StoredFile:
    filename: str
    original_name: str
    path: str
    size: int
    mime_type: str


class LocalFileStorage:
    """Stores uploads under a single directory with random file names."""

    def __init__(self, root: str | Path | None = None, max_size: int | None = None) -> None:
        self.root = Path(root or settings.UPLOAD_DIR)
        self.max_size = max_size if max_size is not None else settings.MAX_UPLOAD_SIZE_BYTES

    def path_for(self, filename: str) -> Path:
        # Only the final component: stored names never contain directories
        return self.root / Path(filename).name

    async def save(self, upload: UploadFile) -> StoredFile:
        """
        Stream an upload to disk in 1MB chunks.

        Raises ValidationFailed (and removes the partial file) once the size
        limit is exceeded.
        """
        self.root.mkdir(parents=True, exist_ok=True)

        original_name = Path(upload.filename or "upload").name
        filename = f"{uuid.uuid4().hex}{Path(original_name).suffix.lower()}"
        filepath = self.path_for(filename)

        total_size = 0
        with open(filepath, "wb") as handle:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                total_size += len(chunk)
                if total_size > self.max_size:
                    handle.close()
                    filepath.unlink(missing_ok=True)
                    raise ValidationFailed(
                        f"File '{original_name}' exceeds the {self.max_size} byte limit",
                        code="FILE_TOO_LARGE",
                    )
                handle.write(chunk)

        mime_type = (
            upload.content_type
            or mimetypes.guess_type(original_name)[0]
            or "application/octet-stream"
        )
        logger.debug("Stored upload %s as %s (%d bytes)", original_name, filename, total_size)
        return StoredFile(
            filename=filename,
            original_name=original_name,
            path=str(filepath),
            size=total_size,
            mime_type=mime_type,
        )

    def delete(self, filename: str) -> bool:
        """Remove a stored file. Failures are logged, never raised."""
        filepath = self.path_for(filename)
        try:
            filepath.unlink()
        except FileNotFoundError:
            logger.warning("Stored file already missing: %s", filepath)
            return False
        except OSError:
            logger.exception("Failed to delete stored file %s", filepath)
            return False
        return True
