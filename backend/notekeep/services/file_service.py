"""
Notekeep Backend: Attachment Storage Service
==============================================

What:  Validates, stores, resolves and removes note image attachments.
Why:   Centralizes all file system operations with security checks.
How:   Validates extension and size, stores in date-organized directories,
       generates unique filenames to prevent conflicts.
Who:   Called by NoteService on create, update, attach and delete.

Security Model:
    1. Extension allow-list: .jpg .jpeg .png .gif
    2. Size check: empty files and files over the configured maximum are rejected
    3. UUID filename: no client-supplied text ends up in a stored path
    4. Confined resolution: stored relative paths are resolved under the
       storage root, and anything escaping it is refused

    Attack vectors prevented:
        - Path traversal: UUID filenames contain no user input, and resolve()
          rejects paths that leave the storage root
        - DoS via large files: Size limit bounds what is written to disk
        - Filename collision: UUID ensures uniqueness even under concurrency
"""

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles

from notekeep.exceptions import FileStorageError, ValidationError

logger = logging.getLogger(__name__)

# ── Allowed File Types ────────────────────────────────────────────────────
ALLOWED_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif"})


class FileService:
    """
    Manages the attachment lifecycle under one storage root.

    Directory Structure:
        uploads/
        └── 2024/
            └── 01/
                └── 15/
                    ├── a1b2c3d4-5678.jpg
                    └── e5f6g7h8-9012.png

    Args:
        storage_root:  Base directory for attachments; created if missing
        max_file_size: Largest accepted upload in bytes
    """

    def __init__(self, storage_root: str, max_file_size: int = 5_242_880):
        self.storage_root = Path(storage_root).resolve()
        self.max_file_size = max_file_size
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    def validate_extension(self, filename: Optional[str]) -> str:
        """
        Check the upload's extension against the allow-list.

        Returns: Normalized extension (lowercase with dot).
        Raises:  ValidationError if the extension is not allowed.
        """
        ext = Path(filename or "").suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext or filename}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="image",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Validate file size against the configured maximum.

        Args:
            content_length: Size reported by the client (may be None or inaccurate)
            actual_size: Actual byte count of the uploaded file

        Raises:
            ValidationError for an empty file or one over the limit
        """
        max_mb = self.max_file_size / (1024 * 1024)

        if actual_size == 0:
            raise ValidationError(message="Uploaded file is empty.", field="image")

        if content_length and content_length > self.max_file_size:
            raise ValidationError(
                message=f"File size exceeds maximum of {max_mb:.0f}MB. Please upload a smaller image.",
                field="image",
                context={"max_size_mb": max_mb, "reported_size": content_length},
            )

        if actual_size > self.max_file_size:
            raise ValidationError(
                message=f"File size ({actual_size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field="image",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        """Returns (absolute_path, relative_path) for a new YYYY/MM/DD/<uuid><ext> file."""
        now = datetime.now(timezone.utc)
        relative_path = f"{now.strftime('%Y/%m/%d')}/{uuid.uuid4()}{extension}"
        return self.storage_root / relative_path, relative_path

    async def store_file(self, content: bytes, extension: str) -> Tuple[str, str]:
        """
        Write validated file content to disk.

        Returns: Tuple of (absolute_path, relative_path).
        Raises:  FileStorageError if directory creation or file write fails.
        """
        absolute_path, relative_path = self._generate_storage_path(extension)

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)

            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)

            logger.info("File stored: %s (%d bytes)", relative_path, len(content))
            return str(absolute_path), relative_path

        except OSError as e:
            # OS-level errors: disk full, permission denied, etc.
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(absolute_path), "os_error": str(e)},
            ) from e

    def resolve(self, relative_path: str) -> Path:
        """
        Map a stored relative path to its absolute location.

        Raises:
            FileStorageError if the path points outside the storage root
        """
        candidate = (self.storage_root / relative_path).resolve()
        if not candidate.is_relative_to(self.storage_root):
            raise FileStorageError(
                message="Invalid attachment path.",
                context={"path": relative_path},
            )
        return candidate

    async def cleanup_file(self, relative_path: Optional[str]) -> None:
        """
        Remove a stored attachment.

        Best-effort: a missing file is ignored and other failures are logged,
        since by the time this runs the database row no longer references it.
        """
        if not relative_path:
            return
        try:
            path = self.resolve(relative_path)
            if path.exists():
                path.unlink()
                logger.info("Removed attachment: %s", relative_path)
            else:
                logger.debug("Cleanup: file already gone: %s", relative_path)
        except (OSError, FileStorageError) as e:
            logger.warning("Failed to remove attachment %s: %s", relative_path, e)

    async def validate_and_store(
        self,
        filename: Optional[str],
        content: bytes,
        content_length: Optional[int] = None,
    ) -> str:
        """
        Complete validation and storage pipeline.

        Returns: The relative path to persist on the note row.

        Validation order (cheap checks first):
            1. Extension check
            2. Size check
            3. Store file
        """
        ext = self.validate_extension(filename)
        self.validate_size(content_length, len(content))
        _, relative_path = await self.store_file(content, ext)
        return relative_path
