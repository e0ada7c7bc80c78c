"""
Notekeep Backend: Note Service (Business Logic)
=================================================

What:  Owner-scoped CRUD over notes, including image attachments.
Why:   Encapsulates all note business logic in one place, independent of HTTP concerns.
How:   Composes FileService, the pagination query builder and database operations.
Who:   Called by the /notes route handlers.

Ownership:
    Every read and write re-fetches the note filtered by note id AND the
    authenticated user's id. A note that exists but belongs to someone else
    is reported exactly like a missing one (NotFoundError).

Attachment lifecycle:
    ┌──────────┐    ┌─────────────┐    ┌──────────┐    ┌──────────────────┐
    │  Upload  │───▶│  Validate   │───▶│  Flush   │───▶│  Remove old file │
    │  (Route) │    │  & Store    │    │  (DB)    │    │  (best-effort)   │
    └──────────┘    └─────────────┘    └──────────┘    └──────────────────┘

    If the database step fails, the newly written file is removed and the
    old one is left untouched.

Design Decision:
    NoteService holds no per-request state. It receives the db session for
    each call, which keeps transactions request-scoped.
"""

import logging
from pathlib import Path
from typing import Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notekeep.exceptions import NotFoundError, PersistenceError, ValidationError
from notekeep.models.note import Note
from notekeep.pagination import (
    PaginationParams,
    build_paginated_query,
    execute_paginated,
    total_pages,
)
from notekeep.schemas.note import NoteListResponse, NoteResponse
from notekeep.services.file_service import FileService

logger = logging.getLogger(__name__)

# Public sort names → columns. Anything else falls back to NOTE_DEFAULT_SORT.
NOTE_SORTABLE = {
    "created_at": Note.created_at,
    "updated_at": Note.updated_at,
    "title": Note.title,
}
NOTE_DEFAULT_SORT = "created_at"
NOTE_SEARCH_COLUMNS = (Note.title, Note.content)


class Upload:
    """An uploaded file as read from the multipart request."""

    __slots__ = ("filename", "content", "content_length")

    def __init__(self, filename: Optional[str], content: bytes, content_length: Optional[int] = None):
        self.filename = filename
        self.content = content
        self.content_length = content_length


class NoteService:
    """
    Business logic layer for note operations.

    Error Handling Strategy:
        SQLAlchemy errors are wrapped in PersistenceError (hides internal
        details). Validation and storage errors from FileService propagate
        with their own kinds.
    """

    def __init__(self, file_service: FileService):
        self.file_service = file_service

    # ── Helpers ───────────────────────────────────────────────────────────

    @staticmethod
    def to_response(note: Note) -> NoteResponse:
        image_url = f"/notes/{note.id}/image" if note.attachment_path else None
        return NoteResponse(
            id=note.id,
            user_id=note.user_id,
            title=note.title,
            content=note.content,
            attachment_path=note.attachment_path,
            image_url=image_url,
            created_at=note.created_at,
            updated_at=note.updated_at,
        )

    @staticmethod
    def _validate_title(title: str) -> str:
        title = (title or "").strip()
        if not title:
            raise ValidationError(message="Title is required", field="title")
        if len(title) > 255:
            raise ValidationError(message="Title must be at most 255 characters", field="title")
        return title

    async def _get_owned(self, db: AsyncSession, note_id: UUID, user_id: UUID) -> Note:
        """
        Fetch a note by id AND owner.

        Raises:
            NotFoundError: No such note, or it belongs to another user
        """
        try:
            result = await db.execute(
                select(Note).where(Note.id == note_id, Note.user_id == user_id)
            )
            note = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Failed to fetch note %s: %s", note_id, str(e))
            raise PersistenceError(context={"operation": "get_note", "note_id": str(note_id)}) from e

        if note is None:
            raise NotFoundError(resource="Note", resource_id=str(note_id))
        return note

    async def _store_upload(self, upload: Optional[Upload]) -> Optional[str]:
        if upload is None:
            return None
        return await self.file_service.validate_and_store(
            filename=upload.filename,
            content=upload.content,
            content_length=upload.content_length,
        )

    async def _flush_or_cleanup(self, db: AsyncSession, new_path: Optional[str], operation: str) -> None:
        """Flush pending changes; on failure remove the file written for this request."""
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error during %s: %s", operation, str(e))
            await self.file_service.cleanup_file(new_path)
            raise PersistenceError(context={"operation": operation}) from e

    # ── Operations ────────────────────────────────────────────────────────

    async def create_note(
        self,
        db: AsyncSession,
        user_id: UUID,
        title: str,
        content: str,
        upload: Optional[Upload] = None,
    ) -> NoteResponse:
        """
        Create a note owned by `user_id`, optionally with an image.

        Raises:
            ValidationError: Blank title, bad extension or size
            FileStorageError, PersistenceError: Internal faults
        """
        title = self._validate_title(title)
        attachment_path = await self._store_upload(upload)

        note = Note(
            user_id=user_id,
            title=title,
            content=content or "",
            attachment_path=attachment_path,
        )
        db.add(note)
        await self._flush_or_cleanup(db, attachment_path, "create_note")

        logger.info("Note created: %s (user=%s, attachment=%s)", note.id, user_id, bool(attachment_path))
        return self.to_response(note)

    async def get_note(self, db: AsyncSession, note_id: UUID, user_id: UUID) -> NoteResponse:
        note = await self._get_owned(db, note_id, user_id)
        return self.to_response(note)

    async def list_notes(
        self,
        db: AsyncSession,
        user_id: UUID,
        params: PaginationParams,
    ) -> NoteListResponse:
        """
        List the user's notes with search, sort and offset pagination.

        Search matches title or content case-insensitively. Only the caller's
        notes are ever counted or returned.
        """
        query = build_paginated_query(
            base_query=select(Note),
            count_query=select(func.count()).select_from(Note),
            params=params,
            sortable=NOTE_SORTABLE,
            default_sort=NOTE_DEFAULT_SORT,
            where=Note.user_id == user_id,
            search_columns=NOTE_SEARCH_COLUMNS,
        )

        try:
            notes, total = await execute_paginated(db, query)
        except SQLAlchemyError as e:
            logger.error("Failed to list notes: %s", str(e))
            raise PersistenceError(context={"operation": "list_notes"}) from e

        applied = query.params
        return NoteListResponse(
            notes=[self.to_response(n) for n in notes],
            total=total,
            page=applied.page,
            limit=applied.limit,
            total_pages=total_pages(total, applied.limit),
        )

    async def update_note(
        self,
        db: AsyncSession,
        note_id: UUID,
        user_id: UUID,
        title: str,
        content: str,
        upload: Optional[Upload] = None,
    ) -> NoteResponse:
        """
        Replace title and content; with an upload, also replace the image.

        Concurrent updates are last-write-wins.
        """
        note = await self._get_owned(db, note_id, user_id)
        title = self._validate_title(title)

        new_path = await self._store_upload(upload)
        old_path = note.attachment_path

        note.title = title
        note.content = content or ""
        if new_path is not None:
            note.attachment_path = new_path

        await self._flush_or_cleanup(db, new_path, "update_note")

        if new_path is not None and old_path:
            await self.file_service.cleanup_file(old_path)

        logger.info("Note updated: %s", note.id)
        return self.to_response(note)

    async def attach_image(
        self,
        db: AsyncSession,
        note_id: UUID,
        user_id: UUID,
        upload: Upload,
    ) -> NoteResponse:
        """Set or replace the note's image, leaving title and content alone."""
        note = await self._get_owned(db, note_id, user_id)

        new_path = await self._store_upload(upload)
        old_path = note.attachment_path
        note.attachment_path = new_path

        await self._flush_or_cleanup(db, new_path, "attach_image")

        if old_path:
            await self.file_service.cleanup_file(old_path)

        logger.info("Image attached to note %s", note.id)
        return self.to_response(note)

    async def delete_note(self, db: AsyncSession, note_id: UUID, user_id: UUID) -> None:
        """Delete the note and then its attachment file."""
        note = await self._get_owned(db, note_id, user_id)
        attachment_path = note.attachment_path

        try:
            await db.delete(note)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to delete note %s: %s", note_id, str(e))
            raise PersistenceError(context={"operation": "delete_note", "note_id": str(note_id)}) from e

        await self.file_service.cleanup_file(attachment_path)
        logger.info("Note deleted: %s", note_id)

    async def get_image_path(self, db: AsyncSession, note_id: UUID, user_id: UUID) -> Path:
        """
        Absolute path of the note's image, for streaming.

        Raises:
            NotFoundError: No such note, no attachment, or the file is gone
        """
        note = await self._get_owned(db, note_id, user_id)
        if not note.attachment_path:
            raise NotFoundError(resource="Image", resource_id=str(note_id))

        path = self.file_service.resolve(note.attachment_path)
        if not path.is_file():
            logger.warning("Attachment missing on disk for note %s: %s", note_id, note.attachment_path)
            raise NotFoundError(resource="Image", resource_id=str(note_id))
        return path
