"""
Notekeep Backend: Notes Route Handlers
========================================

What:  CRUD over the caller's notes plus image upload and download.
How:   Multipart form fields in, NoteService calls, JSON (or the image file) out.
Who:   Every route here requires a bearer token (router-level dependency).

Caching Strategy:
    Note data is private and mutable: responses carry `Cache-Control: private, no-cache`.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from notekeep.database import get_db_session
from notekeep.dependencies import get_current_user, get_note_service, get_pagination_params
from notekeep.pagination import PaginationParams
from notekeep.schemas.common import ErrorResponse, MessageResponse
from notekeep.schemas.note import NoteListResponse, NoteResponse
from notekeep.services.auth_service import AuthenticatedUser
from notekeep.services.note_service import NoteService, Upload

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/notes",
    tags=["Notes"],
    responses={401: {"description": "Not authenticated", "model": ErrorResponse}},
)

PRIVATE_CACHE = "private, no-cache"


async def read_upload(file: Optional[UploadFile]) -> Optional[Upload]:
    """
    Read a multipart file field into memory.

    Browsers submit an empty, unnamed part when no file was chosen; that
    counts as no upload.
    """
    if file is None:
        return None
    try:
        content = await file.read()
        if not file.filename and not content:
            return None
        logger.debug("Received upload: filename=%s, size=%d bytes", file.filename or "unknown", len(content))
        return Upload(filename=file.filename, content=content, content_length=file.size)
    finally:
        await file.close()


@router.post(
    "",
    response_model=NoteResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Invalid title or image", "model": ErrorResponse}},
    summary="Create a note",
)
async def create_note(
    title: str = Form(..., max_length=255),
    content: str = Form(default=""),
    image: Optional[UploadFile] = File(default=None, description="Optional .jpg/.jpeg/.png/.gif, max 5MB"),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    service: NoteService = Depends(get_note_service),
) -> NoteResponse:
    upload = await read_upload(image)
    return await service.create_note(db, user.user_id, title, content, upload)


@router.get(
    "",
    response_model=NoteListResponse,
    summary="List the caller's notes",
    description=(
        "Search matches title and content case-insensitively. Sortable by "
        "created_at (default), updated_at, title. Unknown sort fields fall back "
        "to created_at; invalid order falls back to DESC."
    ),
)
async def list_notes(
    response: Response,
    params: PaginationParams = Depends(get_pagination_params),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    service: NoteService = Depends(get_note_service),
) -> NoteListResponse:
    result = await service.list_notes(db, user.user_id, params)
    response.headers["X-Total-Count"] = str(result.total)
    response.headers["Cache-Control"] = PRIVATE_CACHE
    return result


@router.get(
    "/{note_id}",
    response_model=NoteResponse,
    responses={404: {"description": "Note not found", "model": ErrorResponse}},
    summary="Get a single note",
)
async def get_note(
    note_id: UUID,
    response: Response,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    service: NoteService = Depends(get_note_service),
) -> NoteResponse:
    result = await service.get_note(db, note_id, user.user_id)
    response.headers["Cache-Control"] = PRIVATE_CACHE
    return result


@router.put(
    "/{note_id}",
    response_model=NoteResponse,
    responses={
        400: {"description": "Invalid title or image", "model": ErrorResponse},
        404: {"description": "Note not found", "model": ErrorResponse},
    },
    summary="Update a note",
    description="Replaces title and content. A new image replaces and deletes the old one.",
)
async def update_note(
    note_id: UUID,
    title: str = Form(..., max_length=255),
    content: str = Form(default=""),
    image: Optional[UploadFile] = File(default=None),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    service: NoteService = Depends(get_note_service),
) -> NoteResponse:
    upload = await read_upload(image)
    return await service.update_note(db, note_id, user.user_id, title, content, upload)


@router.delete(
    "/{note_id}",
    response_model=MessageResponse,
    responses={404: {"description": "Note not found", "model": ErrorResponse}},
    summary="Delete a note and its image",
)
async def delete_note(
    note_id: UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    service: NoteService = Depends(get_note_service),
) -> MessageResponse:
    await service.delete_note(db, note_id, user.user_id)
    return MessageResponse(message="Note deleted successfully")


@router.post(
    "/{note_id}/image",
    response_model=NoteResponse,
    responses={
        400: {"description": "Invalid image", "model": ErrorResponse},
        404: {"description": "Note not found", "model": ErrorResponse},
    },
    summary="Attach or replace a note's image",
)
async def upload_image(
    note_id: UUID,
    image: UploadFile = File(...),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    service: NoteService = Depends(get_note_service),
) -> NoteResponse:
    upload = await read_upload(image)
    if upload is None:
        upload = Upload(filename=image.filename, content=b"")
    return await service.attach_image(db, note_id, user.user_id, upload)


@router.get(
    "/{note_id}/image",
    responses={
        200: {"description": "Image file"},
        404: {"description": "Note or image not found", "model": ErrorResponse},
    },
    summary="Download a note's image",
)
async def get_image(
    note_id: UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    service: NoteService = Depends(get_note_service),
) -> FileResponse:
    path = await service.get_image_path(db, note_id, user.user_id)
    # media_type is guessed from the stored extension
    return FileResponse(path=str(path), headers={"Cache-Control": PRIVATE_CACHE})
