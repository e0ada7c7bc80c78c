"""
Notekeep Backend: Note Schemas
================================

What:  Pydantic models defining the notes API contract.
Why:   Strict output serialization and OpenAPI doc generation.
How:   Services build these from ORM rows; FastAPI serializes them.

Design Decision:
    Schemas are separate from SQLAlchemy models because:
    1. API contracts change independently of database schema (e.g., image_url is computed)
    2. We control exactly what data is exposed
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class NoteResponse(BaseModel):
    """
    What:  Full representation of a note.
    Who:   Returned by every single-note endpoint and as list items.

    Why these fields:
        - attachment_path: Relative storage path, null without an image
        - image_url: API path that streams the image, null without an image
    """
    id: uuid.UUID = Field(description="Unique note identifier (UUID)")
    user_id: uuid.UUID = Field(description="Owner of the note")
    title: str
    content: str
    attachment_path: Optional[str] = Field(default=None, description="Relative path of the attached image")
    image_url: Optional[str] = Field(default=None, description="URL path to fetch the attached image")
    created_at: datetime = Field(description="When the note was created (UTC ISO 8601)")
    updated_at: datetime = Field(description="When the note was last modified (UTC ISO 8601)")

    model_config = {"from_attributes": True}


class NoteListResponse(BaseModel):
    """
    What:  Paginated response wrapper for GET /notes.

    Pagination strategy:
        Offset-based (page + limit) so clients can jump to any page and show
        a page count. total_pages is ceil(total / limit); zero notes give zero pages.
    """
    notes: List[NoteResponse] = Field(description="Notes on the requested page")
    total: int = Field(description="Total number of notes matching filters")
    page: int
    limit: int
    total_pages: int
