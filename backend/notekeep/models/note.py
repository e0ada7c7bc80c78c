"""
Notekeep Backend: Note SQLAlchemy Model
=========================================

What:  ORM model representing the `notes` table.
Why:   Maps Python objects to database rows for type-safe database operations.
How:   Inherits from the shared DeclarativeBase; Alembic reads this for migrations.
Who:   Used by NoteService for CRUD operations and by Alembic for schema management.

Table Design Rationale:
    - UUID primary key: Non-sequential, so note ids cannot be enumerated
    - user_id: Owner, set once at creation and never reassigned. Every read
      and write filters on it together with the note id.
    - attachment_path: Relative path from storage root (portable across
      environments); NULL when the note has no image
    - created_at / updated_at: UTC with timezone. updated_at is refreshed by
      the ORM on every UPDATE.

    Index on user_id:
        Every query is owner-scoped, so listing a user's notes must not scan
        the whole table.

Defaults live in Python so the model also works on SQLite in tests. The
PostgreSQL server defaults are declared in the Alembic migration.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from notekeep.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Note(Base):
    """
    A user's note with an optional image attachment.

    Lifecycle:
        1. Created by its owner, with or without an image
        2. Updated in place (title, content, attachment replacement)
        3. Deleted by its owner; the attachment file is removed with it

    Query Patterns:
        - List a user's notes: WHERE user_id = :uid [AND search] ORDER BY ... LIMIT/OFFSET
          → Uses idx_notes_user_id
        - Get single note: WHERE id = :id AND user_id = :uid
          → Primary key lookup, owner checked in the same statement
    """

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # ── Owner ─────────────────────────────────────────────────────────────
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="Owning user; immutable after creation",
    )

    # ── Content ───────────────────────────────────────────────────────────
    title: Mapped[str] = mapped_column(String(255), nullable=False)

    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
    )

    # ── Attachment ────────────────────────────────────────────────────────
    # Format: YYYY/MM/DD/<uuid>.<ext> (e.g., 2024/01/15/abc123.jpg)
    attachment_path: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
        default=None,
        comment="Relative path from storage root to the attached image",
    )

    # ── Timestamps ────────────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    __table_args__ = (
        Index("idx_notes_user_id", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<Note(id={self.id}, user_id={self.user_id}, title='{self.title}')>"
