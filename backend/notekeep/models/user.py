"""
Notekeep Backend: User SQLAlchemy Model
=========================================

What:  ORM model for the `users` table (the credential store).
Why:   Registration inserts rows here; login looks them up by email.
Who:   AuthService, the `/me` route and Alembic.

Table Design Rationale:
    - email is unique at the storage level. Duplicate registration is
      detected from the IntegrityError, never by a read-before-write.
    - Email matching is exact (case-sensitive); no normalization happens.
    - password_hash holds the bcrypt string. The plaintext never reaches
      this table.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from notekeep.database import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        comment="Login identifier, matched exactly",
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="bcrypt hash including salt and cost",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"
