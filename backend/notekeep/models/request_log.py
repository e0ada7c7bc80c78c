"""
Notekeep Backend: Request Log SQLAlchemy Model
================================================

What:  ORM model for the append-only `logs` table.
Who:   Written by the request log sink worker; read by the `/logs` routes.

`datetime` is the moment the request arrived; `created_at` is when the sink
got around to inserting the row. The two differ by the queue delay.
`headers` is JSON text with authorization and cookie values already masked.
"""

import datetime as dt
import uuid
from typing import Optional

from sqlalchemy import DateTime, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from notekeep.database import Base


class RequestLog(Base):
    __tablename__ = "logs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    datetime: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="When the request was received (UTC)",
    )

    method: Mapped[str] = mapped_column(String(10), nullable=False)
    endpoint: Mapped[str] = mapped_column(String(500), nullable=False)
    headers: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    request_body: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    response_body: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status_code: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: dt.datetime.now(dt.timezone.utc),
    )

    __table_args__ = (
        Index("idx_logs_datetime", "datetime"),
    )

    def __repr__(self) -> str:
        return (
            f"<RequestLog(id={self.id}, method='{self.method}', "
            f"endpoint='{self.endpoint}', status={self.status_code})>"
        )
