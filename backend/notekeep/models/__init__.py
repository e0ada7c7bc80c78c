"""
ORM models.

Importing this package registers every table with `Base.metadata`, which
Alembic autogenerate and `create_schema()` rely on.
"""

from notekeep.models.note import Note
from notekeep.models.request_log import RequestLog
from notekeep.models.user import User

__all__ = ["Note", "RequestLog", "User"]
