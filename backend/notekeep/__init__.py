"""
Notekeep Backend: Application Package Initializer
==================================================

What: Marks the `notekeep` directory as a Python package.
Why:  Enables module imports like `from notekeep.config import get_settings`.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    The backend follows a layered architecture:

    ┌─────────────────────────────────────┐
    │     Routes + Dependencies (API)     │  ← HTTP concerns, auth extraction
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Auth flow, notes, request logs
    ├─────────────────────────────────────┤
    │  Pagination (Query Builder)         │  ← Search / sort / paginate selects
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Cross-cutting: middleware (request id, access log, request audit) and the
    request log sink, which persists audit entries off the request path.
"""

__version__ = "1.0.0"
