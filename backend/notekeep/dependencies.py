"""
Notekeep Backend: FastAPI Dependencies
========================================

What:  Injectable accessors for the services built by `create_app()`, plus
       the `get_current_user` guard used by every protected route.
Why:   Services live on `app.state`, so tests can build an app with their
       own settings and every route sees that app's instances.
"""

from typing import Optional

from fastapi import Depends, Header, Query, Request

from notekeep.pagination import DEFAULT_LIMIT, DEFAULT_PAGE, PaginationParams
from notekeep.services.auth_service import AuthenticatedUser, AuthService
from notekeep.services.note_service import NoteService
from notekeep.services.request_log_service import RequestLogService


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_note_service(request: Request) -> NoteService:
    return request.app.state.note_service


def get_request_log_service(request: Request) -> RequestLogService:
    return request.app.state.request_log_service


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(default=None),
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthenticatedUser:
    """
    Require `Authorization: Bearer <token>`.

    On success the identity is also stored on `request.state.user`.

    Raises:
        UnauthorizedError: Header missing, malformed, or token invalid (→ 401)
    """
    user = auth_service.authenticate(authorization)
    request.state.user = user
    return user


def lenient_int(raw: Optional[str], default: int) -> int:
    """Parse a query integer, falling back to `default` when it is missing or not a number."""
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def get_pagination_params(
    search: str = Query(default="", description="Case-insensitive substring match"),
    sort_by: str = Query(default="", description="Sort field; unknown values use the default"),
    order: str = Query(default="DESC", description="ASC or DESC; anything else means DESC"),
    page: Optional[str] = Query(default=None, description="1-based page; missing, non-numeric or below 1 means 1"),
    limit: Optional[str] = Query(default=None, description="Page size up to 100; missing, non-numeric or below 1 means 10"),
) -> PaginationParams:
    """
    Collect list parameters from the query string.

    Nothing here is rejected: unparseable numbers take their defaults and the
    query builder normalizes the rest.
    """
    return PaginationParams(
        search=search,
        sort_by=sort_by,
        order=order,
        page=lenient_int(page, DEFAULT_PAGE),
        limit=lenient_int(limit, DEFAULT_LIMIT),
    )
