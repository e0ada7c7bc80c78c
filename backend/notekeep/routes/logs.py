"""
Notekeep Backend: Request Log Route Handlers
==============================================

GET /logs and GET /logs/{id}. Any authenticated user may read the audit log.
"""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from notekeep.database import get_db_session
from notekeep.dependencies import get_current_user, get_pagination_params, get_request_log_service
from notekeep.pagination import PaginationParams
from notekeep.schemas.common import ErrorResponse
from notekeep.schemas.request_log import RequestLogListResponse, RequestLogResponse
from notekeep.services.request_log_service import RequestLogService

router = APIRouter(
    prefix="/logs",
    tags=["Logs"],
    dependencies=[Depends(get_current_user)],
)


@router.get(
    "",
    response_model=RequestLogListResponse,
    summary="List request logs",
    description=(
        "Search matches method, endpoint, request body and response body. "
        "Sortable by datetime (default), created_at, method, endpoint, status_code."
    ),
)
async def list_logs(
    params: PaginationParams = Depends(get_pagination_params),
    db: AsyncSession = Depends(get_db_session),
    service: RequestLogService = Depends(get_request_log_service),
) -> RequestLogListResponse:
    return await service.list_logs(db, params)


@router.get(
    "/{log_id}",
    response_model=RequestLogResponse,
    responses={404: {"description": "Log not found", "model": ErrorResponse}},
    summary="Get a single request log",
)
async def get_log(
    log_id: UUID,
    db: AsyncSession = Depends(get_db_session),
    service: RequestLogService = Depends(get_request_log_service),
) -> RequestLogResponse:
    return await service.get_log(db, log_id)
