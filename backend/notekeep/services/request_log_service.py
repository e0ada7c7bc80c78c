"""
Notekeep Backend: Request Log Query Service
=============================================

Read side of the audit log. Logs are global (not per user): any
authenticated caller can list them.
"""

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notekeep.exceptions import NotFoundError, PersistenceError
from notekeep.models.request_log import RequestLog
from notekeep.pagination import (
    PaginationParams,
    build_paginated_query,
    execute_paginated,
    total_pages,
)
from notekeep.schemas.request_log import RequestLogListResponse, RequestLogResponse

logger = logging.getLogger(__name__)

LOG_SORTABLE = {
    "datetime": RequestLog.datetime,
    "created_at": RequestLog.created_at,
    "method": RequestLog.method,
    "endpoint": RequestLog.endpoint,
    "status_code": RequestLog.status_code,
}
LOG_DEFAULT_SORT = "datetime"
LOG_SEARCH_COLUMNS = (
    RequestLog.method,
    RequestLog.endpoint,
    RequestLog.request_body,
    RequestLog.response_body,
)


class RequestLogService:

    async def list_logs(self, db: AsyncSession, params: PaginationParams) -> RequestLogListResponse:
        query = build_paginated_query(
            base_query=select(RequestLog),
            count_query=select(func.count()).select_from(RequestLog),
            params=params,
            sortable=LOG_SORTABLE,
            default_sort=LOG_DEFAULT_SORT,
            search_columns=LOG_SEARCH_COLUMNS,
        )

        try:
            logs, total = await execute_paginated(db, query)
        except SQLAlchemyError as e:
            logger.error("Failed to list request logs: %s", str(e))
            raise PersistenceError(context={"operation": "list_logs"}) from e

        applied = query.params
        return RequestLogListResponse(
            logs=[RequestLogResponse.model_validate(entry) for entry in logs],
            total=total,
            page=applied.page,
            limit=applied.limit,
            total_pages=total_pages(total, applied.limit),
        )

    async def get_log(self, db: AsyncSession, log_id: UUID) -> RequestLogResponse:
        try:
            entry = await db.get(RequestLog, log_id)
        except SQLAlchemyError as e:
            logger.error("Failed to fetch request log %s: %s", log_id, str(e))
            raise PersistenceError(context={"operation": "get_log", "log_id": str(log_id)}) from e

        if entry is None:
            raise NotFoundError(resource="Log", resource_id=str(log_id))
        return RequestLogResponse.model_validate(entry)
