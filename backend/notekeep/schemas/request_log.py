"""Response schemas for the request audit log endpoints."""

import datetime as dt
import uuid
from typing import List, Optional

from pydantic import BaseModel, Field


class RequestLogResponse(BaseModel):
    id: uuid.UUID
    datetime: dt.datetime = Field(description="When the request was received (UTC)")
    method: str
    endpoint: str
    headers: str = Field(description="Request headers as JSON text, secrets masked")
    request_body: Optional[str] = None
    response_body: Optional[str] = None
    status_code: int
    created_at: dt.datetime

    model_config = {"from_attributes": True}


class RequestLogListResponse(BaseModel):
    logs: List[RequestLogResponse]
    total: int
    page: int
    limit: int
    total_pages: int
