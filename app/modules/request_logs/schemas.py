from __future__ import annotations

from datetime import datetime

from pydantic import Field

from app.modules.shared.schemas import DashboardModel


class RequestLogCreate(DashboardModel):
    account_email: str = Field(min_length=1)
    model: str = Field(min_length=1)
    input_tokens: int | None = Field(default=None, ge=0)
    output_tokens: int | None = Field(default=None, ge=0)
    request_id: str | None = None
    status: str = "success"
    requested_at: datetime | None = None


class RequestLogEntry(DashboardModel):
    requested_at: datetime
    account_email: str
    request_id: str
    model: str
    status: str
    input_tokens: int | None = None
    output_tokens: int | None = None
    tokens: int | None = None


class RequestLogsResponse(DashboardModel):
    requests: list[RequestLogEntry] = Field(default_factory=list)
