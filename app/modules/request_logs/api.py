from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from app.dependencies import RequestLogsContext, get_request_logs_context
from app.modules.request_logs.schemas import RequestLogCreate, RequestLogEntry, RequestLogsResponse

router = APIRouter(prefix="/api/request-logs", tags=["request-logs"])


@router.get("", response_model=RequestLogsResponse)
async def list_request_logs(
    limit: int = Query(50, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    account_email: list[str] | None = Query(default=None, alias="accountEmail"),
    context: RequestLogsContext = Depends(get_request_logs_context),
) -> RequestLogsResponse:
    logs = await context.service.list_recent(limit=limit, offset=offset, account_emails=account_email)
    return RequestLogsResponse(requests=logs)


@router.post("", response_model=RequestLogEntry, status_code=201)
async def record_request_log(
    payload: RequestLogCreate,
    context: RequestLogsContext = Depends(get_request_logs_context),
) -> RequestLogEntry:
    return await context.service.record(payload)
