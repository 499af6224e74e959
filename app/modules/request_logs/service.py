from __future__ import annotations

import logging
from datetime import timedelta

from app.core.metrics import get_metrics
from app.core.metrics.metrics import RecordedRequestObservation
from app.core.utils.time import to_utc_naive, utcnow
from app.db.models import RequestLog
from app.modules.request_logs.repository import RequestLogsRepository
from app.modules.request_logs.schemas import RequestLogCreate, RequestLogEntry

logger = logging.getLogger(__name__)


class RequestLogsService:
    def __init__(self, repo: RequestLogsRepository) -> None:
        self._repo = repo

    async def record(self, payload: RequestLogCreate) -> RequestLogEntry:
        requested_at = to_utc_naive(payload.requested_at) if payload.requested_at else None
        log = await self._repo.add_log(
            account_email=payload.account_email.strip(),
            model=payload.model,
            input_tokens=payload.input_tokens,
            output_tokens=payload.output_tokens,
            request_id=payload.request_id,
            status=payload.status,
            requested_at=requested_at,
        )
        get_metrics().observe_recorded_request(
            RecordedRequestObservation(
                status=log.status,
                input_tokens=log.input_tokens,
                output_tokens=log.output_tokens,
            )
        )
        return to_request_log_entry(log)

    async def list_recent(
        self,
        limit: int = 50,
        offset: int = 0,
        account_emails: list[str] | None = None,
    ) -> list[RequestLogEntry]:
        logs = await self._repo.list_recent(limit=limit, offset=offset, account_emails=account_emails)
        return [to_request_log_entry(log) for log in logs]

    async def prune(self, retention_days: int) -> int:
        if retention_days <= 0:
            raise ValueError("retention_days must be > 0")
        cutoff = utcnow() - timedelta(days=retention_days)
        deleted = await self._repo.delete_before(cutoff)
        if deleted:
            logger.info("Pruned request logs count=%s cutoff=%s", deleted, cutoff.isoformat())
        return deleted


def total_tokens_from_log(log: RequestLog) -> int | None:
    if log.input_tokens is None and log.output_tokens is None:
        return None
    return (log.input_tokens or 0) + (log.output_tokens or 0)


def to_request_log_entry(log: RequestLog) -> RequestLogEntry:
    return RequestLogEntry(
        requested_at=log.requested_at,
        account_email=log.account_email,
        request_id=log.request_id,
        model=log.model,
        status=log.status,
        input_tokens=log.input_tokens,
        output_tokens=log.output_tokens,
        tokens=total_tokens_from_log(log),
    )
