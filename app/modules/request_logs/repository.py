from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy import exc as sa_exc
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.utils.request_id import ensure_request_id
from app.core.utils.time import utcnow
from app.db.models import RequestLog
from app.db.session import _safe_rollback


class RequestLogsRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add_log(
        self,
        account_email: str,
        model: str,
        input_tokens: int | None,
        output_tokens: int | None,
        request_id: str | None = None,
        status: str = "success",
        requested_at: datetime | None = None,
    ) -> RequestLog:
        log = RequestLog(
            account_email=account_email,
            request_id=ensure_request_id(request_id),
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            status=status,
            requested_at=requested_at or utcnow(),
        )
        self._session.add(log)
        try:
            await self._session.commit()
            await self._session.refresh(log)
            return log
        except sa_exc.ResourceClosedError:
            return log
        except BaseException:
            await _safe_rollback(self._session)
            raise

    async def list_recent(
        self,
        limit: int = 50,
        offset: int = 0,
        account_emails: list[str] | None = None,
        since: datetime | None = None,
    ) -> list[RequestLog]:
        stmt = select(RequestLog).order_by(RequestLog.requested_at.desc(), RequestLog.id.desc())
        if account_emails:
            stmt = stmt.where(RequestLog.account_email.in_(account_emails))
        if since is not None:
            stmt = stmt.where(RequestLog.requested_at >= since)
        if offset:
            stmt = stmt.offset(offset)
        if limit:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def delete_before(self, cutoff: datetime) -> int:
        try:
            result = await self._session.execute(delete(RequestLog).where(RequestLog.requested_at < cutoff))
            await self._session.commit()
        except BaseException:
            await _safe_rollback(self._session)
            raise
        return int(result.rowcount or 0)
