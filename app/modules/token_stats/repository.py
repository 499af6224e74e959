from __future__ import annotations

from datetime import datetime

from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import RequestLog
from app.modules.token_stats.types import (
    PERIOD_FORMATS,
    AccountTokenAggregate,
    PeriodTokenAggregate,
    TimeRange,
    TokenTotalsAggregate,
)

_INPUT_TOKENS = func.coalesce(RequestLog.input_tokens, 0)
_OUTPUT_TOKENS = func.coalesce(RequestLog.output_tokens, 0)


class TokenStatsRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def aggregate_by_period(self, since: datetime, granularity: TimeRange) -> list[PeriodTokenAggregate]:
        period = func.strftime(PERIOD_FORMATS[granularity], RequestLog.requested_at)
        stmt = (
            select(
                period.label("period"),
                func.coalesce(func.sum(_INPUT_TOKENS), 0).label("input_tokens_sum"),
                func.coalesce(func.sum(_OUTPUT_TOKENS), 0).label("output_tokens_sum"),
                func.count(RequestLog.id).label("request_count"),
            )
            .where(RequestLog.requested_at >= since)
            .group_by(period)
            .order_by(period.asc())
        )
        result = await self._session.execute(stmt)
        return [
            PeriodTokenAggregate(
                period=str(row.period),
                input_tokens_sum=int(row.input_tokens_sum or 0),
                output_tokens_sum=int(row.output_tokens_sum or 0),
                request_count=int(row.request_count or 0),
            )
            for row in result.all()
            if row.period
        ]

    async def aggregate_by_account(self, since: datetime) -> list[AccountTokenAggregate]:
        input_sum = func.coalesce(func.sum(_INPUT_TOKENS), 0)
        output_sum = func.coalesce(func.sum(_OUTPUT_TOKENS), 0)
        stmt = (
            select(
                RequestLog.account_email.label("account_email"),
                input_sum.label("input_tokens_sum"),
                output_sum.label("output_tokens_sum"),
                func.count(RequestLog.id).label("request_count"),
            )
            .where(RequestLog.requested_at >= since)
            .group_by(RequestLog.account_email)
            .order_by((input_sum + output_sum).desc(), RequestLog.account_email.asc())
        )
        result = await self._session.execute(stmt)
        return [
            AccountTokenAggregate(
                account_email=str(row.account_email),
                input_tokens_sum=int(row.input_tokens_sum or 0),
                output_tokens_sum=int(row.output_tokens_sum or 0),
                request_count=int(row.request_count or 0),
            )
            for row in result.all()
        ]

    async def totals(self, since: datetime) -> TokenTotalsAggregate:
        stmt = select(
            func.coalesce(func.sum(_INPUT_TOKENS), 0).label("input_tokens_sum"),
            func.coalesce(func.sum(_OUTPUT_TOKENS), 0).label("output_tokens_sum"),
            func.count(RequestLog.id).label("request_count"),
            func.count(distinct(RequestLog.account_email)).label("unique_accounts"),
        ).where(RequestLog.requested_at >= since)
        result = await self._session.execute(stmt)
        row = result.one()
        return TokenTotalsAggregate(
            input_tokens_sum=int(row.input_tokens_sum or 0),
            output_tokens_sum=int(row.output_tokens_sum or 0),
            request_count=int(row.request_count or 0),
            unique_accounts=int(row.unique_accounts or 0),
        )
