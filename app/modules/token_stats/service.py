from __future__ import annotations

import time
from datetime import timedelta

from app.core.metrics import get_metrics
from app.core.metrics.metrics import StatsQueryObservation
from app.core.utils.time import utcnow, window_start
from app.modules.token_stats.repository import TokenStatsRepository
from app.modules.token_stats.schemas import AccountTokenStats, TokenStatsAggregated, TokenStatsSummary
from app.modules.token_stats.types import (
    GET_TOKEN_STATS_BY_ACCOUNT,
    GET_TOKEN_STATS_DAILY,
    GET_TOKEN_STATS_HOURLY,
    GET_TOKEN_STATS_SUMMARY,
    GET_TOKEN_STATS_WEEKLY,
    AccountTokenAggregate,
    PeriodTokenAggregate,
    TimeRange,
)


class TokenStatsService:
    def __init__(self, repo: TokenStatsRepository) -> None:
        self._repo = repo

    async def get_hourly(self, hours: int) -> list[TokenStatsAggregated]:
        return await self._periods(GET_TOKEN_STATS_HOURLY, "hourly", timedelta(hours=_positive(hours, "hours")))

    async def get_daily(self, days: int) -> list[TokenStatsAggregated]:
        return await self._periods(GET_TOKEN_STATS_DAILY, "daily", timedelta(days=_positive(days, "days")))

    async def get_weekly(self, weeks: int) -> list[TokenStatsAggregated]:
        return await self._periods(GET_TOKEN_STATS_WEEKLY, "weekly", timedelta(weeks=_positive(weeks, "weeks")))

    async def get_by_account(self, hours: int) -> list[AccountTokenStats]:
        started = time.perf_counter()
        rows = await self._repo.aggregate_by_account(window_start(_positive(hours, "hours")))
        stats = [_account_to_schema(row) for row in rows]
        _observe(GET_TOKEN_STATS_BY_ACCOUNT, started, len(stats))
        return stats

    async def get_summary(self, hours: int) -> TokenStatsSummary:
        started = time.perf_counter()
        totals = await self._repo.totals(window_start(_positive(hours, "hours")))
        _observe(GET_TOKEN_STATS_SUMMARY, started, 1)
        return TokenStatsSummary(
            total_input_tokens=totals.input_tokens_sum,
            total_output_tokens=totals.output_tokens_sum,
            total_tokens=totals.input_tokens_sum + totals.output_tokens_sum,
            total_requests=totals.request_count,
            unique_accounts=totals.unique_accounts,
        )

    async def _periods(self, command: str, granularity: TimeRange, span: timedelta) -> list[TokenStatsAggregated]:
        started = time.perf_counter()
        rows = await self._repo.aggregate_by_period(utcnow() - span, granularity)
        stats = [_period_to_schema(row) for row in rows]
        _observe(command, started, len(stats))
        return stats


def _positive(value: int, name: str) -> int:
    if value <= 0:
        raise ValueError(f"{name} must be > 0")
    return value


def _observe(command: str, started: float, rows: int) -> None:
    get_metrics().observe_stats_query(
        StatsQueryObservation(command=command, duration_seconds=time.perf_counter() - started, rows=rows)
    )


def _period_to_schema(row: PeriodTokenAggregate) -> TokenStatsAggregated:
    return TokenStatsAggregated(
        period=row.period,
        total_input_tokens=row.input_tokens_sum,
        total_output_tokens=row.output_tokens_sum,
        total_tokens=row.input_tokens_sum + row.output_tokens_sum,
        request_count=row.request_count,
    )


def _account_to_schema(row: AccountTokenAggregate) -> AccountTokenStats:
    return AccountTokenStats(
        account_email=row.account_email,
        total_input_tokens=row.input_tokens_sum,
        total_output_tokens=row.output_tokens_sum,
        total_tokens=row.input_tokens_sum + row.output_tokens_sum,
        request_count=row.request_count,
    )
