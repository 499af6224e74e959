"""Token usage view: time-range selection, backend calls and transient view state.

The view never aggregates anything itself. It picks the backend calls for the
selected granularity, stores the three payloads verbatim and exposes the
derived display data (proportion entries) to the renderer.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Final

from app.core.clients.token_stats import BackendInvoker
from app.modules.token_stats.schemas import AccountTokenStats, TokenStatsAggregated, TokenStatsSummary
from app.modules.token_stats.types import (
    GET_TOKEN_STATS_BY_ACCOUNT,
    GET_TOKEN_STATS_DAILY,
    GET_TOKEN_STATS_HOURLY,
    GET_TOKEN_STATS_SUMMARY,
    GET_TOKEN_STATS_WEEKLY,
    TimeRange,
)
from app.ui.formatting import PieEntry, build_pie_data

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TimeRangeQuery:
    command: str
    arg_name: str
    arg_value: int
    window_hours: int


TIME_RANGE_QUERIES: Final[dict[TimeRange, TimeRangeQuery]] = {
    "hourly": TimeRangeQuery(GET_TOKEN_STATS_HOURLY, "hours", 24, 24),
    "daily": TimeRangeQuery(GET_TOKEN_STATS_DAILY, "days", 7, 168),
    "weekly": TimeRangeQuery(GET_TOKEN_STATS_WEEKLY, "weeks", 4, 720),
}

DEFAULT_TIME_RANGE: Final[TimeRange] = "daily"


class TokenStatsView:
    def __init__(self, backend: BackendInvoker, *, time_range: TimeRange = DEFAULT_TIME_RANGE) -> None:
        if time_range not in TIME_RANGE_QUERIES:
            raise ValueError(f"Unknown time range: {time_range}")
        self._backend = backend
        self.time_range: TimeRange = time_range
        self.chart_data: list[TokenStatsAggregated] = []
        self.account_data: list[AccountTokenStats] = []
        self.summary: TokenStatsSummary | None = None
        self.loading = True

    @property
    def pie_data(self) -> list[PieEntry]:
        return build_pie_data(self.account_data)

    @property
    def refresh_enabled(self) -> bool:
        return not self.loading

    async def set_time_range(self, time_range: TimeRange) -> None:
        if time_range not in TIME_RANGE_QUERIES:
            raise ValueError(f"Unknown time range: {time_range}")
        self.time_range = time_range
        await self.fetch_data()

    async def refresh(self) -> None:
        if not self.refresh_enabled:
            return
        await self.fetch_data()

    async def fetch_data(self) -> None:
        self.loading = True
        try:
            query = TIME_RANGE_QUERIES[self.time_range]
            data = await self._backend.invoke(query.command, {query.arg_name: query.arg_value})
            self.chart_data = [TokenStatsAggregated.model_validate(item) for item in data or []]

            hours = {"hours": query.window_hours}
            accounts, summary = await asyncio.gather(
                self._backend.invoke(GET_TOKEN_STATS_BY_ACCOUNT, hours),
                self._backend.invoke(GET_TOKEN_STATS_SUMMARY, hours),
            )
            self.account_data = [AccountTokenStats.model_validate(item) for item in accounts or []]
            self.summary = TokenStatsSummary.model_validate(summary) if summary is not None else None
        except Exception:
            logger.exception("Failed to fetch token stats time_range=%s", self.time_range)
        finally:
            self.loading = False
