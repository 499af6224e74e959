from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Literal

TimeRange = Literal["hourly", "daily", "weekly"]

GET_TOKEN_STATS_HOURLY: Final[str] = "get_token_stats_hourly"
GET_TOKEN_STATS_DAILY: Final[str] = "get_token_stats_daily"
GET_TOKEN_STATS_WEEKLY: Final[str] = "get_token_stats_weekly"
GET_TOKEN_STATS_BY_ACCOUNT: Final[str] = "get_token_stats_by_account"
GET_TOKEN_STATS_SUMMARY: Final[str] = "get_token_stats_summary"

# SQLite strftime formats for period labels, all UTC.
PERIOD_FORMATS: Final[dict[TimeRange, str]] = {
    "hourly": "%Y-%m-%d %H:00",
    "daily": "%Y-%m-%d",
    "weekly": "%Y-W%W",
}

MAX_HOURS: Final[int] = 24 * 365
MAX_DAYS: Final[int] = 366
MAX_WEEKS: Final[int] = 104


@dataclass(frozen=True, slots=True)
class PeriodTokenAggregate:
    period: str
    input_tokens_sum: int
    output_tokens_sum: int
    request_count: int


@dataclass(frozen=True, slots=True)
class AccountTokenAggregate:
    account_email: str
    input_tokens_sum: int
    output_tokens_sum: int
    request_count: int


@dataclass(frozen=True, slots=True)
class TokenTotalsAggregate:
    input_tokens_sum: int
    output_tokens_sum: int
    request_count: int
    unique_accounts: int
