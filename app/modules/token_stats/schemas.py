from __future__ import annotations

from app.modules.shared.schemas import StatsModel


class TokenStatsAggregated(StatsModel):
    period: str
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_tokens: int = 0
    request_count: int = 0


class AccountTokenStats(StatsModel):
    account_email: str
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_tokens: int = 0
    request_count: int = 0


class TokenStatsSummary(StatsModel):
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_tokens: int = 0
    total_requests: int = 0
    unique_accounts: int = 0
