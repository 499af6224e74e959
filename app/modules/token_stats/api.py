from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from app.dependencies import TokenStatsContext, get_token_stats_context
from app.modules.token_stats.schemas import AccountTokenStats, TokenStatsAggregated, TokenStatsSummary
from app.modules.token_stats.types import MAX_DAYS, MAX_HOURS, MAX_WEEKS

router = APIRouter(prefix="/api/token-stats", tags=["token-stats"])


@router.get("/hourly", response_model=list[TokenStatsAggregated])
async def get_token_stats_hourly(
    hours: int = Query(24, ge=1, le=MAX_HOURS),
    context: TokenStatsContext = Depends(get_token_stats_context),
) -> list[TokenStatsAggregated]:
    return await context.service.get_hourly(hours)


@router.get("/daily", response_model=list[TokenStatsAggregated])
async def get_token_stats_daily(
    days: int = Query(7, ge=1, le=MAX_DAYS),
    context: TokenStatsContext = Depends(get_token_stats_context),
) -> list[TokenStatsAggregated]:
    return await context.service.get_daily(days)


@router.get("/weekly", response_model=list[TokenStatsAggregated])
async def get_token_stats_weekly(
    weeks: int = Query(4, ge=1, le=MAX_WEEKS),
    context: TokenStatsContext = Depends(get_token_stats_context),
) -> list[TokenStatsAggregated]:
    return await context.service.get_weekly(weeks)


@router.get("/by-account", response_model=list[AccountTokenStats])
async def get_token_stats_by_account(
    hours: int = Query(24, ge=1, le=MAX_HOURS),
    context: TokenStatsContext = Depends(get_token_stats_context),
) -> list[AccountTokenStats]:
    return await context.service.get_by_account(hours)


@router.get("/summary", response_model=TokenStatsSummary)
async def get_token_stats_summary(
    hours: int = Query(24, ge=1, le=MAX_HOURS),
    context: TokenStatsContext = Depends(get_token_stats_context),
) -> TokenStatsSummary:
    return await context.service.get_summary(hours)
