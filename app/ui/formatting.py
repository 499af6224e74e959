from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Final

from app.modules.token_stats.schemas import AccountTokenStats
from app.modules.token_stats.types import TimeRange

COLORS: Final[tuple[str, ...]] = (
    "#3b82f6",
    "#8b5cf6",
    "#ec4899",
    "#f59e0b",
    "#10b981",
    "#06b6d4",
    "#6366f1",
    "#f43f5e",
)

MAX_PIE_ENTRIES: Final[int] = 8


@dataclass(frozen=True, slots=True)
class PieEntry:
    name: str
    value: int
    full_email: str
    color: str


def format_number(num: int | float) -> str:
    if num >= 1_000_000:
        return f"{num / 1_000_000:.1f}M"
    if num >= 1_000:
        return f"{num / 1_000:.1f}K"
    return str(int(num))


def format_count(num: int) -> str:
    return f"{num:,}"


def format_period_tick(period: str, time_range: TimeRange) -> str:
    if time_range == "hourly":
        parts = period.split(" ")
        return parts[1] if len(parts) > 1 and parts[1] else period
    if time_range == "daily":
        return "/".join(period.split("-")[1:])
    return period


def email_local_part(email: str) -> str:
    return email.split("@")[0]


def color_for(index: int) -> str:
    return COLORS[index % len(COLORS)]


def build_pie_data(accounts: Sequence[AccountTokenStats]) -> list[PieEntry]:
    return [
        PieEntry(
            name=email_local_part(account.account_email) + "...",
            value=account.total_tokens,
            full_email=account.account_email,
            color=color_for(index),
        )
        for index, account in enumerate(accounts[:MAX_PIE_ENTRIES])
    ]
