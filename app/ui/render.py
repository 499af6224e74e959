from __future__ import annotations

from typing import Final

from app.modules.token_stats.types import TimeRange
from app.ui.formatting import color_for, email_local_part, format_count, format_number, format_period_tick
from app.ui.token_stats import TIME_RANGE_QUERIES, TokenStatsView

LABELS: Final[dict[str, str]] = {
    "title": "Token Usage",
    "hourly": "Hourly",
    "daily": "Daily",
    "weekly": "Weekly",
    "total_tokens": "Total Tokens",
    "input_tokens": "Input Tokens",
    "output_tokens": "Output Tokens",
    "accounts_used": "Active Accounts",
    "usage_trend": "Token Usage Trend",
    "by_account": "By Account",
    "account_details": "Account Details",
    "account": "Account",
    "requests": "Requests",
    "input": "Input",
    "output": "Output",
    "total": "Total",
    "loading": "Loading...",
    "no_data": "No data",
}

LEGEND_LIMIT: Final[int] = 5
BAR_WIDTH: Final[int] = 40
_INPUT_BAR = "#"
_OUTPUT_BAR = "="


def render_view(view: TokenStatsView) -> str:
    sections = [
        _render_header(view.time_range, loading=view.loading),
        _render_summary(view),
        _render_trend(view),
        _render_accounts(view),
        _render_details(view),
    ]
    return "\n\n".join(section for section in sections if section) + "\n"


def _render_header(time_range: TimeRange, *, loading: bool) -> str:
    tabs = " ".join(
        f"[{LABELS[name]}]" if name == time_range else f" {LABELS[name]} " for name in TIME_RANGE_QUERIES
    )
    refresh = "(refreshing)" if loading else "(r) refresh"
    return f"{LABELS['title']}    {tabs}    {refresh}"


def _render_summary(view: TokenStatsView) -> str:
    summary = view.summary
    if summary is None:
        return ""
    tiles = [
        (LABELS["total_tokens"], format_number(summary.total_tokens)),
        (LABELS["input_tokens"], format_number(summary.total_input_tokens)),
        (LABELS["output_tokens"], format_number(summary.total_output_tokens)),
        (LABELS["accounts_used"], str(summary.unique_accounts)),
    ]
    values = "  ".join(f"{value:>16}" for _, value in tiles)
    labels = "  ".join(f"{label:>16}" for label, _ in tiles)
    return f"{values}\n{labels}"


def _empty_text(view: TokenStatsView) -> str:
    return LABELS["loading"] if view.loading else LABELS["no_data"]


def _bar(value: int, peak: int) -> int:
    if peak <= 0 or value <= 0:
        return 0
    return max(1, round(value / peak * BAR_WIDTH))


def _render_trend(view: TokenStatsView) -> str:
    lines = [LABELS["usage_trend"]]
    if not view.chart_data:
        lines.append(f"  {_empty_text(view)}")
        return "\n".join(lines)

    peak = max(max(row.total_input_tokens, row.total_output_tokens) for row in view.chart_data)
    ticks = [format_period_tick(row.period, view.time_range) for row in view.chart_data]
    tick_width = max(len(tick) for tick in ticks)
    lines.append(f"  {_INPUT_BAR} {LABELS['input']}  {_OUTPUT_BAR} {LABELS['output']}")
    for tick, row in zip(ticks, view.chart_data):
        input_bar = _INPUT_BAR * _bar(row.total_input_tokens, peak)
        output_bar = _OUTPUT_BAR * _bar(row.total_output_tokens, peak)
        lines.append(f"  {tick:>{tick_width}} | {input_bar} {format_number(row.total_input_tokens)}")
        lines.append(f"  {'':>{tick_width}} | {output_bar} {format_number(row.total_output_tokens)}")
    return "\n".join(lines)


def _render_accounts(view: TokenStatsView) -> str:
    lines = [LABELS["by_account"]]
    pie = view.pie_data
    if not pie:
        lines.append(f"  {_empty_text(view)}")
    else:
        total = sum(entry.value for entry in pie)
        for entry in pie:
            share = entry.value / total * 100 if total else 0.0
            lines.append(f"  {entry.color} {entry.name:<24} {share:5.1f}%")

    legend = view.account_data[:LEGEND_LIMIT]
    if legend:
        lines.append("")
        for index, account in enumerate(legend):
            name = email_local_part(account.account_email)
            lines.append(f"  {color_for(index)} {name:<24} {format_number(account.total_tokens):>8}")
    return "\n".join(lines)


def _render_details(view: TokenStatsView) -> str:
    if not view.account_data:
        return ""
    headers = (LABELS["account"], LABELS["requests"], LABELS["input"], LABELS["output"], LABELS["total"])
    rows = [
        (
            account.account_email,
            format_count(account.request_count),
            format_number(account.total_input_tokens),
            format_number(account.total_output_tokens),
            format_number(account.total_tokens),
        )
        for account in view.account_data
    ]
    widths = [max(len(row[col]) for row in [headers, *rows]) for col in range(len(headers))]

    def _line(cells: tuple[str, ...]) -> str:
        first = f"{cells[0]:<{widths[0]}}"
        rest = "  ".join(f"{cell:>{width}}" for cell, width in zip(cells[1:], widths[1:]))
        return f"  {first}  {rest}"

    lines = [LABELS["account_details"], _line(headers), "  " + "-" * (sum(widths) + 2 * (len(widths) - 1))]
    lines.extend(_line(row) for row in rows)
    return "\n".join(lines)
