"""Usage and activity aggregation.

Pure functions over already-loaded rows: grouping by agent or model with
cost shares, calendar-day and hour-of-day series, and activity counts.
Nothing here touches the database or the CLI.
"""
from __future__ import annotations

import math
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, tzinfo

from mission_control.core.pricing import calculate_cost, normalize_model_id

DEFAULT_AGENT_ID = "main"

# Legacy activity types folded into their canonical type for display.
ACTIVITY_TYPE_ALIASES: dict[str, tuple[str, ...]] = {
    "cron": ("cron", "cron_run"),
    "file": ("file", "file_read", "file_write"),
    "search": ("search", "web_search"),
    "message": ("message", "message_sent"),
    "task": ("task", "tool_call", "agent_action"),
}
_CANONICAL_TYPE = {legacy: canonical for canonical, group in ACTIVITY_TYPE_ALIASES.items() for legacy in group}


@dataclass
class UsageRow:
    """One unit of token usage, from a snapshot row or a live session."""

    agent_id: str
    model: str
    input_tokens: int
    output_tokens: int
    cost: float
    date: str | None = None
    hour: int | None = None
    total_tokens: int | None = None

    @property
    def tokens(self) -> int:
        if self.total_tokens is not None:
            return self.total_tokens
        return self.input_tokens + self.output_tokens


@dataclass
class CostBreakdown:
    """Summed usage for one group with its share of the total cost."""

    key: str
    cost: float = 0.0
    tokens: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    percent_of_total: float = 0.0


@dataclass
class DailyCost:
    date: str
    cost: float = 0.0
    input: int = 0
    output: int = 0


@dataclass
class HourlyCost:
    hour: str
    cost: float = 0.0


@dataclass
class CostOverview:
    """Everything the cost panel renders."""

    today: float
    yesterday: float
    this_month: float
    last_month: float
    projected: float
    budget: float
    by_agent: list[CostBreakdown] = field(default_factory=list)
    by_model: list[CostBreakdown] = field(default_factory=list)
    daily: list[DailyCost] = field(default_factory=list)
    hourly: list[HourlyCost] = field(default_factory=list)
    message: str | None = None


@dataclass
class ActivitySummary:
    total: int
    by_type: dict[str, int]
    by_status: dict[str, int]
    success_rate: int


def derive_agent_id(session_key: str | None) -> str:
    """Owning agent of a colon-delimited session key (second segment)."""
    parts = (session_key or "").split(":")
    if len(parts) > 1 and parts[1]:
        return parts[1]
    return DEFAULT_AGENT_ID


def percent_of(part: float, total: float) -> float:
    """Share of ``total`` in percent; 0 when the total is not positive."""
    if total <= 0:
        return 0.0
    return part / total * 100


def round_half_up(value: float) -> int:
    """Nearest integer with halves rounded up (2.5 -> 3, -2.5 -> -2)."""
    return math.floor(value + 0.5)


def round_cents(value: float) -> float:
    """Dollars to the nearest cent, halves rounded up on the scaled value."""
    return math.floor(value * 100 + 0.5) / 100


def group_costs(rows: Iterable[UsageRow], key: Callable[[UsageRow], str]) -> list[CostBreakdown]:
    """Sum cost and tokens per group, attach percentages, sort by cost descending."""
    groups: dict[str, CostBreakdown] = {}
    total_cost = 0.0
    for row in rows:
        bucket = groups.setdefault(key(row), CostBreakdown(key=key(row)))
        bucket.cost += row.cost
        bucket.tokens += row.tokens
        bucket.input_tokens += row.input_tokens
        bucket.output_tokens += row.output_tokens
        total_cost += row.cost

    for bucket in groups.values():
        bucket.percent_of_total = percent_of(bucket.cost, total_cost)
    return sorted(groups.values(), key=lambda b: b.cost, reverse=True)


def costs_by_agent(rows: Iterable[UsageRow]) -> list[CostBreakdown]:
    return group_costs(rows, lambda r: r.agent_id)


def costs_by_model(rows: Iterable[UsageRow]) -> list[CostBreakdown]:
    return group_costs(rows, lambda r: r.model)


def daily_costs(rows: Iterable[UsageRow]) -> list[DailyCost]:
    """Per-calendar-day sums labelled ``MM-DD``, in chronological order."""
    days: dict[str, DailyCost] = {}
    for row in rows:
        if not row.date:
            continue
        day = days.setdefault(row.date, DailyCost(date=row.date[5:10]))
        day.cost += row.cost
        day.input += row.input_tokens
        day.output += row.output_tokens
    return [days[d] for d in sorted(days)]


def hourly_costs(rows: Iterable[UsageRow]) -> list[HourlyCost]:
    """Per hour-of-day sums labelled ``HH:00``, in clock order."""
    hours: dict[int, float] = {}
    for row in rows:
        if row.hour is None:
            continue
        hours[row.hour] = hours.get(row.hour, 0.0) + row.cost
    return [HourlyCost(hour=f"{h:02d}:00", cost=hours[h]) for h in sorted(hours)]


def rows_from_sessions(sessions: Iterable[dict]) -> list[UsageRow]:
    """Price live CLI session rows into usage rows (agent from the session key)."""
    rows: list[UsageRow] = []
    for session in sessions:
        if not isinstance(session, dict):
            continue
        try:
            model = normalize_model_id(str(session.get("model") or "unknown"))
            input_tokens = int(session.get("inputTokens") or 0)
            output_tokens = int(session.get("outputTokens") or 0)
            total = session.get("totalTokens")
            rows.append(
                UsageRow(
                    agent_id=derive_agent_id(str(session.get("key") or "agent:main:main")),
                    model=model,
                    input_tokens=input_tokens,
                    output_tokens=output_tokens,
                    total_tokens=int(total) if total else None,
                    cost=calculate_cost(model, input_tokens, output_tokens),
                )
            )
        except (TypeError, ValueError):
            continue
    return rows


def live_overview(sessions: Iterable[dict], now: datetime, budget: float, zone: tzinfo) -> CostOverview:
    """Cost overview computed from current sessions only.

    The live view has no history: every figure is "today", and the daily and
    hourly series hold a single point.
    """
    rows = rows_from_sessions(sessions)
    total_cost = sum(r.cost for r in rows)
    local_now = now.astimezone(zone)
    return CostOverview(
        today=total_cost,
        yesterday=0.0,
        this_month=total_cost,
        last_month=0.0,
        projected=total_cost,
        budget=budget,
        by_agent=costs_by_agent(rows),
        by_model=costs_by_model(rows),
        daily=[
            DailyCost(
                date=local_now.strftime("%m-%d"),
                cost=round(total_cost, 4),
                input=sum(r.input_tokens for r in rows),
                output=sum(r.output_tokens for r in rows),
            )
        ],
        hourly=[HourlyCost(hour=f"{local_now.hour:02d}:00", cost=round(total_cost, 4))],
        message="Live fallback from openclaw sessions (usage-tracking.db not found yet)",
    )


def empty_overview(budget: float) -> CostOverview:
    return CostOverview(
        today=0.0,
        yesterday=0.0,
        this_month=0.0,
        last_month=0.0,
        projected=0.0,
        budget=budget,
        message="No usage data yet. Start the usage collector to populate usage-tracking.db",
    )


def normalize_activity_type(activity_type: str) -> str:
    return _CANONICAL_TYPE.get(activity_type, activity_type)


def expand_activity_type(activity_type: str) -> tuple[str, ...]:
    """Canonical type plus its legacy aliases, for filtering."""
    return ACTIVITY_TYPE_ALIASES.get(activity_type, (activity_type,))


def success_rate(by_status: dict[str, int]) -> int:
    """Whole-percent success over resolved (success + error) activities."""
    success = by_status.get("success", 0)
    resolved = success + by_status.get("error", 0)
    if resolved == 0:
        return 0
    return round_half_up(success / resolved * 100)


def summarize_activities(rows: Iterable[tuple[str, str]]) -> ActivitySummary:
    """Count (type, status) pairs."""
    by_type: dict[str, int] = {}
    by_status: dict[str, int] = {}
    total = 0
    for activity_type, status in rows:
        total += 1
        by_type[activity_type] = by_type.get(activity_type, 0) + 1
        by_status[status] = by_status.get(status, 0) + 1
    return ActivitySummary(total=total, by_type=by_type, by_status=by_status, success_rate=success_rate(by_status))


def hour_day_histogram(timestamps: Iterable[datetime], zone: tzinfo) -> list[dict[str, int]]:
    """Activity counts per (hour-of-day, weekday) with Sunday as day 0."""
    counts: dict[tuple[int, int], int] = {}
    for moment in timestamps:
        local = moment.astimezone(zone)
        key = (local.hour, (local.weekday() + 1) % 7)
        counts[key] = counts.get(key, 0) + 1
    return [{"hour": h, "day": d, "count": c} for (h, d), c in sorted(counts.items())]
