"""Rule-based suggestions over cost, cron, agent and activity aggregates.

``run_suggestions`` is a pure function of its context. It never consults
dismissals; the caller subtracts dismissed ids from the result.

Suggestion ids are derived from the triggering condition
(``model-<name>-dominant``, ``cron-peak-hour-<h>``, ``heartbeat-gap``,
``schedule-peak-<h>``), so a dismissal suppresses only that exact condition.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any

from mission_control.core.aggregation import round_half_up
from mission_control.core.timeutil import parse_iso

MODEL_COST_THRESHOLD_PERCENT = 60
HEARTBEAT_STALE_AFTER = timedelta(hours=1)
CRON_CLUSTER_MIN_JOBS = 2
PEAK_HOUR_MIN_ACTIVITY = 10

CATEGORIES = ("model", "cron", "heartbeat", "schedule", "general")
ACTION_TYPES = ("open_config", "open_cron_edit", "open_cron_page", "open_settings", "open_costs", "dismiss_only")


@dataclass
class Suggestion:
    id: str
    title: str
    description: str
    category: str
    action_type: str
    action_payload: dict[str, str] = field(default_factory=dict)


@dataclass
class ModelCostShare:
    model: str
    cost: float
    percent_of_total: float


@dataclass
class CronJobRef:
    id: str
    name: str
    enabled: bool | None = None
    next_run: str | None = None


@dataclass
class AgentRef:
    id: str
    last_activity: str | None = None


@dataclass
class SuggestionsContext:
    """Inputs for one evaluation.

    ``costs_by_model`` must already be sorted by cost descending. ``now`` and
    ``zone`` fix the staleness reference point and the hour-of-day used for
    cron bucketing.
    """

    costs_by_model: list[ModelCostShare] = field(default_factory=list)
    cron_jobs: list[CronJobRef] = field(default_factory=list)
    agents: list[AgentRef] = field(default_factory=list)
    analytics_by_hour: list[dict[str, int]] = field(default_factory=list)
    activity_stats: dict[str, Any] = field(default_factory=dict)
    now: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    zone: tzinfo = timezone.utc


def _is_enabled(job: CronJobRef) -> bool:
    return job.enabled is not False


def _cost_concentration(context: SuggestionsContext) -> Suggestion | None:
    if not context.costs_by_model:
        return None
    top = context.costs_by_model[0]
    if top.percent_of_total < MODEL_COST_THRESHOLD_PERCENT:
        return None
    other = next((m for m in context.costs_by_model if m.model.lower() != top.model.lower()), None)
    if other is None:
        return None
    return Suggestion(
        id=f"model-{top.model.lower()}-dominant",
        title="Cost concentrated in one model",
        description=(
            f"{top.model} accounts for {round_half_up(top.percent_of_total)}% of cost. "
            f"Consider using {other.model} for lighter tasks to reduce spend."
        ),
        category="model",
        action_type="open_costs",
    )


def _cron_clustering(context: SuggestionsContext) -> Suggestion | None:
    # Insertion order decides which hour is reported when several qualify.
    by_hour: dict[int, int] = {}
    for job in context.cron_jobs:
        if not _is_enabled(job):
            continue
        next_run = parse_iso(job.next_run)
        if next_run is None:
            continue
        hour = next_run.astimezone(context.zone).hour
        by_hour[hour] = by_hour.get(hour, 0) + 1

    for hour, count in by_hour.items():
        if count >= CRON_CLUSTER_MIN_JOBS:
            return Suggestion(
                id=f"cron-peak-hour-{hour}",
                title="Cron jobs clustered in same hour",
                description=(
                    f"{count} cron jobs are scheduled around {hour}:00. "
                    "Spreading them can avoid load spikes."
                ),
                category="cron",
                action_type="open_cron_page",
            )
    return None


def _heartbeat_gap(context: SuggestionsContext) -> Suggestion | None:
    if not context.agents:
        return None
    main = next((a for a in context.agents if a.id == "main"), context.agents[0])
    last_activity = parse_iso(main.last_activity)
    if last_activity is None:
        return None
    if not any(_is_enabled(job) for job in context.cron_jobs):
        return None
    if context.now - last_activity <= HEARTBEAT_STALE_AFTER:
        return None
    return Suggestion(
        id="heartbeat-gap",
        title="Agent heartbeat is stale",
        description=(
            "Last activity was over an hour ago and you have active cron jobs. "
            "Check connectivity or increase heartbeat frequency."
        ),
        category="heartbeat",
        action_type="open_settings",
    )


def _peak_hour(context: SuggestionsContext) -> Suggestion | None:
    by_hour: dict[int, int] = {}
    for cell in context.analytics_by_hour:
        hour = int(cell.get("hour", 0))
        by_hour[hour] = by_hour.get(hour, 0) + int(cell.get("count", 0))

    max_hour, max_count = 0, 0
    for hour, count in by_hour.items():
        if count > max_count:
            max_hour, max_count = hour, count

    if max_count < PEAK_HOUR_MIN_ACTIVITY:
        return None
    return Suggestion(
        id=f"schedule-peak-{max_hour}",
        title="Activity peak at a specific hour",
        description=(
            f"Most activity occurs around {max_hour}:00. "
            "Consider aligning cron jobs to off-peak hours to balance load."
        ),
        category="schedule",
        action_type="open_cron_page",
    )


_RULES = (_cost_concentration, _cron_clustering, _heartbeat_gap, _peak_hour)


def run_suggestions(context: SuggestionsContext) -> list[Suggestion]:
    """Evaluate every rule once, in a fixed order.

    Args:
        context: Aggregates collected for this request.

    Returns:
        At most one suggestion per rule.
    """
    suggestions: list[Suggestion] = []
    for rule in _RULES:
        suggestion = rule(context)
        if suggestion is not None:
            suggestions.append(suggestion)
    return suggestions


def filter_dismissed(suggestions: list[Suggestion], dismissed_ids: set[str]) -> list[Suggestion]:
    return [s for s in suggestions if s.id not in dismissed_ids]
