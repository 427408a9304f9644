"""Business logic services for the Mission Control dashboard.

Services are framework-independent: they take repository, store and
collaborator interfaces plus Settings and a clock, and raise the domain
errors from errors.py. Routers only translate HTTP to these calls.
"""

import asyncio
import calendar
import csv
import hmac
import io
import json
import os
import re
import shutil
import uuid
from dataclasses import asdict
from datetime import date, datetime, time, timedelta, timezone
from typing import Any

from mission_control.core import aggregation
from mission_control.core.aggregation import CostBreakdown, CostOverview, UsageRow
from mission_control.core.config_policy import (
    CONFIG_ALLOWLIST,
    affects_gateway,
    is_path_allowed,
    mask_secrets,
    set_at_path,
    validate_value,
)
from mission_control.core.interfaces import (
    IActivityRepository,
    IAgentDirectory,
    ICompletionClient,
    IConfigFile,
    IDisabledSkillsStore,
    IDismissalRepository,
    INotificationStore,
    IOpenClawCli,
    IPlaygroundRepository,
    IReportRenderer,
    ISharedReportRepository,
    IUsageSnapshotRepository,
    IWorkflowStore,
)
from mission_control.core.models import (
    ACTIVITY_STATUSES,
    Activity,
    PlaygroundExperiment,
    PlaygroundShare,
    SharedReport,
)
from mission_control.core.pricing import MODEL_PRICING, catalog_ids, normalize_model_id
from mission_control.core.rate_limit import LoginRateLimiter, SlidingWindowLimiter
from mission_control.core.suggestions import (
    AgentRef,
    CronJobRef,
    ModelCostShare,
    Suggestion,
    SuggestionsContext,
    filter_dismissed,
    run_suggestions,
)
from mission_control.core.timeutil import Clock, from_epoch_ms, parse_iso, resolve_zone, to_iso, utc_now
from mission_control.errors import (
    AuthenticationError,
    MissionControlError,
    NotFoundError,
    NotImplementedYetError,
    PolicyViolationError,
    RateLimitedError,
    ValidationFailedError,
)
from mission_control.observability import get_logger
from mission_control.settings import Settings

logger = get_logger(__name__)

DEFAULT_TIMEFRAME_DAYS = 30
MAX_TIMEFRAME_DAYS = 3650


def parse_timeframe_days(timeframe: str | None) -> int:
    """Number of days in a ``<N>d`` timeframe; 30 when it has no positive number, capped at 3650."""
    digits = re.sub(r"\D", "", timeframe or "")
    days = int(digits) if digits else 0
    if days <= 0:
        return DEFAULT_TIMEFRAME_DAYS
    return min(days, MAX_TIMEFRAME_DAYS)


def _day_start_iso(day: date) -> str:
    return to_iso(datetime.combine(day, time.min, tzinfo=timezone.utc))


def _parse_day(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Activity log
# ---------------------------------------------------------------------------


class ActivityService:
    """Append-only activity log with retention pruning, listings and analytics."""

    def __init__(self, activity_repo: IActivityRepository, settings: Settings, clock: Clock = utc_now) -> None:
        self._repo = activity_repo
        self._settings = settings
        self._clock = clock
        self._zone = resolve_zone(settings.timezone)

    async def log_activity(
        self,
        activity_type: str,
        description: str,
        status: str,
        timestamp: str | None = None,
        duration_ms: int | None = None,
        tokens_used: int | None = None,
        agent: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Activity:
        """Insert an activity, then prune rows past the retention horizon.

        Args:
            activity_type: Free-form type (file, cron, task, ...).
            description: Human-readable summary.
            status: success | error | pending | running
            timestamp: Optional ISO timestamp; must parse and not be in the future.
            duration_ms: Optional duration.
            tokens_used: Optional token count.
            agent: Optional owning agent id.
            metadata: Optional JSON object.

        Returns:
            The persisted Activity.

        Raises:
            ValidationFailedError: On a bad status or timestamp.
        """
        if not activity_type or not description or not status:
            raise ValidationFailedError("Missing required fields: type, description, status")
        if status not in ACTIVITY_STATUSES:
            raise ValidationFailedError(f"Invalid status. Must be one of: {', '.join(ACTIVITY_STATUSES)}")

        now = self._clock()
        moment = now
        if timestamp is not None and timestamp.strip():
            parsed = parse_iso(timestamp)
            if parsed is None:
                raise ValidationFailedError("Invalid timestamp: must be a valid ISO 8601 date string")
            if parsed > now:
                raise ValidationFailedError("Invalid timestamp: cannot be in the future")
            moment = parsed

        activity = Activity(
            id=str(uuid.uuid4()),
            timestamp=to_iso(moment),
            type=activity_type,
            description=description,
            status=status,
            duration_ms=duration_ms,
            tokens_used=tokens_used,
            agent=agent,
            metadata_=metadata,
        )
        persisted = await self._repo.create(activity)

        cutoff = to_iso(now - timedelta(days=self._settings.activity_retention_days))
        pruned = await self._repo.prune_before(cutoff)
        logger.info("activity_logged", activity_id=persisted.id, type=activity_type, status=status, pruned=pruned)
        return persisted

    async def list_activities(
        self,
        activity_type: str | None = None,
        status: str | None = None,
        agent: str | None = None,
        start_date: str | None = None,
        end_date: str | None = None,
        sort: str = "newest",
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Activity], int]:
        """List activities with filters.

        A single ``activity_type`` also matches its legacy aliases; a
        comma-separated list matches exactly. ``end_date`` includes the whole
        day.
        """
        types: list[str] | None = None
        if activity_type and activity_type != "all":
            requested = [t.strip() for t in activity_type.split(",") if t.strip()]
            if len(requested) == 1:
                types = list(aggregation.expand_activity_type(requested[0]))
            elif requested:
                types = requested

        start: str | None = None
        if start_date:
            parsed = parse_iso(start_date) if "T" in start_date else None
            day = _parse_day(start_date)
            if parsed is not None:
                start = to_iso(parsed)
            elif day is not None:
                start = _day_start_iso(day)
            else:
                raise ValidationFailedError("Invalid startDate")

        end: str | None = None
        if end_date:
            day = _parse_day(end_date)
            if day is None:
                raise ValidationFailedError("Invalid endDate")
            end = _day_start_iso(day + timedelta(days=1))

        return await self._repo.list_filtered(
            types=types,
            status=None if status in (None, "", "all") else status,
            agent=agent or None,
            start=start,
            end=end,
            newest_first=sort != "oldest",
            limit=limit,
            offset=offset,
        )

    @staticmethod
    def activities_to_csv(activities: list[Activity]) -> str:
        """Render activities as a CSV string with a header row."""
        buffer = io.StringIO()
        writer = csv.DictWriter(
            buffer,
            fieldnames=["id", "timestamp", "type", "description", "status", "duration_ms", "tokens_used", "agent"],
        )
        writer.writeheader()
        for activity in activities:
            writer.writerow(
                {
                    "id": activity.id,
                    "timestamp": activity.timestamp,
                    "type": activity.type,
                    "description": activity.description,
                    "status": activity.status,
                    "duration_ms": activity.duration_ms,
                    "tokens_used": activity.tokens_used,
                    "agent": activity.agent,
                }
            )
        return buffer.getvalue()

    async def stats(self) -> dict[str, Any]:
        """Totals for today (local midnight onward), the last 7 days, and per type and status."""
        now = self._clock()
        local_midnight = datetime.combine(now.astimezone(self._zone).date(), time.min, tzinfo=self._zone)
        return {
            "total": await self._repo.count(),
            "today": await self._repo.count(since=to_iso(local_midnight)),
            "this_week": await self._repo.count(since=to_iso(now - timedelta(days=7))),
            "by_type": await self._repo.count_by("type"),
            "by_status": await self._repo.count_by("status"),
        }

    async def analytics(self) -> dict[str, Any]:
        """Dashboard analytics over the retained activity log.

        Returns:
            Dict with by_day (last 7 local days), by_type (aliases folded,
            most frequent first), by_hour (hour x weekday counts),
            success_rate (percent of all activities), average_response_time_ms
            (None without durations) and success_rate_by_type.
        """
        activities = await self._repo.list_all()
        now_local = self._clock().astimezone(self._zone)

        stamped: list[tuple[Activity, datetime]] = []
        for activity in activities:
            moment = parse_iso(activity.timestamp)
            if moment is not None:
                stamped.append((activity, moment))

        day_counts: dict[date, int] = {}
        for _, moment in stamped:
            local_day = moment.astimezone(self._zone).date()
            day_counts[local_day] = day_counts.get(local_day, 0) + 1
        by_day = [
            {"date": (now_local.date() - timedelta(days=i)).isoformat(),
             "count": day_counts.get(now_local.date() - timedelta(days=i), 0)}
            for i in range(6, -1, -1)
        ]

        type_totals: dict[str, dict[str, int]] = {}
        for activity in activities:
            bucket = type_totals.setdefault(
                aggregation.normalize_activity_type(activity.type), {"total": 0, "success": 0}
            )
            bucket["total"] += 1
            if activity.status == "success":
                bucket["success"] += 1

        by_type = sorted(
            ({"type": t, "count": c["total"]} for t, c in type_totals.items()),
            key=lambda entry: entry["count"],
            reverse=True,
        )
        success_rate_by_type = sorted(
            (
                {
                    "type": t,
                    "total": c["total"],
                    "success": c["success"],
                    "success_rate": aggregation.percent_of(c["success"], c["total"]),
                }
                for t, c in type_totals.items()
            ),
            key=lambda entry: entry["total"],
            reverse=True,
        )

        successes = sum(1 for a in activities if a.status == "success")
        durations = [a.duration_ms for a in activities if a.duration_ms]
        return {
            "by_day": by_day,
            "by_type": by_type,
            "by_hour": aggregation.hour_day_histogram((m for _, m in stamped), self._zone),
            "success_rate": aggregation.percent_of(successes, len(activities)),
            "average_response_time_ms": sum(durations) / len(durations) if durations else None,
            "success_rate_by_type": success_rate_by_type,
        }


# ---------------------------------------------------------------------------
# Costs
# ---------------------------------------------------------------------------


def _rows_from_snapshots(snapshots: list[Any]) -> list[UsageRow]:
    return [
        UsageRow(
            agent_id=s.agent_id or aggregation.DEFAULT_AGENT_ID,
            model=s.model,
            input_tokens=s.input_tokens or 0,
            output_tokens=s.output_tokens or 0,
            cost=s.cost or 0.0,
            date=s.date,
            hour=s.hour,
        )
        for s in snapshots
    ]


class CostService:
    """Cost overview from the usage database, with a live CLI fallback.

    ``usage_repo`` is None when usage-tracking.db does not exist yet.
    """

    def __init__(
        self,
        usage_repo: IUsageSnapshotRepository | None,
        cli: IOpenClawCli,
        settings: Settings,
        clock: Clock = utc_now,
    ) -> None:
        self._usage_repo = usage_repo
        self._cli = cli
        self._settings = settings
        self._clock = clock
        self._zone = resolve_zone(settings.timezone)

    def _today(self) -> date:
        return self._clock().astimezone(self._zone).date()

    async def overview(self, days: int = DEFAULT_TIMEFRAME_DAYS) -> CostOverview:
        """Build the cost panel payload for the trailing ``days`` window.

        Falls back to live sessions when the usage database is absent, and to
        an all-zero payload when the CLI is unavailable too.
        """
        budget = self._settings.budget_usd
        if self._usage_repo is None:
            sessions = await self._cli.sessions_list()
            if sessions is None:
                logger.warning("cost_data_unavailable", reason="no usage database and no CLI sessions")
                return aggregation.empty_overview(budget)
            return aggregation.live_overview(sessions, self._clock(), budget, self._zone)

        repo = self._usage_repo
        today = self._today()
        yesterday = today - timedelta(days=1)
        month_start = today.replace(day=1)
        last_month_end = month_start - timedelta(days=1)
        last_month_start = last_month_end.replace(day=1)

        today_cost = await repo.sum_cost_between(today.isoformat(), today.isoformat())
        yesterday_cost = await repo.sum_cost_between(yesterday.isoformat(), yesterday.isoformat())
        this_month = await repo.sum_cost_between(month_start.isoformat(), today.isoformat())
        last_month = await repo.sum_cost_between(last_month_start.isoformat(), last_month_end.isoformat())
        days_in_month = calendar.monthrange(today.year, today.month)[1]

        window_start = today - timedelta(days=days - 1)
        rows = _rows_from_snapshots(await repo.list_between(window_start.isoformat(), today.isoformat()))
        today_rows = [r for r in rows if r.date == today.isoformat()]

        return CostOverview(
            today=today_cost,
            yesterday=yesterday_cost,
            this_month=this_month,
            last_month=last_month,
            projected=this_month / today.day * days_in_month,
            budget=budget,
            by_agent=aggregation.costs_by_agent(rows),
            by_model=aggregation.costs_by_model(rows),
            daily=aggregation.daily_costs(rows),
            hourly=aggregation.hourly_costs(today_rows),
        )

    async def model_shares(self, days: int = DEFAULT_TIMEFRAME_DAYS) -> list[CostBreakdown]:
        """Per-model cost shares from the usage database only ([] when absent)."""
        if self._usage_repo is None:
            return []
        today = self._today()
        window_start = today - timedelta(days=days - 1)
        rows = _rows_from_snapshots(await self._usage_repo.list_between(window_start.isoformat(), today.isoformat()))
        return aggregation.costs_by_model(rows)


# ---------------------------------------------------------------------------
# Cron jobs
# ---------------------------------------------------------------------------


def format_schedule(schedule: Any) -> str:
    """Human-readable schedule: cron expression, fixed interval or one-shot time."""
    if not isinstance(schedule, dict):
        return "Unknown"
    kind = schedule.get("kind")
    if kind == "cron":
        tz = schedule.get("tz")
        return f"{schedule.get('expr')}{f' ({tz})' if tz else ''}"
    if kind == "every":
        every_ms = schedule.get("everyMs") or 0
        if every_ms >= 3_600_000:
            return f"Every {every_ms / 3_600_000:g}h"
        if every_ms >= 60_000:
            return f"Every {every_ms / 60_000:g}m"
        return f"Every {every_ms / 1000:g}s"
    if kind == "at":
        return f"Once at {schedule.get('at')}"
    return str(schedule)


def _describe_payload(payload: Any) -> str:
    if not isinstance(payload, dict):
        return ""
    text = payload.get("message") if payload.get("kind") == "agentTurn" else payload.get("text")
    if payload.get("kind") not in ("agentTurn", "systemEvent") or not isinstance(text, str):
        return ""
    return text[:120] + "..." if len(text) > 120 else text


class CronService:
    """Read-only view of the runtime's cron jobs."""

    def __init__(self, cli: IOpenClawCli) -> None:
        self._cli = cli

    async def list_jobs(self) -> list[dict[str, Any]]:
        jobs = []
        for job in await self._cli.cron_list():
            state = job.get("state") if isinstance(job.get("state"), dict) else {}
            schedule = job.get("schedule")
            jobs.append(
                {
                    "id": str(job.get("id") or ""),
                    "agent_id": job.get("agentId") or "main",
                    "name": job.get("name") or "Unnamed",
                    "enabled": job.get("enabled", True) is not False,
                    "schedule": schedule,
                    "schedule_display": format_schedule(schedule),
                    "timezone": schedule.get("tz") if isinstance(schedule, dict) and schedule.get("tz") else "UTC",
                    "description": _describe_payload(job.get("payload")),
                    "next_run": from_epoch_ms(state.get("nextRunAtMs")),
                    "last_run": from_epoch_ms(state.get("lastRunAtMs")),
                }
            )
        return jobs


# ---------------------------------------------------------------------------
# Suggestions
# ---------------------------------------------------------------------------


class SuggestionService:
    """Collects the aggregates, evaluates the rules and subtracts dismissals."""

    def __init__(
        self,
        activity_service: ActivityService,
        cost_service: CostService,
        cron_service: CronService,
        agent_directory: IAgentDirectory,
        dismissal_repo: IDismissalRepository,
        settings: Settings,
        clock: Clock = utc_now,
    ) -> None:
        self._activities = activity_service
        self._costs = cost_service
        self._cron = cron_service
        self._agents = agent_directory
        self._dismissals = dismissal_repo
        self._zone = resolve_zone(settings.timezone)
        self._clock = clock

    async def build_context(self) -> SuggestionsContext:
        now = self._clock()
        shares = await self._costs.model_shares(DEFAULT_TIMEFRAME_DAYS)
        jobs = await self._cron.list_jobs()
        agents = await self._agents.list_agents(now)
        analytics = await self._activities.analytics()
        return SuggestionsContext(
            costs_by_model=[ModelCostShare(s.key, s.cost, s.percent_of_total) for s in shares],
            cron_jobs=[CronJobRef(j["id"], j["name"], j["enabled"], j["next_run"]) for j in jobs],
            agents=[AgentRef(a["id"], a.get("last_activity")) for a in agents],
            analytics_by_hour=analytics["by_hour"],
            activity_stats=await self._activities.stats(),
            now=now,
            zone=self._zone,
        )

    async def list_suggestions(self) -> list[Suggestion]:
        """Fresh suggestions minus every dismissed id."""
        suggestions = run_suggestions(await self.build_context())
        return filter_dismissed(suggestions, await self._dismissals.list_ids())

    async def dismiss(self, suggestion_id: str | None, applied: bool = False) -> None:
        suggestion_id = (suggestion_id or "").strip()
        if not suggestion_id:
            raise ValidationFailedError("suggestionId is required")
        await self._dismissals.record(suggestion_id, applied, to_iso(self._clock()))
        logger.info("suggestion_dismissed", suggestion_id=suggestion_id, applied=applied)


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


class ReportService:
    """Frozen report snapshots behind expiring share tokens.

    A report is built once from persisted activities and usage snapshots,
    stored verbatim, and never updated. Unknown and expired tokens are both
    reported as not found.
    """

    def __init__(
        self,
        activity_repo: IActivityRepository,
        usage_repo: IUsageSnapshotRepository | None,
        report_repo: ISharedReportRepository,
        renderer: IReportRenderer,
        settings: Settings,
        clock: Clock = utc_now,
    ) -> None:
        self._activity_repo = activity_repo
        self._usage_repo = usage_repo
        self._report_repo = report_repo
        self._renderer = renderer
        self._settings = settings
        self._clock = clock

    @staticmethod
    def validate_range(start_date: str | None, end_date: str | None) -> tuple[date, date]:
        """Parse an inclusive ``YYYY-MM-DD`` range.

        Raises:
            ValidationFailedError: Missing, malformed or reversed dates.
        """
        if not start_date or not end_date or not start_date.strip() or not end_date.strip():
            raise ValidationFailedError("startDate and endDate are required (YYYY-MM-DD)")
        start, end = _parse_day(start_date), _parse_day(end_date)
        if start is None or end is None:
            raise ValidationFailedError("Invalid date format")
        if start > end:
            raise ValidationFailedError("startDate must be before endDate")
        return start, end

    async def build_payload(self, start: date, end: date) -> dict[str, Any]:
        """Aggregate activities and usage for the inclusive date range.

        Costs are rounded to cents, model shares and success rate to whole
        percent, and daily dates are ``MM-DD``.
        """
        activities = await self._activity_repo.list_all(
            start=_day_start_iso(start), end=_day_start_iso(end + timedelta(days=1))
        )
        summary = aggregation.summarize_activities((a.type, a.status) for a in activities)

        by_model: list[dict[str, Any]] = []
        daily: list[dict[str, Any]] = []
        cost_total = 0.0
        if self._usage_repo is not None:
            rows = _rows_from_snapshots(await self._usage_repo.list_between(start.isoformat(), end.isoformat()))
            cost_total = sum(r.cost for r in rows)
            by_model = [
                {
                    "model": m.key,
                    "cost": aggregation.round_cents(m.cost),
                    "percent_of_total": aggregation.round_half_up(m.percent_of_total),
                }
                for m in aggregation.costs_by_model(rows)
            ]
            daily = [
                {"date": d.date, "cost": aggregation.round_cents(d.cost), "input": d.input, "output": d.output}
                for d in aggregation.daily_costs(rows)
            ]

        return {
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "generated_at": to_iso(self._clock()),
            "activity": {
                "total": summary.total,
                "by_type": summary.by_type,
                "by_status": summary.by_status,
                "success_rate": summary.success_rate,
            },
            "cost": {"total": aggregation.round_cents(cost_total), "by_model": by_model, "daily": daily},
        }

    async def save_report(self, token: str, payload: dict[str, Any], expires_in_days: int | None = None) -> str:
        """Persist ``payload`` under ``token``; returns the ISO expiry.

        Raises:
            ConflictError: If the token already exists.
        """
        now = self._clock()
        days = self._settings.report_expiry_days if expires_in_days is None else expires_in_days
        expires_at = to_iso(now + timedelta(days=days))
        await self._report_repo.create(
            SharedReport(token=token, payload=json.dumps(payload), created_at=to_iso(now), expires_at=expires_at)
        )
        return expires_at

    async def get_report(self, token: str) -> dict[str, Any] | None:
        """The saved payload while ``now <= expires_at``; None when unknown or expired."""
        report = await self._report_repo.get(token)
        if report is None:
            return None
        expires_at = parse_iso(report.expires_at)
        if expires_at is None or self._clock() > expires_at:
            return None
        try:
            return json.loads(report.payload)
        except ValueError:
            logger.warning("shared_report_corrupt", token=token)
            return None

    async def generate(self, start_date: str | None, end_date: str | None) -> dict[str, Any]:
        start, end = self.validate_range(start_date, end_date)
        payload = await self.build_payload(start, end)
        token = uuid.uuid4().hex
        expires_at = await self.save_report(token, payload)
        logger.info("report_generated", token=token, start_date=payload["start_date"], end_date=payload["end_date"])
        return {
            "report_id": token,
            "token": token,
            "expires_at": expires_at,
            "summary": {
                "start_date": payload["start_date"],
                "end_date": payload["end_date"],
                "activity_total": payload["activity"]["total"],
                "cost_total": payload["cost"]["total"],
            },
        }

    async def require_report(self, token: str | None) -> dict[str, Any]:
        if not token:
            raise ValidationFailedError("Missing token")
        payload = await self.get_report(token)
        if payload is None:
            raise NotFoundError("Report not found or expired")
        return payload

    async def export_pdf(self, token: str | None) -> tuple[str, bytes]:
        """Render a stored report; returns (attachment filename, PDF bytes)."""
        payload = await self.require_report(token)
        try:
            pdf = self._renderer.render(payload)
        except Exception as exc:
            logger.error("report_pdf_failed", token=token, error=str(exc))
            raise MissionControlError("Failed to generate PDF") from exc
        filename = f"mission-control-report-{payload['start_date']}-{payload['end_date']}.pdf"
        return filename, pdf


# ---------------------------------------------------------------------------
# Workflows
# ---------------------------------------------------------------------------


def _normalize_step(step: dict[str, Any]) -> dict[str, Any]:
    dependencies = step.get("dependencies")
    return {
        "id": step["id"] if isinstance(step.get("id"), str) and step["id"] else str(uuid.uuid4()),
        "label": step["label"] if isinstance(step.get("label"), str) else "Step",
        "agent_id": step["agent_id"] if isinstance(step.get("agent_id"), str) else "main",
        "execution": "parallel" if step.get("execution") == "parallel" else "sequential",
        # Dependencies are opaque ids; they are not checked against existing steps.
        "dependencies": [str(d) for d in dependencies] if isinstance(dependencies, list) else [],
    }


class WorkflowService:
    """CRUD over workflow definitions. There is no executor."""

    def __init__(self, store: IWorkflowStore, clock: Clock = utc_now) -> None:
        self._store = store
        self._clock = clock

    def list_workflows(self) -> list[dict[str, Any]]:
        return self._store.load()

    def get_workflow(self, workflow_id: str) -> dict[str, Any] | None:
        return next((w for w in self._store.load() if w.get("id") == workflow_id), None)

    def create_workflow(
        self, name: str | None, description: str | None = None, steps: list[dict[str, Any]] | None = None
    ) -> dict[str, Any]:
        """Append a new workflow with a fresh id; created_at equals updated_at."""
        if not name or not name.strip():
            raise ValidationFailedError("Missing or invalid name")
        now = to_iso(self._clock())
        workflow = {
            "id": str(uuid.uuid4()),
            "name": name.strip(),
            "description": (description or "").strip(),
            "created_at": now,
            "updated_at": now,
            "steps": [_normalize_step(s) for s in steps or []],
        }
        workflows = self._store.load()
        workflows.append(workflow)
        self._store.save(workflows)
        logger.info("workflow_created", workflow_id=workflow["id"], steps=len(workflow["steps"]))
        return workflow

    def update_workflow(self, workflow_id: str, updates: dict[str, Any]) -> dict[str, Any] | None:
        """Apply name/description/steps updates; only updated_at is re-stamped.

        Returns:
            The updated workflow, or None when the id does not exist.
        """
        workflows = self._store.load()
        for index, workflow in enumerate(workflows):
            if workflow.get("id") != workflow_id:
                continue
            updated = dict(workflow)
            if updates.get("name") is not None:
                name = str(updates["name"]).strip()
                if not name:
                    raise ValidationFailedError("Missing or invalid name")
                updated["name"] = name
            if updates.get("description") is not None:
                updated["description"] = str(updates["description"]).strip()
            if updates.get("steps") is not None:
                updated["steps"] = [_normalize_step(s) for s in updates["steps"]]
            updated["updated_at"] = to_iso(self._clock())
            workflows[index] = updated
            self._store.save(workflows)
            logger.info("workflow_updated", workflow_id=workflow_id)
            return updated
        return None

    def delete_workflow(self, workflow_id: str) -> bool:
        """Rewrite the collection without ``workflow_id``; False (and no write) when absent."""
        workflows = self._store.load()
        remaining = [w for w in workflows if w.get("id") != workflow_id]
        if len(remaining) == len(workflows):
            return False
        self._store.save(remaining)
        logger.info("workflow_deleted", workflow_id=workflow_id)
        return True

    def run_workflow(self, workflow_id: str) -> None:
        """Always fails: execution is not integrated with the agent runtime."""
        if self.get_workflow(workflow_id) is None:
            raise NotFoundError("Workflow not found")
        message = "Workflow execution is not yet integrated with OpenClaw. Define and save templates for now."
        raise NotImplementedYetError(
            "Not implemented",
            extra={"success": False, "message": message, "workflow_id": workflow_id},
        )


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


class ConfigService:
    """Masked reads and allowlisted single-path writes of openclaw.json."""

    def __init__(self, config_file: IConfigFile) -> None:
        self._file = config_file

    def _read(self) -> dict[str, Any]:
        if not self._file.exists():
            raise NotFoundError("Config file not found", extra={"path": self._file.path})
        try:
            return self._file.read()
        except (OSError, ValueError) as exc:
            logger.error("config_read_failed", path=self._file.path, error=str(exc))
            raise MissionControlError("Failed to read or parse config") from exc

    def get_config(self) -> dict[str, Any]:
        return {
            "config": mask_secrets(self._read()),
            "path": self._file.path,
            "allowlist": [entry.to_dict() for entry in CONFIG_ALLOWLIST],
        }

    def update_config(self, path: Any, value: Any) -> dict[str, Any]:
        """Write one allowlisted path.

        Returns:
            ``{"success": True, "restart_recommended": bool}``; the restart flag
            is advisory and never blocks the write.

        Raises:
            NotFoundError: The config file does not exist.
            ValidationFailedError: Missing path or a value failing the schema.
            PolicyViolationError: The path is not allowlisted.
        """
        if not self._file.exists():
            raise NotFoundError("Config file not found")
        if not isinstance(path, str) or not path.strip():
            raise ValidationFailedError("Missing or invalid path")
        path = path.strip()
        if not is_path_allowed(path):
            raise PolicyViolationError("Path not allowed for editing. Use only safe keys.")
        result = validate_value(path, value)
        if not result.ok:
            raise ValidationFailedError(result.error or "Invalid value")

        config = self._read()
        set_at_path(config, path, value)
        self._file.write(config)
        restart = affects_gateway(path)
        logger.info("config_updated", path=path, restart_recommended=restart)
        return {"success": True, "restart_recommended": restart}


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

NOTIFICATION_TYPES = ("info", "success", "warning", "error")
MAX_NOTIFICATIONS = 100


class NotificationService:
    def __init__(self, store: INotificationStore, clock: Clock = utc_now) -> None:
        self._store = store
        self._clock = clock

    def list_notifications(self, unread_only: bool = False, limit: int = 50) -> tuple[list[dict[str, Any]], int]:
        """Newest first, optionally unread only; also returns the overall unread count."""
        notifications = self._store.load()
        unread_count = sum(1 for n in notifications if not n.get("read"))
        if unread_only:
            notifications = [n for n in notifications if not n.get("read")]
        notifications.sort(key=lambda n: str(n.get("timestamp") or ""), reverse=True)
        return notifications[:limit], unread_count

    def create_notification(
        self,
        title: str | None,
        message: str | None,
        notification_type: str | None = None,
        link: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        if not title or not message:
            raise ValidationFailedError("Missing required fields: title, message")
        notification_type = notification_type or "info"
        if notification_type not in NOTIFICATION_TYPES:
            raise ValidationFailedError(f"Invalid type. Must be one of: {', '.join(NOTIFICATION_TYPES)}")

        notification = {
            "id": str(uuid.uuid4()),
            "timestamp": to_iso(self._clock()),
            "title": title,
            "message": message,
            "type": notification_type,
            "read": False,
            "link": link,
            "metadata": metadata,
        }
        notifications = self._store.load()
        notifications.insert(0, notification)
        self._store.save(notifications[:MAX_NOTIFICATIONS])
        logger.info("notification_created", notification_id=notification["id"], type=notification_type)
        return notification

    def set_read(self, notification_id: str, read: bool | None = None) -> dict[str, Any]:
        """Set the read flag, or toggle it when ``read`` is None."""
        notifications = self._store.load()
        for notification in notifications:
            if notification.get("id") == notification_id:
                notification["read"] = (not notification.get("read")) if read is None else read
                self._store.save(notifications)
                logger.info("notification_updated", notification_id=notification_id, read=notification["read"])
                return notification
        raise NotFoundError("Notification not found")

    def mark_all_read(self) -> int:
        notifications = self._store.load()
        for notification in notifications:
            notification["read"] = True
        self._store.save(notifications)
        logger.info("notifications_marked_read", updated=len(notifications))
        return len(notifications)

    def delete_notification(self, notification_id: str) -> None:
        notifications = self._store.load()
        remaining = [n for n in notifications if n.get("id") != notification_id]
        if len(remaining) == len(notifications):
            raise NotFoundError("Notification not found")
        self._store.save(remaining)
        logger.info("notification_deleted", notification_id=notification_id)

    def clear_read(self) -> int:
        notifications = self._store.load()
        remaining = [n for n in notifications if not n.get("read")]
        self._store.save(remaining)
        deleted = len(notifications) - len(remaining)
        logger.info("notifications_cleared", deleted=deleted)
        return deleted


# ---------------------------------------------------------------------------
# Skills
# ---------------------------------------------------------------------------

SKILL_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")


class SkillService:
    def __init__(self, store: IDisabledSkillsStore) -> None:
        self._store = store

    def list_disabled(self) -> list[str]:
        return self._store.load()

    def toggle(self, skill_id: Any, enabled: Any) -> dict[str, Any]:
        """Enable (remove from the disabled list) or disable (append). Idempotent."""
        if skill_id is None or not isinstance(enabled, bool):
            raise ValidationFailedError("Missing or invalid id or enabled")
        skill_id = str(skill_id).strip()
        if not SKILL_ID_PATTERN.match(skill_id):
            raise PolicyViolationError("Invalid skill id")

        disabled = self._store.load()
        currently_disabled = skill_id in disabled
        if enabled and currently_disabled:
            self._store.save([s for s in disabled if s != skill_id])
        elif not enabled and not currently_disabled:
            self._store.save([*disabled, skill_id])
        logger.info("skill_toggled", skill_id=skill_id, enabled=enabled)
        return {"id": skill_id, "enabled": enabled}


# ---------------------------------------------------------------------------
# Model playground
# ---------------------------------------------------------------------------


class PlaygroundService:
    """Multi-model prompt runs, saved experiments and share links."""

    def __init__(
        self,
        repo: IPlaygroundRepository,
        client: ICompletionClient,
        run_limiter: SlidingWindowLimiter,
        settings: Settings,
        clock: Clock = utc_now,
    ) -> None:
        self._repo = repo
        self._client = client
        self._limiter = run_limiter
        self._settings = settings
        self._clock = clock

    @staticmethod
    def list_models() -> list[dict[str, Any]]:
        return [asdict(entry) for entry in MODEL_PRICING]

    async def run(self, prompt: Any, model_ids: Any) -> list[dict[str, Any]]:
        """Run ``prompt`` against up to N catalog models concurrently.

        Raises:
            RateLimitedError: More runs than allowed in the trailing minute.
            ValidationFailedError: Empty or oversized prompt, or no usable model.
        """
        decision = self._limiter.try_acquire()
        if not decision.allowed:
            raise RateLimitedError("Too many runs. Try again in a minute.", decision.retry_after_seconds)

        prompt = prompt.strip() if isinstance(prompt, str) else ""
        requested = [m for m in model_ids if isinstance(m, str)] if isinstance(model_ids, list) else []
        requested = requested[: self._settings.playground_max_models]

        if not prompt:
            raise ValidationFailedError("Missing or empty prompt")
        max_chars = self._settings.playground_max_prompt_chars
        if len(prompt) > max_chars:
            raise ValidationFailedError(f"Prompt too long (max {max_chars} chars)")
        if not requested:
            raise ValidationFailedError("At least one model is required")

        allowed = catalog_ids()
        normalized = [m for m in (normalize_model_id(r) for r in requested) if m in allowed]
        if not normalized:
            raise ValidationFailedError("No valid model IDs; use models from the pricing catalog")

        results = await asyncio.gather(*(self._client.complete(model_id, prompt) for model_id in normalized))
        logger.info(
            "playground_run",
            models=normalized,
            errors=sum(1 for r in results if r.get("error")),
        )
        return list(results)

    async def save_experiment(self, prompt: Any, results: Any) -> PlaygroundExperiment:
        if not isinstance(prompt, str) or not prompt.strip():
            raise ValidationFailedError("Missing or empty prompt")
        if not isinstance(results, list):
            raise ValidationFailedError("results must be an array")
        experiment = PlaygroundExperiment(
            id=f"exp_{uuid.uuid4().hex[:16]}",
            prompt=prompt.strip(),
            results=results,
            created_at=to_iso(self._clock()),
        )
        persisted = await self._repo.create_experiment(experiment)
        logger.info("playground_experiment_saved", experiment_id=persisted.id)
        return persisted

    async def list_experiments(self, limit: int = 50) -> list[PlaygroundExperiment]:
        return await self._repo.list_experiments(limit)

    async def get_experiment(self, experiment_id: str) -> PlaygroundExperiment:
        experiment = await self._repo.get_experiment(experiment_id)
        if experiment is None:
            raise NotFoundError("Experiment not found")
        return experiment

    async def share(self, experiment_id: Any) -> dict[str, str]:
        experiment_id = experiment_id.strip() if isinstance(experiment_id, str) else ""
        if not experiment_id:
            raise ValidationFailedError("Missing experimentId")
        await self.get_experiment(experiment_id)

        now = self._clock()
        share = PlaygroundShare(
            token=f"p_{uuid.uuid4().hex[:20]}",
            experiment_id=experiment_id,
            created_at=to_iso(now),
            expires_at=to_iso(now + timedelta(days=self._settings.playground_share_expiry_days)),
        )
        await self._repo.create_share(share)
        logger.info("playground_experiment_shared", experiment_id=experiment_id, token=share.token)
        return {
            "token": share.token,
            "url": f"{self._settings.public_origin.rstrip('/')}/p/{share.token}",
            "expires_at": share.expires_at,
        }

    async def get_shared(self, token: str) -> PlaygroundExperiment:
        share = await self._repo.get_share(token)
        expires_at = parse_iso(share.expires_at) if share is not None else None
        if share is None or expires_at is None or self._clock() > expires_at:
            raise NotFoundError("Shared experiment not found or expired")
        return await self.get_experiment(share.experiment_id)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


class AuthService:
    """Single-password login guarded by a per-client failure limiter."""

    def __init__(self, limiter: LoginRateLimiter, settings: Settings) -> None:
        self._limiter = limiter
        self._settings = settings

    def login(self, client: str, password: Any) -> None:
        """Check ``password`` for ``client``.

        Raises:
            RateLimitedError: The client is locked out.
            AuthenticationError: Wrong password, or login is not configured.
        """
        decision = self._limiter.check(client)
        if not decision.allowed:
            logger.warning("login_locked_out", client=client, retry_after_seconds=decision.retry_after_seconds)
            raise RateLimitedError("Too many failed attempts. Try again later.", decision.retry_after_seconds)

        expected = self._settings.admin_password
        supplied = password if isinstance(password, str) else ""
        if expected and hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8")):
            self._limiter.clear(client)
            logger.info("login_succeeded", client=client)
            return

        self._limiter.record_failure(client)
        logger.warning("login_failed", client=client)
        raise AuthenticationError("Invalid password")

    def is_authenticated(self, cookie_value: str | None) -> bool:
        """True when the guard is disabled or the cookie matches the secret."""
        if not self._settings.auth_enabled:
            return True
        if not cookie_value:
            return False
        return hmac.compare_digest(cookie_value.encode("utf-8"), self._settings.auth_secret.encode("utf-8"))


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class HealthService:
    """Local readiness checks. Never raises; every problem is a check status."""

    def __init__(self, settings: Settings, usage_db_exists: bool, clock: Clock = utc_now) -> None:
        self._settings = settings
        self._usage_db_exists = usage_db_exists
        self._clock = clock

    def check(self) -> dict[str, Any]:
        data_dir = self._settings.data_dir
        checks = []

        if data_dir.is_dir() and os.access(data_dir, os.W_OK):
            checks.append({"name": "data_dir", "status": "up", "details": str(data_dir)})
        elif not data_dir.exists():
            checks.append({"name": "data_dir", "status": "degraded", "details": "not created yet"})
        else:
            checks.append({"name": "data_dir", "status": "down", "details": "not writable"})

        cli_path = shutil.which(self._settings.openclaw_bin)
        checks.append(
            {"name": "openclaw_cli", "status": "up" if cli_path else "down", "details": cli_path or "not found on PATH"}
        )

        config_path = self._settings.openclaw_config_path
        checks.append(
            {
                "name": "openclaw_config",
                "status": "up" if config_path.is_file() else "down",
                "details": str(config_path),
            }
        )

        checks.append(
            {
                "name": "usage_db",
                "status": "up" if self._usage_db_exists else "degraded",
                "details": "present" if self._usage_db_exists else "live fallback from CLI sessions",
            }
        )

        statuses = {c["status"] for c in checks}
        overall = "healthy" if statuses == {"up"} else ("degraded" if "down" not in statuses else "unhealthy")
        return {"status": overall, "checks": checks, "timestamp": to_iso(self._clock())}
