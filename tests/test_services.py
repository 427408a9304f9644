"""Service-layer tests for Mission Control.

Repositories are AsyncMock doubles; JSON stores run against tmp_path files.
"""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from mission_control.adapters.json_store import (
    ConfigFile,
    DisabledSkillsStore,
    NotificationStore,
    WorkflowStore,
)
from mission_control.core.models import Activity, PlaygroundExperiment, PlaygroundShare, SharedReport, UsageSnapshot
from mission_control.core.rate_limit import LoginRateLimiter, SlidingWindowLimiter
from mission_control.core.services import (
    ActivityService,
    AuthService,
    ConfigService,
    CostService,
    CronService,
    NotificationService,
    PlaygroundService,
    ReportService,
    SkillService,
    WorkflowService,
    format_schedule,
    parse_timeframe_days,
)
from mission_control.core.timeutil import to_iso
from mission_control.errors import (
    AuthenticationError,
    MissionControlError,
    NotFoundError,
    NotImplementedYetError,
    PolicyViolationError,
    RateLimitedError,
    ValidationFailedError,
)
from mission_control.settings import Settings
from tests.conftest import FakeCli


def _activity(type_: str, status: str, timestamp: str = "2026-02-25T10:00:00.000Z", duration_ms=None) -> Activity:
    return Activity(
        id=f"{type_}-{status}-{timestamp}",
        timestamp=timestamp,
        type=type_,
        description="d",
        status=status,
        duration_ms=duration_ms,
    )


def _snapshot(date: str, model: str, cost: float, agent: str = "main", hour: int = 10) -> UsageSnapshot:
    return UsageSnapshot(
        date=date, hour=hour, agent_id=agent, model=model, input_tokens=100, output_tokens=50, cost=cost
    )


# ---------------------------------------------------------------------------
# Activity log
# ---------------------------------------------------------------------------


class TestActivityService:
    """Tests for ActivityService."""

    @pytest.fixture
    def repo(self) -> AsyncMock:
        repo = AsyncMock()
        repo.create.side_effect = lambda activity: activity
        repo.prune_before.return_value = 0
        return repo

    @pytest.mark.asyncio
    async def test_log_activity_inserts_then_prunes(self, repo: AsyncMock, settings: Settings, now: datetime) -> None:
        service = ActivityService(repo, settings, lambda: now)
        activity = await service.log_activity("task", "did a thing", "success", tokens_used=12)

        assert activity.timestamp == "2026-02-26T12:00:00.000Z"
        assert activity.tokens_used == 12
        repo.create.assert_awaited_once()
        repo.prune_before.assert_awaited_once_with(to_iso(now - timedelta(days=30)))

    @pytest.mark.asyncio
    async def test_rejects_unknown_status(self, repo: AsyncMock, settings: Settings, now: datetime) -> None:
        service = ActivityService(repo, settings, lambda: now)
        with pytest.raises(ValidationFailedError):
            await service.log_activity("task", "x", "done")
        repo.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rejects_future_timestamp(self, repo: AsyncMock, settings: Settings, now: datetime) -> None:
        service = ActivityService(repo, settings, lambda: now)
        with pytest.raises(ValidationFailedError, match="future"):
            await service.log_activity("task", "x", "success", timestamp="2026-03-01T00:00:00Z")

    @pytest.mark.asyncio
    async def test_rejects_unparseable_timestamp(self, repo: AsyncMock, settings: Settings, now: datetime) -> None:
        service = ActivityService(repo, settings, lambda: now)
        with pytest.raises(ValidationFailedError):
            await service.log_activity("task", "x", "success", timestamp="yesterday")

    @pytest.mark.asyncio
    async def test_single_type_filter_expands_aliases(self, repo: AsyncMock, settings: Settings) -> None:
        repo.list_filtered.return_value = ([], 0)
        await ActivityService(repo, settings).list_activities(activity_type="cron", end_date="2026-02-25")

        kwargs = repo.list_filtered.await_args.kwargs
        assert set(kwargs["types"]) == {"cron", "cron_run"}
        assert kwargs["end"] == "2026-02-26T00:00:00.000Z"
        assert kwargs["newest_first"] is True

    @pytest.mark.asyncio
    async def test_comma_separated_types_match_exactly(self, repo: AsyncMock, settings: Settings) -> None:
        repo.list_filtered.return_value = ([], 0)
        await ActivityService(repo, settings).list_activities(activity_type="cron,file", sort="oldest", status="all")

        kwargs = repo.list_filtered.await_args.kwargs
        assert kwargs["types"] == ["cron", "file"]
        assert kwargs["status"] is None
        assert kwargs["newest_first"] is False

    @pytest.mark.asyncio
    async def test_analytics(self, repo: AsyncMock, settings: Settings, now: datetime) -> None:
        repo.list_all.return_value = [
            _activity("cron_run", "success", duration_ms=100),
            _activity("cron", "error", duration_ms=300),
            _activity("task", "success", "2026-02-26T11:00:00.000Z"),
            _activity("task", "pending", "2026-02-26T11:30:00.000Z"),
        ]
        result = await ActivityService(repo, settings, lambda: now).analytics()

        assert len(result["by_day"]) == 7
        assert result["by_day"][-1] == {"date": "2026-02-26", "count": 2}
        assert {entry["type"]: entry["count"] for entry in result["by_type"]} == {"cron": 2, "task": 2}
        assert result["success_rate"] == pytest.approx(50.0)
        assert result["average_response_time_ms"] == pytest.approx(200.0)
        assert sum(cell["count"] for cell in result["by_hour"]) == 4

    @pytest.mark.asyncio
    async def test_analytics_without_durations(self, repo: AsyncMock, settings: Settings, now: datetime) -> None:
        repo.list_all.return_value = []
        result = await ActivityService(repo, settings, lambda: now).analytics()
        assert result["average_response_time_ms"] is None
        assert result["success_rate"] == 0.0

    def test_csv_has_header_and_rows(self) -> None:
        text = ActivityService.activities_to_csv([_activity("task", "success")])
        lines = text.strip().splitlines()
        assert lines[0].startswith("id,timestamp,type")
        assert len(lines) == 2


# ---------------------------------------------------------------------------
# Costs
# ---------------------------------------------------------------------------


class TestCostService:
    """Tests for CostService."""

    def test_parse_timeframe(self) -> None:
        assert parse_timeframe_days("7d") == 7
        assert parse_timeframe_days("abc") == 30
        assert parse_timeframe_days(None) == 30
        assert parse_timeframe_days("0d") == 30

    def test_timeframe_is_capped(self) -> None:
        assert parse_timeframe_days("999999999d") == 3650

    @pytest.mark.asyncio
    async def test_persisted_overview(self, settings: Settings, now: datetime) -> None:
        repo = AsyncMock()
        repo.sum_cost_between.return_value = 10.0
        repo.list_between.return_value = [
            _snapshot("2026-02-26", "anthropic/claude-opus-4-6", 3.0, hour=9),
            _snapshot("2026-02-25", "anthropic/claude-sonnet-4-5", 1.0, agent="research"),
        ]
        overview = await CostService(repo, FakeCli(), settings, lambda: now).overview(7)

        assert overview.projected == pytest.approx(10.0 / 26 * 28)
        assert [b.key for b in overview.by_model] == ["anthropic/claude-opus-4-6", "anthropic/claude-sonnet-4-5"]
        assert [d.date for d in overview.daily] == ["02-25", "02-26"]
        assert [h.hour for h in overview.hourly] == ["09:00"]
        assert overview.message is None
        repo.list_between.assert_awaited_with("2026-02-20", "2026-02-26")

    @pytest.mark.asyncio
    async def test_huge_timeframe_overview(self, settings: Settings, now: datetime) -> None:
        repo = AsyncMock()
        repo.sum_cost_between.return_value = 0.0
        repo.list_between.return_value = []
        days = parse_timeframe_days("999999999d")
        overview = await CostService(repo, FakeCli(), settings, lambda: now).overview(days)
        assert overview.daily == []
        start, end = repo.list_between.await_args.args
        assert end == "2026-02-26"
        assert start == (now.date() - timedelta(days=3649)).isoformat()

    @pytest.mark.asyncio
    async def test_live_fallback_without_usage_db(self, settings: Settings, now: datetime) -> None:
        cli = FakeCli(sessions=[{"key": "agent:main:main", "model": "sonnet", "inputTokens": 1_000_000}])
        overview = await CostService(None, cli, settings, lambda: now).overview()
        assert overview.today == pytest.approx(3.0)
        assert "Live fallback" in overview.message

    @pytest.mark.asyncio
    async def test_zero_payload_when_nothing_available(self, settings: Settings, now: datetime) -> None:
        overview = await CostService(None, FakeCli(sessions=None), settings, lambda: now).overview()
        assert overview.today == 0.0
        assert overview.budget == settings.budget_usd
        assert overview.message

    @pytest.mark.asyncio
    async def test_model_shares_empty_without_usage_db(self, settings: Settings) -> None:
        assert await CostService(None, FakeCli(sessions=[]), settings).model_shares() == []


# ---------------------------------------------------------------------------
# Cron
# ---------------------------------------------------------------------------


class TestCronService:
    @pytest.mark.asyncio
    async def test_maps_jobs(self) -> None:
        cli = FakeCli(
            jobs=[
                {
                    "id": "j1",
                    "name": "digest",
                    "schedule": {"kind": "cron", "expr": "0 9 * * *", "tz": "Europe/Berlin"},
                    "payload": {"kind": "agentTurn", "message": "Summarize the inbox"},
                    "state": {"nextRunAtMs": 1772096400000},
                }
            ]
        )
        [job] = await CronService(cli).list_jobs()
        assert job["enabled"] is True
        assert job["agent_id"] == "main"
        assert job["schedule_display"] == "0 9 * * * (Europe/Berlin)"
        assert job["timezone"] == "Europe/Berlin"
        assert job["description"] == "Summarize the inbox"
        assert job["next_run"].endswith("Z")
        assert job["last_run"] is None

    def test_format_schedule(self) -> None:
        assert format_schedule({"kind": "every", "everyMs": 1_800_000}) == "Every 30m"
        assert format_schedule({"kind": "every", "everyMs": 7_200_000}) == "Every 2h"
        assert format_schedule(None) == "Unknown"


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


class TestReportService:
    """Tests for report generation and expiry."""

    def _service(self, settings: Settings, clock, report_repo=None, usage_repo=None, activity_repo=None):
        return ReportService(
            activity_repo=activity_repo or AsyncMock(),
            usage_repo=usage_repo,
            report_repo=report_repo or AsyncMock(),
            renderer=MagicMock(),
            settings=settings,
            clock=clock,
        )

    def test_validate_range(self) -> None:
        with pytest.raises(ValidationFailedError):
            ReportService.validate_range(None, "2026-02-01")
        with pytest.raises(ValidationFailedError):
            ReportService.validate_range("2026-02-10", "2026-02-01")
        with pytest.raises(ValidationFailedError):
            ReportService.validate_range("02/01/2026", "2026-02-10")

    @pytest.mark.asyncio
    async def test_get_report_respects_expiry(self, settings: Settings, now: datetime) -> None:
        payload = {"start_date": "2026-02-01", "end_date": "2026-02-07"}
        stored = SharedReport(
            token="t",
            payload=json.dumps(payload),
            created_at=to_iso(now),
            expires_at=to_iso(now + timedelta(days=30)),
        )
        report_repo = AsyncMock()
        report_repo.get.return_value = stored

        before = self._service(settings, lambda: now + timedelta(days=29), report_repo)
        after = self._service(settings, lambda: now + timedelta(days=31), report_repo)
        assert await before.get_report("t") == payload
        assert await after.get_report("t") is None

    @pytest.mark.asyncio
    async def test_unknown_token_is_not_found(self, settings: Settings, now: datetime) -> None:
        report_repo = AsyncMock()
        report_repo.get.return_value = None
        service = self._service(settings, lambda: now, report_repo)
        assert await service.get_report("missing") is None
        with pytest.raises(NotFoundError):
            await service.require_report("missing")

    @pytest.mark.asyncio
    async def test_build_payload_rounding(self, settings: Settings, now: datetime) -> None:
        activity_repo = AsyncMock()
        activity_repo.list_all.return_value = [
            _activity("task", "success"),
            _activity("task", "success"),
            _activity("cron", "error"),
            _activity("cron", "pending"),
        ]
        usage_repo = AsyncMock()
        usage_repo.list_between.return_value = [
            _snapshot("2026-02-02", "a", 1.234),
            _snapshot("2026-02-01", "b", 2.0),
        ]
        service = self._service(settings, lambda: now, usage_repo=usage_repo, activity_repo=activity_repo)
        start, end = ReportService.validate_range("2026-02-01", "2026-02-07")
        payload = await service.build_payload(start, end)

        assert activity_repo.list_all.await_args.kwargs == {
            "start": "2026-02-01T00:00:00.000Z",
            "end": "2026-02-08T00:00:00.000Z",
        }
        assert payload["activity"]["total"] == 4
        assert payload["activity"]["success_rate"] == 67
        assert payload["cost"]["total"] == 3.23
        assert payload["cost"]["by_model"][0] == {"model": "b", "cost": 2.0, "percent_of_total": 62}
        assert [d["date"] for d in payload["cost"]["daily"]] == ["02-01", "02-02"]

    @pytest.mark.asyncio
    async def test_generate_saves_with_expiry(self, settings: Settings, now: datetime) -> None:
        report_repo = AsyncMock()
        activity_repo = AsyncMock()
        activity_repo.list_all.return_value = []
        service = self._service(settings, lambda: now, report_repo, activity_repo=activity_repo)
        result = await service.generate("2026-02-01", "2026-02-07")

        assert len(result["token"]) == 32
        assert result["report_id"] == result["token"]
        assert result["expires_at"] == "2026-03-28T12:00:00.000Z"
        saved = report_repo.create.await_args.args[0]
        assert json.loads(saved.payload)["start_date"] == "2026-02-01"

    @pytest.mark.asyncio
    async def test_export_pdf_filename(self, settings: Settings, now: datetime) -> None:
        report_repo = AsyncMock()
        report_repo.get.return_value = SharedReport(
            token="t",
            payload=json.dumps({"start_date": "2026-02-01", "end_date": "2026-02-07"}),
            created_at=to_iso(now),
            expires_at=to_iso(now + timedelta(days=1)),
        )
        service = self._service(settings, lambda: now, report_repo)
        service._renderer.render.return_value = b"%PDF-1.3"
        filename, pdf = await service.export_pdf("t")
        assert filename == "mission-control-report-2026-02-01-2026-02-07.pdf"
        assert pdf.startswith(b"%PDF")

    @pytest.mark.asyncio
    async def test_export_pdf_render_failure(self, settings: Settings, now: datetime) -> None:
        report_repo = AsyncMock()
        report_repo.get.return_value = SharedReport(
            token="t",
            payload=json.dumps({"start_date": "2026-02-01", "end_date": "2026-02-07"}),
            created_at=to_iso(now),
            expires_at=to_iso(now + timedelta(days=1)),
        )
        service = self._service(settings, lambda: now, report_repo)
        service._renderer.render.side_effect = RuntimeError("boom")
        with pytest.raises(MissionControlError) as exc_info:
            await service.export_pdf("t")
        assert exc_info.value.status_code == 500


# ---------------------------------------------------------------------------
# Workflows
# ---------------------------------------------------------------------------


class TestWorkflowService:
    """Tests for workflow CRUD over the JSON store."""

    @pytest.fixture
    def store(self, tmp_path: Path) -> WorkflowStore:
        return WorkflowStore(tmp_path / "workflows.json")

    def test_ids_are_unique(self, store: WorkflowStore) -> None:
        service = WorkflowService(store)
        ids = {service.create_workflow(f"wf {i}")["id"] for i in range(5)}
        assert len(ids) == 5

    def test_create_stamps_equal_times_and_normalizes_steps(self, store: WorkflowStore, now: datetime) -> None:
        service = WorkflowService(store, lambda: now)
        workflow = service.create_workflow(
            "Nightly", steps=[{"label": "fetch", "execution": "parallel", "dependencies": ["ghost"]}, {}]
        )
        assert workflow["created_at"] == workflow["updated_at"]
        first, second = workflow["steps"]
        assert first["execution"] == "parallel"
        assert first["dependencies"] == ["ghost"]
        assert second["label"] == "Step"
        assert second["agent_id"] == "main"
        assert second["execution"] == "sequential"

    def test_update_preserves_created_at(self, store: WorkflowStore, now: datetime) -> None:
        created = WorkflowService(store, lambda: now).create_workflow("A")
        later = WorkflowService(store, lambda: now + timedelta(hours=1))
        updated = later.update_workflow(created["id"], {"name": "B"})

        assert updated["id"] == created["id"]
        assert updated["name"] == "B"
        assert updated["created_at"] == created["created_at"]
        assert updated["updated_at"] != created["updated_at"]

    def test_update_missing_returns_none(self, store: WorkflowStore) -> None:
        assert WorkflowService(store).update_workflow("nope", {"name": "x"}) is None

    def test_delete_missing_leaves_store_unchanged(self, store: WorkflowStore) -> None:
        service = WorkflowService(store)
        service.create_workflow("keep")
        before = store.load()
        assert service.delete_workflow("nope") is False
        assert store.load() == before

    def test_delete_existing(self, store: WorkflowStore) -> None:
        service = WorkflowService(store)
        workflow = service.create_workflow("gone")
        assert service.delete_workflow(workflow["id"]) is True
        assert service.list_workflows() == []

    def test_create_requires_name(self, store: WorkflowStore) -> None:
        with pytest.raises(ValidationFailedError):
            WorkflowService(store).create_workflow("  ")

    def test_run_is_not_implemented(self, store: WorkflowStore) -> None:
        service = WorkflowService(store)
        workflow = service.create_workflow("wf")
        with pytest.raises(NotImplementedYetError) as exc_info:
            service.run_workflow(workflow["id"])
        assert exc_info.value.extra["success"] is False
        assert exc_info.value.extra["workflow_id"] == workflow["id"]
        with pytest.raises(NotFoundError):
            service.run_workflow("missing")


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


class TestConfigService:
    """Tests for masked reads and allowlisted writes."""

    @pytest.fixture
    def config_path(self, tmp_path: Path) -> Path:
        path = tmp_path / "openclaw.json"
        path.write_text(json.dumps({"gateway": {"port": 18789, "auth": {"token": "t"}}, "model": "opus"}))
        return path

    def test_get_masks_secrets(self, config_path: Path) -> None:
        result = ConfigService(ConfigFile(config_path)).get_config()
        assert result["config"]["gateway"]["auth"] == "[REDACTED]"
        assert result["config"]["gateway"]["port"] == 18789
        assert any(entry["path"] == "gateway.port" for entry in result["allowlist"])

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(NotFoundError):
            ConfigService(ConfigFile(tmp_path / "absent.json")).get_config()

    def test_unparseable_file(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(MissionControlError) as exc_info:
            ConfigService(ConfigFile(path)).get_config()
        assert exc_info.value.status_code == 500

    def test_update_writes_and_recommends_restart(self, config_path: Path) -> None:
        result = ConfigService(ConfigFile(config_path)).update_config(" gateway.port ", 8080)
        assert result == {"success": True, "restart_recommended": True}
        written = json.loads(config_path.read_text())
        assert written["gateway"]["port"] == 8080
        assert written["gateway"]["auth"] == {"token": "t"}

    def test_update_rejects_disallowed_path(self, config_path: Path) -> None:
        with pytest.raises(PolicyViolationError):
            ConfigService(ConfigFile(config_path)).update_config("gateway.auth.token", "x")

    def test_update_rejects_invalid_value(self, config_path: Path) -> None:
        with pytest.raises(ValidationFailedError, match="65535"):
            ConfigService(ConfigFile(config_path)).update_config("gateway.port", 70000)
        assert json.loads(config_path.read_text())["gateway"]["port"] == 18789


# ---------------------------------------------------------------------------
# Notifications and skills
# ---------------------------------------------------------------------------


class TestNotificationService:
    @pytest.fixture
    def service(self, tmp_path: Path, now: datetime) -> NotificationService:
        return NotificationService(NotificationStore(tmp_path / "notifications.json"), lambda: now)

    def test_create_and_list(self, service: NotificationService) -> None:
        service.create_notification("Hi", "there")
        notifications, unread = service.list_notifications()
        assert unread == 1
        assert notifications[0]["type"] == "info"
        assert notifications[0]["read"] is False

    def test_invalid_type(self, service: NotificationService) -> None:
        with pytest.raises(ValidationFailedError):
            service.create_notification("Hi", "there", notification_type="loud")

    def test_capped_at_one_hundred(self, service: NotificationService) -> None:
        for i in range(105):
            service.create_notification(f"n{i}", "m")
        notifications, _ = service.list_notifications(limit=1000)
        assert len(notifications) == 100

    def test_toggle_mark_all_and_clear(self, service: NotificationService) -> None:
        first = service.create_notification("a", "m")
        service.create_notification("b", "m")
        assert service.set_read(first["id"])["read"] is True
        assert service.set_read(first["id"])["read"] is False
        assert service.mark_all_read() == 2
        assert service.list_notifications(unread_only=True) == ([], 0)
        assert service.clear_read() == 2

    def test_missing_ids(self, service: NotificationService) -> None:
        with pytest.raises(NotFoundError):
            service.set_read("nope", True)
        with pytest.raises(NotFoundError):
            service.delete_notification("nope")


class TestSkillService:
    def test_disable_then_enable_is_idempotent(self, tmp_path: Path) -> None:
        store = DisabledSkillsStore(tmp_path / "disabled-skills.json")
        service = SkillService(store)
        service.toggle("weather", False)
        service.toggle("weather", False)
        assert service.list_disabled() == ["weather"]
        service.toggle("weather", True)
        assert service.list_disabled() == []

    def test_rejects_traversal_ids(self, tmp_path: Path) -> None:
        service = SkillService(DisabledSkillsStore(tmp_path / "disabled-skills.json"))
        with pytest.raises(PolicyViolationError):
            service.toggle("../etc", False)

    def test_requires_boolean_enabled(self, tmp_path: Path) -> None:
        service = SkillService(DisabledSkillsStore(tmp_path / "disabled-skills.json"))
        with pytest.raises(ValidationFailedError):
            service.toggle("weather", "yes")


# ---------------------------------------------------------------------------
# Playground
# ---------------------------------------------------------------------------


class TestPlaygroundService:
    """Tests for multi-model runs, experiments and share links."""

    @pytest.fixture
    def client(self) -> AsyncMock:
        client = AsyncMock()
        client.complete.side_effect = lambda model_id, prompt: {
            "model_id": model_id,
            "text": "ok",
            "input_tokens": 1,
            "output_tokens": 1,
            "cost": 0.0,
            "elapsed_ms": 5,
        }
        return client

    def _service(self, settings, now, client, repo=None, limit=10) -> PlaygroundService:
        limiter = SlidingWindowLimiter(lambda: now, limit=limit)
        return PlaygroundService(repo or AsyncMock(), client, limiter, settings, lambda: now)

    @pytest.mark.asyncio
    async def test_run_normalizes_and_filters_models(self, settings, now, client) -> None:
        service = self._service(settings, now, client)
        results = await service.run("  hello ", ["opus", "not-a-model", 42])
        assert [r["model_id"] for r in results] == ["anthropic/claude-opus-4-6"]
        client.complete.assert_awaited_once_with("anthropic/claude-opus-4-6", "hello")

    @pytest.mark.asyncio
    async def test_run_caps_model_count(self, settings, now, client) -> None:
        service = self._service(settings, now, client)
        await service.run("p", ["opus", "sonnet", "haiku", "gemini-flash", "gemini-pro", "gpt-mini", "minimax"])
        assert client.complete.await_count == settings.playground_max_models

    @pytest.mark.asyncio
    async def test_run_validation(self, settings, now, client) -> None:
        service = self._service(settings, now, client)
        with pytest.raises(ValidationFailedError):
            await service.run("   ", ["opus"])
        with pytest.raises(ValidationFailedError):
            await service.run("p", ["unknown-only"])
        with pytest.raises(ValidationFailedError):
            await service.run("x" * (settings.playground_max_prompt_chars + 1), ["opus"])

    @pytest.mark.asyncio
    async def test_run_is_throttled(self, settings, now, client) -> None:
        service = self._service(settings, now, client, limit=1)
        await service.run("p", ["opus"])
        with pytest.raises(RateLimitedError) as exc_info:
            await service.run("p", ["opus"])
        assert exc_info.value.headers() == {"Retry-After": "60"}

    @pytest.mark.asyncio
    async def test_share_and_expiry(self, settings, now, client) -> None:
        experiment = PlaygroundExperiment(id="exp_1", prompt="p", results=[], created_at=to_iso(now))
        repo = AsyncMock()
        repo.get_experiment.return_value = experiment
        service = self._service(settings, now, client, repo)

        shared = await service.share("exp_1")
        assert shared["token"].startswith("p_")
        assert shared["url"] == f"http://localhost:8000/p/{shared['token']}"

        repo.get_share.return_value = PlaygroundShare(
            token=shared["token"], experiment_id="exp_1", created_at=to_iso(now), expires_at=shared["expires_at"]
        )
        assert await service.get_shared(shared["token"]) is experiment

        expired = PlaygroundService(repo, client, SlidingWindowLimiter(), settings, lambda: now + timedelta(days=31))
        with pytest.raises(NotFoundError):
            await expired.get_shared(shared["token"])

    @pytest.mark.asyncio
    async def test_share_unknown_experiment(self, settings, now, client) -> None:
        repo = AsyncMock()
        repo.get_experiment.return_value = None
        with pytest.raises(NotFoundError):
            await self._service(settings, now, client, repo).share("exp_missing")


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class TestAuthService:
    def test_login_success_clears_failures(self, settings: Settings, now: datetime) -> None:
        settings.admin_password = "hunter2"
        limiter = LoginRateLimiter(lambda: now)
        service = AuthService(limiter, settings)
        with pytest.raises(AuthenticationError):
            service.login("c", "wrong")
        assert len(limiter) == 1
        service.login("c", "hunter2")
        assert len(limiter) == 0

    def test_lockout_after_five_failures(self, settings: Settings, now: datetime) -> None:
        settings.admin_password = "hunter2"
        service = AuthService(LoginRateLimiter(lambda: now), settings)
        for _ in range(5):
            with pytest.raises(AuthenticationError):
                service.login("c", "wrong")
        with pytest.raises(RateLimitedError):
            service.login("c", "hunter2")

    def test_empty_password_disables_login(self, settings: Settings, now: datetime) -> None:
        service = AuthService(LoginRateLimiter(lambda: now), settings)
        with pytest.raises(AuthenticationError):
            service.login("c", "")

    def test_guard_disabled_without_secret(self, settings: Settings, now: datetime) -> None:
        assert AuthService(LoginRateLimiter(lambda: now), settings).is_authenticated(None) is True

    def test_guard_checks_cookie(self, settings: Settings, now: datetime) -> None:
        settings.auth_secret = "s3cret"
        service = AuthService(LoginRateLimiter(lambda: now), settings)
        assert service.is_authenticated("s3cret") is True
        assert service.is_authenticated("nope") is False
        assert service.is_authenticated(None) is False
