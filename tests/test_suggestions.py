"""Tests for the rule-based suggestions engine."""

from datetime import datetime, timedelta, timezone

from mission_control.core.suggestions import (
    AgentRef,
    CronJobRef,
    ModelCostShare,
    SuggestionsContext,
    filter_dismissed,
    run_suggestions,
)

NOW = datetime(2026, 2, 26, 12, tzinfo=timezone.utc)


def _context(**kwargs) -> SuggestionsContext:
    return SuggestionsContext(now=NOW, zone=timezone.utc, **kwargs)


def _ids(context: SuggestionsContext) -> list[str]:
    return [s.id for s in run_suggestions(context)]


class TestCostConcentration:
    """Tests for the dominant-model rule."""

    def test_dominant_model_yields_one_suggestion(self) -> None:
        context = _context(costs_by_model=[ModelCostShare("A", 7.0, 70), ModelCostShare("B", 3.0, 30)])
        suggestions = run_suggestions(context)
        matching = [s for s in suggestions if s.id == "model-a-dominant"]
        assert len(matching) == 1
        assert "B" in matching[0].description
        assert matching[0].action_type == "open_costs"

    def test_below_threshold_is_silent(self) -> None:
        context = _context(costs_by_model=[ModelCostShare("A", 5.0, 50), ModelCostShare("B", 5.0, 50)])
        assert _ids(context) == []

    def test_single_model_has_no_alternative(self) -> None:
        assert _ids(_context(costs_by_model=[ModelCostShare("A", 1.0, 100)])) == []

    def test_alternative_must_differ_beyond_case(self) -> None:
        context = _context(costs_by_model=[ModelCostShare("Opus", 7.0, 70), ModelCostShare("opus", 3.0, 30)])
        assert _ids(context) == []

    def test_half_percentage_rounds_up_in_description(self) -> None:
        context = _context(costs_by_model=[ModelCostShare("A", 7.25, 72.5), ModelCostShare("B", 2.75, 27.5)])
        assert "73%" in run_suggestions(context)[0].description


class TestDismissalFiltering:
    def test_engine_ignores_dismissals_and_caller_filters(self) -> None:
        context = _context(costs_by_model=[ModelCostShare("A", 7.0, 70), ModelCostShare("B", 3.0, 30)])
        suggestions = run_suggestions(context)
        assert "model-a-dominant" in [s.id for s in suggestions]
        assert filter_dismissed(suggestions, {"model-a-dominant"}) == []
        assert "model-a-dominant" in [s.id for s in run_suggestions(context)]


class TestCronClustering:
    def test_two_jobs_in_same_hour(self) -> None:
        jobs = [
            CronJobRef("1", "a", True, "2026-02-26T09:05:00.000Z"),
            CronJobRef("2", "b", True, "2026-02-26T09:40:00.000Z"),
        ]
        assert _ids(_context(cron_jobs=jobs)) == ["cron-peak-hour-9"]

    def test_disabled_jobs_do_not_count(self) -> None:
        jobs = [
            CronJobRef("1", "a", True, "2026-02-26T09:05:00.000Z"),
            CronJobRef("2", "b", False, "2026-02-26T09:40:00.000Z"),
        ]
        assert _ids(_context(cron_jobs=jobs)) == []

    def test_first_qualifying_hour_wins(self) -> None:
        jobs = [
            CronJobRef("1", "a", True, "2026-02-26T09:05:00.000Z"),
            CronJobRef("2", "b", True, "2026-02-26T09:40:00.000Z"),
            CronJobRef("3", "c", True, "2026-02-26T14:00:00.000Z"),
            CronJobRef("4", "d", True, "2026-02-26T14:30:00.000Z"),
        ]
        assert _ids(_context(cron_jobs=jobs)) == ["cron-peak-hour-9"]


class TestHeartbeatGap:
    def test_stale_main_agent_with_active_cron(self) -> None:
        context = _context(
            agents=[AgentRef("main", "2026-02-26T10:00:00.000Z")],
            cron_jobs=[CronJobRef("1", "a", True, None)],
        )
        assert _ids(context) == ["heartbeat-gap"]

    def test_recent_activity_is_fine(self) -> None:
        recent = (NOW - timedelta(minutes=30)).isoformat()
        context = _context(agents=[AgentRef("main", recent)], cron_jobs=[CronJobRef("1", "a", True, None)])
        assert _ids(context) == []

    def test_no_enabled_cron_is_fine(self) -> None:
        context = _context(
            agents=[AgentRef("main", "2026-02-26T01:00:00.000Z")],
            cron_jobs=[CronJobRef("1", "a", False, None)],
        )
        assert _ids(context) == []


class TestPeakHour:
    def test_busy_hour_across_weekdays(self) -> None:
        cells = [{"hour": 14, "day": 1, "count": 6}, {"hour": 14, "day": 2, "count": 5}, {"hour": 3, "day": 1, "count": 2}]
        assert _ids(_context(analytics_by_hour=cells)) == ["schedule-peak-14"]

    def test_quiet_history_is_silent(self) -> None:
        assert _ids(_context(analytics_by_hour=[{"hour": 1, "day": 0, "count": 9}])) == []
