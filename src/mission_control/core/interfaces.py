"""Abstract interfaces (Protocol classes) for the Mission Control service.

Services depend on these interfaces, not on concrete implementations, so
tests can substitute doubles without SQLite, the openclaw CLI or network
access.
"""

from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from mission_control.core.models import (
    Activity,
    PlaygroundExperiment,
    PlaygroundShare,
    SharedReport,
    UsageSnapshot,
)


# ---------------------------------------------------------------------------
# Repositories (SQLite)
# ---------------------------------------------------------------------------


@runtime_checkable
class IActivityRepository(Protocol):
    """Repository interface for the activity log."""

    async def create(self, activity: Activity) -> Activity:
        """Persist a new activity."""
        ...

    async def prune_before(self, cutoff: str) -> int:
        """Delete activities older than ``cutoff`` (ISO). Returns rows removed."""
        ...

    async def list_filtered(
        self,
        types: list[str] | None = None,
        status: str | None = None,
        agent: str | None = None,
        start: str | None = None,
        end: str | None = None,
        newest_first: bool = True,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Activity], int]:
        """List one page of activities plus the total matching count."""
        ...

    async def count(self, since: str | None = None) -> int:
        """Count activities, optionally only those at or after ``since``."""
        ...

    async def count_by(self, column: str) -> dict[str, int]:
        """Count activities grouped by ``type`` or ``status``."""
        ...

    async def list_all(self, start: str | None = None, end: str | None = None) -> list[Activity]:
        """All activities in an optional timestamp window, oldest first."""
        ...


@runtime_checkable
class IUsageSnapshotRepository(Protocol):
    """Read-only access to the usage collector's snapshot table."""

    async def list_between(self, start_date: str, end_date: str) -> list[UsageSnapshot]:
        """Snapshots with ``start_date <= date <= end_date`` (YYYY-MM-DD)."""
        ...

    async def sum_cost_between(self, start_date: str, end_date: str) -> float:
        """Total cost of snapshots in the inclusive date range."""
        ...


@runtime_checkable
class IDismissalRepository(Protocol):
    """Repository interface for suggestion dismissals."""

    async def record(self, suggestion_id: str, applied: bool, dismissed_at: str) -> None:
        """Insert or refresh a dismissal for ``suggestion_id``."""
        ...

    async def list_ids(self) -> set[str]:
        """Every dismissed suggestion id."""
        ...


@runtime_checkable
class ISharedReportRepository(Protocol):
    """Repository interface for shared report snapshots."""

    async def create(self, report: SharedReport) -> SharedReport:
        """Insert a report. A token collision raises ConflictError."""
        ...

    async def get(self, token: str) -> SharedReport | None:
        """Retrieve a report by token regardless of expiry."""
        ...


@runtime_checkable
class IPlaygroundRepository(Protocol):
    """Repository interface for playground experiments and share tokens."""

    async def create_experiment(self, experiment: PlaygroundExperiment) -> PlaygroundExperiment:
        ...

    async def get_experiment(self, experiment_id: str) -> PlaygroundExperiment | None:
        ...

    async def list_experiments(self, limit: int = 50) -> list[PlaygroundExperiment]:
        """Newest experiments first."""
        ...

    async def create_share(self, share: PlaygroundShare) -> PlaygroundShare:
        ...

    async def get_share(self, token: str) -> PlaygroundShare | None:
        ...


# ---------------------------------------------------------------------------
# JSON file stores
# ---------------------------------------------------------------------------


@runtime_checkable
class IWorkflowStore(Protocol):
    """Whole-file workflow collection (read-modify-write, last write wins)."""

    def load(self) -> list[dict[str, Any]]:
        ...

    def save(self, workflows: list[dict[str, Any]]) -> None:
        ...


@runtime_checkable
class INotificationStore(Protocol):
    """Whole-file notification list, newest first."""

    def load(self) -> list[dict[str, Any]]:
        ...

    def save(self, notifications: list[dict[str, Any]]) -> None:
        ...


@runtime_checkable
class IDisabledSkillsStore(Protocol):
    def load(self) -> list[str]:
        ...

    def save(self, disabled: list[str]) -> None:
        ...


@runtime_checkable
class IConfigFile(Protocol):
    """The agent runtime configuration file (openclaw.json)."""

    @property
    def path(self) -> str:
        ...

    def exists(self) -> bool:
        ...

    def read(self) -> dict[str, Any]:
        """Parse the file. Raises ValueError when it is not a JSON object."""
        ...

    def write(self, config: dict[str, Any]) -> None:
        ...


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


@runtime_checkable
class IOpenClawCli(Protocol):
    """The external ``openclaw`` CLI. Failures yield empty results, never errors."""

    async def sessions_list(self) -> list[dict[str, Any]] | None:
        """Live sessions, or None when the CLI is unavailable."""
        ...

    async def cron_list(self) -> list[dict[str, Any]]:
        """Raw cron job records (including disabled jobs)."""
        ...


@runtime_checkable
class IAgentDirectory(Protocol):
    async def list_agents(self, now: datetime) -> list[dict[str, Any]]:
        """Configured agents with live session counts and last activity."""
        ...


@runtime_checkable
class ICompletionClient(Protocol):
    """Chat-completion provider used by the model playground."""

    async def complete(self, model_id: str, prompt: str) -> dict[str, Any]:
        """Run one completion. Failures are reported in the result's ``error`` field."""
        ...


@runtime_checkable
class IReportRenderer(Protocol):
    def render(self, payload: dict[str, Any]) -> bytes:
        """Render a report payload to PDF bytes."""
        ...
