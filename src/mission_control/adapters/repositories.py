"""SQLAlchemy repositories for the Mission Control service.

All repositories extend BaseRepository and implement the interfaces in
core/interfaces.py. Each takes a session bound to the SQLite file that
owns its table. Timestamp windows are half-open: ``start`` inclusive,
``end`` exclusive, compared as UTC ISO strings.
"""

from sqlalchemy import Select, delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mission_control.core.models import (
    Activity,
    Dismissal,
    PlaygroundExperiment,
    PlaygroundShare,
    SharedReport,
    UsageSnapshot,
)
from mission_control.database import BaseRepository
from mission_control.errors import ConflictError
from mission_control.observability import get_logger

logger = get_logger(__name__)


class ActivityRepository(BaseRepository[Activity]):
    """Repository for the activities table (activities.db)."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize with an async database session."""
        super().__init__(session, Activity)

    async def prune_before(self, cutoff: str) -> int:
        """Delete activities with a timestamp earlier than ``cutoff``.

        Args:
            cutoff: UTC ISO timestamp; strictly older rows are removed.

        Returns:
            Number of rows deleted.
        """
        result = await self._session.execute(delete(Activity).where(Activity.timestamp < cutoff))
        return int(result.rowcount or 0)

    def _filtered(
        self,
        query: Select,
        types: list[str] | None,
        status: str | None,
        agent: str | None,
        start: str | None,
        end: str | None,
    ) -> Select:
        if types:
            query = query.where(Activity.type.in_(types))
        if status:
            query = query.where(Activity.status == status)
        if agent:
            query = query.where(Activity.agent == agent)
        if start:
            query = query.where(Activity.timestamp >= start)
        if end:
            query = query.where(Activity.timestamp < end)
        return query

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
        """List one page of activities matching every given filter.

        Args:
            types: Match any of these activity types.
            status: Exact status match.
            agent: Exact agent match.
            start: Earliest timestamp (inclusive).
            end: Latest timestamp (exclusive).
            newest_first: Sort direction on timestamp.
            limit: Page size.
            offset: Rows to skip.

        Returns:
            Tuple of (page of activities, total matching rows).
        """
        count_query = self._filtered(select(func.count()).select_from(Activity), types, status, agent, start, end)
        total = (await self._session.execute(count_query)).scalar_one()

        order = Activity.timestamp.desc() if newest_first else Activity.timestamp.asc()
        query = (
            self._filtered(select(Activity), types, status, agent, start, end)
            .order_by(order)
            .limit(limit)
            .offset(offset)
        )
        result = await self._session.execute(query)
        return list(result.scalars().all()), int(total)

    async def count(self, since: str | None = None) -> int:
        query = select(func.count()).select_from(Activity)
        if since is not None:
            query = query.where(Activity.timestamp >= since)
        return int((await self._session.execute(query)).scalar_one())

    async def count_by(self, column: str) -> dict[str, int]:
        """Count activities grouped by ``type`` or ``status``."""
        field = {"type": Activity.type, "status": Activity.status}[column]
        result = await self._session.execute(select(field, func.count()).group_by(field))
        return {key: int(n) for key, n in result.all()}

    async def list_all(self, start: str | None = None, end: str | None = None) -> list[Activity]:
        query = self._filtered(select(Activity), None, None, None, start, end).order_by(Activity.timestamp.asc())
        result = await self._session.execute(query)
        return list(result.scalars().all())


class UsageSnapshotRepository(BaseRepository[UsageSnapshot]):
    """Read access to usage_snapshots (usage-tracking.db), written by the usage collector."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize with an async database session."""
        super().__init__(session, UsageSnapshot)

    async def list_between(self, start_date: str, end_date: str) -> list[UsageSnapshot]:
        query = (
            select(UsageSnapshot)
            .where(UsageSnapshot.date >= start_date, UsageSnapshot.date <= end_date)
            .order_by(UsageSnapshot.date.asc(), UsageSnapshot.hour.asc())
        )
        result = await self._session.execute(query)
        return list(result.scalars().all())

    async def sum_cost_between(self, start_date: str, end_date: str) -> float:
        """Total cost in the inclusive date range (0.0 when empty)."""
        query = select(func.coalesce(func.sum(UsageSnapshot.cost), 0.0)).where(
            UsageSnapshot.date >= start_date,
            UsageSnapshot.date <= end_date,
        )
        result = await self._session.execute(query)
        return float(result.scalar() or 0.0)


class DismissalRepository(BaseRepository[Dismissal]):
    """Repository for suggestion dismissals (suggestions.db)."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize with an async database session."""
        super().__init__(session, Dismissal)

    async def record(self, suggestion_id: str, applied: bool, dismissed_at: str) -> None:
        """Insert a dismissal, or refresh ``dismissed_at`` and ``applied`` when one exists."""
        existing = await self.get_by_id(suggestion_id)
        if existing is None:
            await self.create(Dismissal(suggestion_id=suggestion_id, dismissed_at=dismissed_at, applied=applied))
            return
        existing.dismissed_at = dismissed_at
        existing.applied = applied
        await self._session.flush()

    async def list_ids(self) -> set[str]:
        result = await self._session.execute(select(Dismissal.suggestion_id))
        return set(result.scalars().all())


class SharedReportRepository(BaseRepository[SharedReport]):
    """Repository for frozen report payloads (shared-reports.db)."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize with an async database session."""
        super().__init__(session, SharedReport)

    async def create(self, report: SharedReport) -> SharedReport:
        """Insert a report; never overwrites an existing token.

        Raises:
            ConflictError: If the token is already taken.
        """
        try:
            return await super().create(report)
        except IntegrityError as exc:
            logger.warning("shared_report_token_collision", token=report.token)
            raise ConflictError("Report token already exists") from exc

    async def get(self, token: str) -> SharedReport | None:
        return await self.get_by_id(token)


class PlaygroundRepository(BaseRepository[PlaygroundExperiment]):
    """Repository for playground experiments and their share tokens (playground.db)."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize with an async database session."""
        super().__init__(session, PlaygroundExperiment)

    async def create_experiment(self, experiment: PlaygroundExperiment) -> PlaygroundExperiment:
        return await self.create(experiment)

    async def get_experiment(self, experiment_id: str) -> PlaygroundExperiment | None:
        return await self.get_by_id(experiment_id)

    async def list_experiments(self, limit: int = 50) -> list[PlaygroundExperiment]:
        query = select(PlaygroundExperiment).order_by(PlaygroundExperiment.created_at.desc()).limit(limit)
        result = await self._session.execute(query)
        return list(result.scalars().all())

    async def create_share(self, share: PlaygroundShare) -> PlaygroundShare:
        self._session.add(share)
        await self._session.flush()
        return share

    async def get_share(self, token: str) -> PlaygroundShare | None:
        return await self._session.get(PlaygroundShare, token)
