"""Cost overview endpoint.

Endpoints:
  GET  /api/costs?timeframe=<N>d   Summary, per-agent and per-model shares, daily and hourly series
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from mission_control.adapters.repositories import UsageSnapshotRepository
from mission_control.api.dependencies import ClockDep, SettingsDep, get_cli, get_usage_session
from mission_control.api.schemas import AgentCost, CostOverviewResponse, DailyCostPoint, HourlyCostPoint, ModelCost
from mission_control.core.interfaces import IOpenClawCli
from mission_control.core.services import CostService, parse_timeframe_days

router = APIRouter(tags=["costs"])


def _get_cost_service(
    session: Annotated[AsyncSession | None, Depends(get_usage_session)],
    cli: Annotated[IOpenClawCli, Depends(get_cli)],
    settings: SettingsDep,
    clock: ClockDep,
) -> CostService:
    usage_repo = UsageSnapshotRepository(session) if session is not None else None
    return CostService(usage_repo, cli, settings, clock)


@router.get("/costs", response_model=CostOverviewResponse, summary="Cost overview")
async def get_costs(
    service: Annotated[CostService, Depends(_get_cost_service)],
    timeframe: Annotated[str | None, Query(description="Trailing window such as 7d or 30d")] = None,
) -> CostOverviewResponse:
    """Cost overview for the trailing window.

    Reads usage-tracking.db when present; otherwise derives today's costs
    from live CLI sessions, and returns zeros with a message when neither
    source is available.
    """
    overview = await service.overview(parse_timeframe_days(timeframe))
    return CostOverviewResponse(
        today=overview.today,
        yesterday=overview.yesterday,
        this_month=overview.this_month,
        last_month=overview.last_month,
        projected=overview.projected,
        budget=overview.budget,
        by_agent=[
            AgentCost(
                agent=b.key,
                cost=b.cost,
                tokens=b.tokens,
                input_tokens=b.input_tokens,
                output_tokens=b.output_tokens,
                percent_of_total=b.percent_of_total,
            )
            for b in overview.by_agent
        ],
        by_model=[
            ModelCost(
                model=b.key,
                cost=b.cost,
                tokens=b.tokens,
                input_tokens=b.input_tokens,
                output_tokens=b.output_tokens,
                percent_of_total=b.percent_of_total,
            )
            for b in overview.by_model
        ],
        daily=[DailyCostPoint(date=d.date, cost=d.cost, input=d.input, output=d.output) for d in overview.daily],
        hourly=[HourlyCostPoint(hour=h.hour, cost=h.cost) for h in overview.hourly],
        message=overview.message,
    )
