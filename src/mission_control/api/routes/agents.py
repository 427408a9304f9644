"""Read-only views of the agent runtime.

Endpoints:
  GET  /api/agents   Configured agents with live session counts and online status
  GET  /api/cron     Cron jobs from the runtime scheduler

Both degrade to empty lists when the CLI is unavailable.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from mission_control.api.dependencies import ClockDep, get_agent_directory, get_cli
from mission_control.api.schemas import AgentResponse, CronJobResponse
from mission_control.core.interfaces import IAgentDirectory, IOpenClawCli
from mission_control.core.services import CronService

router = APIRouter(tags=["agents"])


def _get_cron_service(cli: Annotated[IOpenClawCli, Depends(get_cli)]) -> CronService:
    return CronService(cli)


@router.get("/agents", response_model=list[AgentResponse], summary="List agents")
async def list_agents(
    directory: Annotated[IAgentDirectory, Depends(get_agent_directory)],
    clock: ClockDep,
) -> list[AgentResponse]:
    return [AgentResponse(**agent) for agent in await directory.list_agents(clock())]


@router.get("/cron", response_model=list[CronJobResponse], summary="List cron jobs")
async def list_cron_jobs(service: Annotated[CronService, Depends(_get_cron_service)]) -> list[CronJobResponse]:
    return [CronJobResponse(**job) for job in await service.list_jobs()]
