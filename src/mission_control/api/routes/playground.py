"""Model playground endpoints.

Endpoints:
  GET   /api/playground/models              Pricing catalog of runnable models
  POST  /api/playground/run                 Run one prompt against several models
  POST  /api/playground/experiments         Save a prompt with its results
  GET   /api/playground/experiments         Newest 50 saved experiments
  GET   /api/playground/experiments/{id}    One saved experiment
  POST  /api/playground/shared              Create an expiring share link for an experiment
  GET   /api/playground/shared/{token}      Read a shared experiment (no session required)
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from mission_control.adapters.openrouter_client import OpenRouterClient
from mission_control.adapters.repositories import PlaygroundRepository
from mission_control.api.dependencies import (
    ClockDep,
    SettingsDep,
    get_playground_limiter,
    get_playground_session,
    require_session,
)
from mission_control.api.schemas import (
    ExperimentListResponse,
    ExperimentResponse,
    PlaygroundModelResponse,
    PlaygroundRunRequest,
    PlaygroundRunResponse,
    SaveExperimentRequest,
    ShareExperimentRequest,
    ShareExperimentResponse,
)
from mission_control.core.interfaces import ICompletionClient
from mission_control.core.rate_limit import SlidingWindowLimiter
from mission_control.core.services import PlaygroundService

router = APIRouter(prefix="/playground", tags=["playground"])

_guard = [Depends(require_session)]


def get_completion_client(settings: SettingsDep) -> ICompletionClient:
    return OpenRouterClient(settings)


def _get_playground_service(
    session: Annotated[AsyncSession, Depends(get_playground_session)],
    client: Annotated[ICompletionClient, Depends(get_completion_client)],
    limiter: Annotated[SlidingWindowLimiter, Depends(get_playground_limiter)],
    settings: SettingsDep,
    clock: ClockDep,
) -> PlaygroundService:
    return PlaygroundService(PlaygroundRepository(session), client, limiter, settings, clock)


PlaygroundServiceDep = Annotated[PlaygroundService, Depends(_get_playground_service)]


@router.get("/models", response_model=list[PlaygroundModelResponse], dependencies=_guard, summary="List models")
async def list_models() -> list[PlaygroundModelResponse]:
    return [PlaygroundModelResponse(**model) for model in PlaygroundService.list_models()]


@router.post("/run", response_model=PlaygroundRunResponse, dependencies=_guard, summary="Run a prompt")
async def run_prompt(request: PlaygroundRunRequest, service: PlaygroundServiceDep) -> PlaygroundRunResponse:
    """Run the prompt against every requested catalog model concurrently.

    A failing model yields a result with ``error`` set; the request itself
    only fails on validation or the run throttle.
    """
    return PlaygroundRunResponse(results=await service.run(request.prompt, request.model_ids))


@router.post(
    "/experiments",
    response_model=ExperimentResponse,
    status_code=201,
    dependencies=_guard,
    summary="Save an experiment",
)
async def save_experiment(request: SaveExperimentRequest, service: PlaygroundServiceDep) -> ExperimentResponse:
    return ExperimentResponse.model_validate(await service.save_experiment(request.prompt, request.results))


@router.get("/experiments", response_model=ExperimentListResponse, dependencies=_guard, summary="List experiments")
async def list_experiments(service: PlaygroundServiceDep) -> ExperimentListResponse:
    experiments = await service.list_experiments(50)
    return ExperimentListResponse(experiments=[ExperimentResponse.model_validate(e) for e in experiments])


@router.get(
    "/experiments/{experiment_id}",
    response_model=ExperimentResponse,
    dependencies=_guard,
    summary="Get an experiment",
)
async def get_experiment(experiment_id: str, service: PlaygroundServiceDep) -> ExperimentResponse:
    return ExperimentResponse.model_validate(await service.get_experiment(experiment_id))


@router.post(
    "/shared",
    response_model=ShareExperimentResponse,
    status_code=201,
    dependencies=_guard,
    summary="Share an experiment",
)
async def share_experiment(request: ShareExperimentRequest, service: PlaygroundServiceDep) -> ShareExperimentResponse:
    return ShareExperimentResponse(**await service.share(request.experiment_id))


@router.get("/shared/{token}", response_model=ExperimentResponse, summary="Read a shared experiment")
async def get_shared_experiment(token: str, service: PlaygroundServiceDep) -> ExperimentResponse:
    return ExperimentResponse.model_validate(await service.get_shared(token))
