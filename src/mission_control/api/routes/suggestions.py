"""Optimization suggestion endpoints.

Endpoints:
  GET   /api/suggestions           Current suggestions minus dismissed ids
  POST  /api/suggestions/dismiss   Dismiss (or mark applied) one suggestion id
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from mission_control.adapters.repositories import (
    ActivityRepository,
    DismissalRepository,
    UsageSnapshotRepository,
)
from mission_control.api.dependencies import (
    ClockDep,
    SettingsDep,
    get_activities_session,
    get_agent_directory,
    get_cli,
    get_suggestions_session,
    get_usage_session,
)
from mission_control.api.schemas import (
    DismissSuggestionRequest,
    SuccessResponse,
    SuggestionListResponse,
    SuggestionResponse,
)
from mission_control.core.interfaces import IAgentDirectory, IOpenClawCli
from mission_control.core.services import ActivityService, CostService, CronService, SuggestionService

router = APIRouter(tags=["suggestions"])


def _get_suggestion_service(
    activities_session: Annotated[AsyncSession, Depends(get_activities_session)],
    suggestions_session: Annotated[AsyncSession, Depends(get_suggestions_session)],
    usage_session: Annotated[AsyncSession | None, Depends(get_usage_session)],
    cli: Annotated[IOpenClawCli, Depends(get_cli)],
    agent_directory: Annotated[IAgentDirectory, Depends(get_agent_directory)],
    settings: SettingsDep,
    clock: ClockDep,
) -> SuggestionService:
    usage_repo = UsageSnapshotRepository(usage_session) if usage_session is not None else None
    return SuggestionService(
        activity_service=ActivityService(ActivityRepository(activities_session), settings, clock),
        cost_service=CostService(usage_repo, cli, settings, clock),
        cron_service=CronService(cli),
        agent_directory=agent_directory,
        dismissal_repo=DismissalRepository(suggestions_session),
        settings=settings,
        clock=clock,
    )


SuggestionServiceDep = Annotated[SuggestionService, Depends(_get_suggestion_service)]


@router.get("/suggestions", response_model=SuggestionListResponse, summary="List suggestions")
async def list_suggestions(service: SuggestionServiceDep) -> SuggestionListResponse:
    suggestions = await service.list_suggestions()
    return SuggestionListResponse(
        suggestions=[
            SuggestionResponse(
                id=s.id,
                title=s.title,
                description=s.description,
                category=s.category,
                action_type=s.action_type,
                action_payload=s.action_payload,
            )
            for s in suggestions
        ]
    )


@router.post("/suggestions/dismiss", response_model=SuccessResponse, summary="Dismiss a suggestion")
async def dismiss_suggestion(request: DismissSuggestionRequest, service: SuggestionServiceDep) -> SuccessResponse:
    """Suppress a suggestion id. Content changes do not bring it back."""
    await service.dismiss(request.suggestion_id, request.applied)
    return SuccessResponse()
