"""Activity log and analytics endpoints.

Endpoints:
  GET   /api/activities             Filtered, paginated listing (format=json|csv)
  POST  /api/activities             Log an activity
  GET   /api/activities/stats       Totals for today, the last 7 days, per type and status
  GET   /api/analytics              Daily, type, hour-of-day and success-rate analytics
"""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from mission_control.adapters.repositories import ActivityRepository
from mission_control.api.dependencies import ClockDep, SettingsDep, get_activities_session
from mission_control.api.schemas import (
    ActivityListResponse,
    ActivityResponse,
    ActivityStatsResponse,
    AnalyticsResponse,
    LogActivityRequest,
)
from mission_control.core.services import ActivityService

router = APIRouter(tags=["activities"])


# ---------------------------------------------------------------------------
# Dependency factories
# ---------------------------------------------------------------------------


def _get_activity_service(
    session: Annotated[AsyncSession, Depends(get_activities_session)],
    settings: SettingsDep,
    clock: ClockDep,
) -> ActivityService:
    return ActivityService(ActivityRepository(session), settings, clock)


ActivityServiceDep = Annotated[ActivityService, Depends(_get_activity_service)]


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("/activities", response_model=ActivityListResponse, summary="List activities")
async def list_activities(
    service: ActivityServiceDep,
    type: Annotated[str | None, Query(description="Type, or comma-separated types; 'all' for any")] = None,
    status: Annotated[str | None, Query()] = None,
    agent: Annotated[str | None, Query()] = None,
    start_date: Annotated[str | None, Query(alias="startDate")] = None,
    end_date: Annotated[str | None, Query(alias="endDate", description="Inclusive of the whole day")] = None,
    sort: Annotated[Literal["newest", "oldest"], Query()] = "newest",
    limit: Annotated[int, Query(ge=1, le=1000)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
    format: Annotated[Literal["json", "csv"], Query()] = "json",
) -> ActivityListResponse | Response:
    """List activities newest (or oldest) first.

    A single ``type`` also matches its legacy aliases. With ``format=csv``
    the current page is returned as a CSV attachment.
    """
    activities, total = await service.list_activities(
        activity_type=type,
        status=status,
        agent=agent,
        start_date=start_date,
        end_date=end_date,
        sort=sort,
        limit=limit,
        offset=offset,
    )
    if format == "csv":
        return Response(
            content=service.activities_to_csv(activities),
            media_type="text/csv",
            headers={"Content-Disposition": 'attachment; filename="activities.csv"'},
        )
    return ActivityListResponse(
        activities=[ActivityResponse.model_validate(a) for a in activities],
        total=total,
        limit=limit,
        offset=offset,
        has_more=offset + len(activities) < total,
    )


@router.post("/activities", response_model=ActivityResponse, status_code=201, summary="Log an activity")
async def log_activity(request: LogActivityRequest, service: ActivityServiceDep) -> ActivityResponse:
    activity = await service.log_activity(
        activity_type=request.type or "",
        description=request.description or "",
        status=request.status or "",
        timestamp=request.timestamp,
        duration_ms=request.duration_ms,
        tokens_used=request.tokens_used,
        agent=request.agent,
        metadata=request.metadata,
    )
    return ActivityResponse.model_validate(activity)


@router.get("/activities/stats", response_model=ActivityStatsResponse, summary="Activity totals")
async def activity_stats(service: ActivityServiceDep) -> ActivityStatsResponse:
    return ActivityStatsResponse(**await service.stats())


@router.get("/analytics", response_model=AnalyticsResponse, summary="Activity analytics")
async def analytics(service: ActivityServiceDep) -> AnalyticsResponse:
    return AnalyticsResponse(**await service.analytics())
