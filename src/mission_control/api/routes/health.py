"""Health endpoint.

Endpoints:
  GET  /api/health   Data directory, CLI binary, agent config and usage database checks
"""

from fastapi import APIRouter

from mission_control.api.dependencies import ClockDep, RegistryDep, SettingsDep
from mission_control.api.schemas import HealthResponse
from mission_control.core.services import HealthService
from mission_control.database import USAGE_DB

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse, summary="Service health")
async def health(settings: SettingsDep, registry: RegistryDep, clock: ClockDep) -> HealthResponse:
    """Always 200; problems show up as check statuses."""
    service = HealthService(settings, usage_db_exists=registry.exists(USAGE_DB), clock=clock)
    return HealthResponse(**service.check())
