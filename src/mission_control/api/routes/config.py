"""Agent runtime configuration endpoints.

Endpoints:
  GET    /api/config   Secret-masked openclaw.json plus the editable-path allowlist
  PATCH  /api/config   Write one allowlisted path
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from mission_control.adapters.json_store import ConfigFile
from mission_control.api.dependencies import SettingsDep
from mission_control.api.schemas import ConfigPatchRequest, ConfigPatchResponse, ConfigResponse
from mission_control.core.services import ConfigService

router = APIRouter(tags=["config"])


def _get_config_service(settings: SettingsDep) -> ConfigService:
    return ConfigService(ConfigFile(settings.openclaw_config_path))


ConfigServiceDep = Annotated[ConfigService, Depends(_get_config_service)]


@router.get("/config", response_model=ConfigResponse, summary="Read the agent configuration")
async def get_config(service: ConfigServiceDep) -> ConfigResponse:
    return ConfigResponse(**service.get_config())


@router.patch("/config", response_model=ConfigPatchResponse, summary="Update one allowlisted config path")
async def patch_config(request: ConfigPatchRequest, service: ConfigServiceDep) -> ConfigPatchResponse:
    """Validate and write ``value`` at ``path``.

    ``restart_recommended`` is set for gateway paths; the write happens
    either way.
    """
    return ConfigPatchResponse(**service.update_config(request.path, request.value))
