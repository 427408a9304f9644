"""Skill enable/disable endpoints.

Endpoints:
  GET   /api/skills/disabled   Currently disabled skill ids
  POST  /api/skills/toggle     Enable or disable one skill id
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from mission_control.adapters.json_store import DisabledSkillsStore
from mission_control.api.dependencies import SettingsDep
from mission_control.api.schemas import DisabledSkillsResponse, ToggleSkillRequest, ToggleSkillResponse
from mission_control.core.services import SkillService

router = APIRouter(prefix="/skills", tags=["skills"])


def _get_skill_service(settings: SettingsDep) -> SkillService:
    return SkillService(DisabledSkillsStore(settings.disabled_skills_path))


SkillServiceDep = Annotated[SkillService, Depends(_get_skill_service)]


@router.get("/disabled", response_model=DisabledSkillsResponse, summary="List disabled skills")
async def list_disabled_skills(service: SkillServiceDep) -> DisabledSkillsResponse:
    return DisabledSkillsResponse(disabled=service.list_disabled())


@router.post("/toggle", response_model=ToggleSkillResponse, summary="Enable or disable a skill")
async def toggle_skill(request: ToggleSkillRequest, service: SkillServiceDep) -> ToggleSkillResponse:
    return ToggleSkillResponse(**service.toggle(request.id, request.enabled))
