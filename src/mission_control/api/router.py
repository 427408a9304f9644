"""Top-level API router for Mission Control.

All routes are thin: they validate inputs, call a service and return a
pydantic response model. Everything is mounted under ``/api``.

Every router requires the session cookie except auth, health, and the two
public share readers (``/reports/shared/{token}`` and
``/playground/shared/{token}``), which guard their remaining routes
individually.
"""

from fastapi import APIRouter, Depends

from mission_control.api.dependencies import require_session
from mission_control.api.routes import (
    activities,
    agents,
    auth,
    config,
    costs,
    health,
    notifications,
    playground,
    reports,
    skills,
    suggestions,
    workflows,
)

router = APIRouter(prefix="/api")

_guarded = [Depends(require_session)]

for _module in (activities, agents, config, costs, notifications, skills, suggestions, workflows):
    router.include_router(_module.router, dependencies=_guarded)

for _module in (auth, health, playground, reports):
    router.include_router(_module.router)
