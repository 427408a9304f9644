"""Shared FastAPI dependencies.

Process-wide objects (Settings, clock, database registry, rate limiters)
live on ``app.state`` and are set up in the lifespan. Database sessions are
request-scoped: one per SQLite file, committed when the request succeeds.
"""

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from mission_control.adapters.agent_directory import AgentDirectory
from mission_control.adapters.openclaw_cli import OpenClawCli
from mission_control.core.interfaces import IAgentDirectory, IOpenClawCli
from mission_control.core.rate_limit import LoginRateLimiter, SlidingWindowLimiter
from mission_control.core.services import AuthService
from mission_control.core.timeutil import Clock
from mission_control.database import (
    ACTIVITIES_DB,
    PLAYGROUND_DB,
    SHARED_REPORTS_DB,
    SUGGESTIONS_DB,
    USAGE_DB,
    DatabaseRegistry,
)
from mission_control.errors import AuthenticationError
from mission_control.settings import Settings


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_registry(request: Request) -> DatabaseRegistry:
    return request.app.state.registry


def get_login_limiter(request: Request) -> LoginRateLimiter:
    return request.app.state.login_limiter


def get_playground_limiter(request: Request) -> SlidingWindowLimiter:
    return request.app.state.playground_limiter


SettingsDep = Annotated[Settings, Depends(get_settings)]
ClockDep = Annotated[Clock, Depends(get_clock)]
RegistryDep = Annotated[DatabaseRegistry, Depends(get_registry)]


# ---------------------------------------------------------------------------
# Database sessions
# ---------------------------------------------------------------------------


async def get_activities_session(registry: RegistryDep) -> AsyncIterator[AsyncSession]:
    async with registry.session(ACTIVITIES_DB) as session:
        yield session


async def get_suggestions_session(registry: RegistryDep) -> AsyncIterator[AsyncSession]:
    async with registry.session(SUGGESTIONS_DB) as session:
        yield session


async def get_reports_session(registry: RegistryDep) -> AsyncIterator[AsyncSession]:
    async with registry.session(SHARED_REPORTS_DB) as session:
        yield session


async def get_playground_session(registry: RegistryDep) -> AsyncIterator[AsyncSession]:
    async with registry.session(PLAYGROUND_DB) as session:
        yield session


async def get_usage_session(registry: RegistryDep) -> AsyncIterator[AsyncSession | None]:
    """Session on usage-tracking.db, or None while the collector has not created it.

    The file is owned by the external usage collector; opening it here would
    create an empty database and hide the live fallback.
    """
    if not registry.exists(USAGE_DB):
        yield None
        return
    async with registry.session(USAGE_DB) as session:
        yield session


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


def get_cli(settings: SettingsDep) -> IOpenClawCli:
    return OpenClawCli(settings)


def get_agent_directory(
    settings: SettingsDep,
    cli: Annotated[IOpenClawCli, Depends(get_cli)],
) -> IAgentDirectory:
    return AgentDirectory(settings, cli)


# ---------------------------------------------------------------------------
# Session guard
# ---------------------------------------------------------------------------


def require_session(request: Request, settings: SettingsDep) -> None:
    """Reject requests without the session cookie while a session secret is configured."""
    auth = AuthService(get_login_limiter(request), settings)
    if not auth.is_authenticated(request.cookies.get(settings.auth_cookie_name)):
        raise AuthenticationError("Unauthorized")
