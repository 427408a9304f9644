"""Mission Control service entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from mission_control import __version__
from mission_control.api.router import router
from mission_control.core.models import DATABASE_TABLES
from mission_control.core.rate_limit import LoginRateLimiter, SlidingWindowLimiter
from mission_control.core.timeutil import utc_now
from mission_control.database import DatabaseRegistry
from mission_control.errors import register_exception_handlers
from mission_control.observability import configure_logging, get_logger
from mission_control.settings import Settings

logger = get_logger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI application.

    Process-wide state (settings, clock, database registry, rate limiters)
    is attached to ``app.state`` so tests can build isolated instances.
    """
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Manage application startup and shutdown lifecycle."""
        configure_logging(settings.log_level, settings.log_json)
        settings.data_dir.mkdir(parents=True, exist_ok=True)
        logger.info(
            "mission-control starting",
            service=settings.service_name,
            data_dir=str(settings.data_dir),
            auth_enabled=settings.auth_enabled,
        )
        yield
        await app.state.registry.dispose()
        logger.info("mission-control shutting down")

    app = FastAPI(title="Mission Control", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.clock = utc_now
    app.state.registry = DatabaseRegistry(settings.data_dir, DATABASE_TABLES)
    app.state.login_limiter = LoginRateLimiter(
        clock=utc_now,
        max_attempts=settings.login_max_attempts,
        window_seconds=settings.login_window_seconds,
        lockout_seconds=settings.login_lockout_seconds,
    )
    app.state.playground_limiter = SlidingWindowLimiter(
        clock=utc_now,
        limit=settings.playground_runs_per_minute,
        window_seconds=60,
    )
    register_exception_handlers(app)
    app.include_router(router)
    return app


app = create_app()


def run() -> None:
    """Console-script entry point: serve ``app`` with uvicorn."""
    uvicorn.run("mission_control.main:app", host="0.0.0.0", port=8000)
