"""Domain error taxonomy and the FastAPI handlers that render it.

Services raise these exceptions; routers never build error responses by
hand. Each error renders as ``{"error": message, **extra}`` with its HTTP
status code.
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from mission_control.observability import get_logger

logger = get_logger(__name__)


class MissionControlError(Exception):
    """Base class for errors that map directly onto an HTTP response."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra or {}

    def headers(self) -> dict[str, str] | None:
        return None


class ValidationFailedError(MissionControlError):
    """Bad or missing request fields."""

    status_code = 400


class PolicyViolationError(MissionControlError):
    """Disallowed config path, invalid skill id, traversal attempt."""

    status_code = 400


class AuthenticationError(MissionControlError):
    status_code = 401


class NotFoundError(MissionControlError):
    status_code = 404


class ConflictError(MissionControlError):
    status_code = 409


class RateLimitedError(MissionControlError):
    """Too many attempts; carries the ``Retry-After`` value in seconds."""

    status_code = 429

    def __init__(self, message: str, retry_after_seconds: int | None = None) -> None:
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds

    def headers(self) -> dict[str, str] | None:
        if self.retry_after_seconds is None:
            return None
        return {"Retry-After": str(self.retry_after_seconds)}


class NotImplementedYetError(MissionControlError):
    status_code = 501


async def _handle_domain_error(request: Request, exc: MissionControlError) -> JSONResponse:
    if exc.status_code >= 500 and exc.status_code != 501:
        logger.error("request_failed", path=request.url.path, error=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, **exc.extra},
        headers=exc.headers(),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the domain error handler on the application."""
    app.add_exception_handler(MissionControlError, _handle_domain_error)  # type: ignore[arg-type]
