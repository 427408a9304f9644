"""Session login endpoints.

Endpoints:
  POST  /api/auth/login    Check the admin password and set the session cookie
  POST  /api/auth/logout   Clear the session cookie
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response

from mission_control.api.dependencies import SettingsDep, get_login_limiter
from mission_control.api.schemas import LoginRequest, SuccessResponse
from mission_control.core.rate_limit import LoginRateLimiter
from mission_control.core.services import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


def _get_auth_service(
    limiter: Annotated[LoginRateLimiter, Depends(get_login_limiter)],
    settings: SettingsDep,
) -> AuthService:
    return AuthService(limiter, settings)


def _client_id(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


@router.post("/login", response_model=SuccessResponse, summary="Log in")
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    service: Annotated[AuthService, Depends(_get_auth_service)],
    settings: SettingsDep,
) -> SuccessResponse:
    """Five failures per 15 minutes lock the client out for 15 minutes (429 with Retry-After)."""
    service.login(_client_id(request), body.password)
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=settings.auth_secret,
        max_age=settings.auth_cookie_max_age_seconds,
        httponly=True,
        samesite="lax",
        secure=request.url.scheme == "https",
        path="/",
    )
    return SuccessResponse()


@router.post("/logout", response_model=SuccessResponse, summary="Log out")
async def logout(response: Response, settings: SettingsDep) -> SuccessResponse:
    response.delete_cookie(key=settings.auth_cookie_name, path="/")
    return SuccessResponse()
