"""Auth — admin login/logout and session introspection.

Invariants:
    - One admin identity; the password comes from settings.admin_password
    - Session token lives in an http-only, SameSite=Lax cookie
    - Wrong password → 401 {"error": "Invalid credentials"}; no hint why
"""

import time

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from portfolio.api.dependencies import get_app_settings, get_logger, read_session
from portfolio.config import Settings
from portfolio.core.domain_types import RuntimeEnvironment
from portfolio.core.errors import ErrorContext, InvalidCredentialsError
from portfolio.infrastructure.observability import RequestLogger
from portfolio.infrastructure.session_tokens import (
    ADMIN_NAME, ADMIN_SUBJECT, create_session_token, verify_admin_password,
)
from portfolio.schemas.auth import LoginRequest, SessionInfo, SessionUser

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=SessionInfo)
async def login(
    body: LoginRequest,
    settings: Settings = Depends(get_app_settings),
    log: RequestLogger = Depends(get_logger),
):
    if not verify_admin_password(body.password, settings.admin_password):
        raise InvalidCredentialsError(ErrorContext(operation="Login"))

    token = create_session_token(
        settings.session_secret, settings.session_max_age_seconds,
    )
    info = SessionInfo(
        authenticated=True,
        user=SessionUser(id=ADMIN_SUBJECT, name=ADMIN_NAME),
        expires_at=int(time.time()) + settings.session_max_age_seconds,
    )
    response = JSONResponse(content=info.model_dump())
    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=settings.session_max_age_seconds,
        httponly=True,
        samesite="lax",
        secure=settings.environment == RuntimeEnvironment.PRODUCTION,
    )
    log.info("Admin logged in", extra={"user": ADMIN_NAME})
    return response


@router.post("/logout")
async def logout(settings: Settings = Depends(get_app_settings)):
    response = JSONResponse(content={"success": True})
    response.delete_cookie(settings.session_cookie_name)
    return response


@router.get("/session", response_model=SessionInfo)
async def current_session(
    request: Request, settings: Settings = Depends(get_app_settings),
):
    session = read_session(request, settings)
    if session is None:
        return SessionInfo(authenticated=False)
    return SessionInfo(
        authenticated=True,
        user=SessionUser(id=session.subject, name=session.name),
        expires_at=session.expires_at,
    )
