"""Dependencies — per-request access to app-wide collaborators and the auth gate.

Invariants:
    - Collaborators are built once in create_app() and read from app.state
    - require_session runs before the route body: no backend call happens
      for an unauthenticated mutating request
    - A gated route answers 401 to anonymous callers even when the body is
      malformed (see gated_operation)
    - The 401 body is exactly {"error": "Unauthorized"}; no reason is given

Design Decisions:
    - require_session(operation) is a factory so the warning log names the
      attempted operation
    - Session token accepted from the session cookie or an Authorization: Bearer header
"""

from collections.abc import Awaitable, Callable

from fastapi import Request

from portfolio.config import Settings
from portfolio.core.errors import ErrorContext, UnauthorizedError
from portfolio.core.request_context import RequestContext, build_request_context
from portfolio.infrastructure.backend_client import BackendClient
from portfolio.infrastructure.image_sources import ImageSource
from portfolio.infrastructure.metrics import MetricsClient
from portfolio.infrastructure.observability import RequestLogger, get_request_logger
from portfolio.infrastructure.session_tokens import Session, decode_session_token


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_metrics(request: Request) -> MetricsClient:
    return request.app.state.metrics


def get_backend(request: Request) -> BackendClient:
    return request.app.state.backend


def get_image_source(request: Request) -> ImageSource:
    return request.app.state.image_source


def get_request_context(request: Request) -> RequestContext:
    """Context created by RequestContextMiddleware, or a fresh one."""
    context = getattr(request.state, "request_context", None)
    if context is None:
        context = build_request_context(
            request.method,
            path_with_query(request),
            request.headers,
            request.client.host if request.client else None,
        )
        request.state.request_context = context
    return context


def get_logger(request: Request) -> RequestLogger:
    return get_request_logger(get_request_context(request))


def read_session(request: Request, settings: Settings) -> Session | None:
    token = request.cookies.get(settings.session_cookie_name)
    if not token:
        auth = request.headers.get("authorization", "")
        scheme, _, credentials = auth.partition(" ")
        if scheme.lower() == "bearer":
            token = credentials.strip()
    return decode_session_token(token, settings.session_secret)


def require_session(operation: str) -> Callable[[Request], Awaitable[Session]]:
    """Auth gate for mutating routes."""

    async def dependency(request: Request) -> Session:
        session = read_session(request, get_app_settings(request))
        if session is None:
            raise unauthorized(request, operation)
        return session

    dependency.session_operation = operation
    return dependency


def unauthorized(request: Request, operation: str) -> UnauthorizedError:
    """Log the rejected attempt and build the error to raise."""
    get_logger(request).warning(
        f"Unauthorized {operation} attempt",
        extra={
            "operation": operation,
            "details": dict(request.path_params),
        },
    )
    return UnauthorizedError(ErrorContext(operation=operation))


def gated_operation(request: Request) -> str | None:
    """Operation name of the auth gate on the matched route, if it has one.

    FastAPI parses the JSON body before resolving dependencies, so error
    handlers use this to answer 401 rather than 400 for anonymous callers.
    """
    dependant = getattr(request.scope.get("route"), "dependant", None)
    for sub in getattr(dependant, "dependencies", ()):
        operation = getattr(sub.call, "session_operation", None)
        if operation:
            return operation
    return None


def path_with_query(request: Request) -> str:
    query = request.url.query
    return f"{request.url.path}?{query}" if query else request.url.path
