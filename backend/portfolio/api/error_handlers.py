"""Error Handlers — the single place errors become HTTP responses.

Invariants:
    - handle_api_error never raises, whatever it is given
    - Every handled error is logged once (request context merged) and counted
      (Errors + ApiErrors metrics)
    - UnauthorizedError → exactly {"error": "Unauthorized"} / 401
    - BackendResponseError 4xx → backend status and body relayed unchanged;
      5xx → masked like any other server error
    - PortfolioError with expose=True keeps its message even at 500
    - RequestValidationError → 400 with field-level details, except on a
      session-gated route without a session, which answers 401 first
    - Every response built here carries x-request-id

Design Decisions:
    - Registered handlers for typed errors; the catch-all for untyped exceptions
      lives in RequestContextMiddleware, which calls handle_api_error
    - Operation name: the error's own context, else "<METHOD> <route path>"
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from portfolio.api.dependencies import (
    gated_operation, get_app_settings, get_metrics, get_request_context,
    read_session, unauthorized,
)
from portfolio.core.error_response import (
    build_error_body, classify_severity, error_type_name, extract_error_message,
)
from portfolio.core.errors import (
    BackendResponseError, ErrorSeverity, PortfolioError, UnauthorizedError,
)
from portfolio.core.request_context import REQUEST_ID_HEADER
from portfolio.infrastructure.metrics import MetricsClient

logger = logging.getLogger(__name__)


async def handle_api_error(
    error: Any,
    context: dict[str, Any],
    *,
    metrics: MetricsClient,
    status_code: int = 500,
    user_message: str | None = None,
    development: bool = False,
) -> JSONResponse:
    """Log, count and shape one error into a user-safe JSON response."""
    severity = classify_severity(status_code)
    operation = context.get("operation") or "unknown_operation"
    message = extract_error_message(error)

    log_extra = {
        **context,
        "operation": operation,
        "status_code": status_code,
        "severity": severity.value,
        "error_type": error_type_name(error),
    }
    level = logging.ERROR if severity == ErrorSeverity.CRITICAL else logging.WARNING
    logger.log(
        level, f"API error in {operation}: {message}", extra=log_extra,
        exc_info=error if isinstance(error, BaseException) else None,
    )

    error_instance = error if isinstance(error, BaseException) else Exception(message)
    await metrics.track_error(operation, error_instance)
    await metrics.track_count("ApiErrors", 1, {
        "Operation": operation,
        "StatusCode": str(status_code),
        "Severity": severity.value,
    })

    body = build_error_body(
        error, status_code, user_message, include_details=development,
    )
    return JSONResponse(
        status_code=status_code, content=body,
        headers=_request_id_headers(context),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register all typed error handlers on the FastAPI app."""
    _register_unauthorized_handler(app)
    _register_backend_error_handler(app)
    _register_portfolio_error_handler(app)
    _register_validation_error_handler(app)
    _register_http_exception_handler(app)


def error_context(request: Request, operation: str | None = None) -> dict[str, Any]:
    """Log context for an error raised while serving request."""
    context = get_request_context(request).to_log_extra()
    context["operation"] = operation or operation_name(request)
    if request.path_params:
        context["details"] = dict(request.path_params)
    return context


def operation_name(request: Request) -> str:
    route = request.scope.get("route")
    path = getattr(route, "path", None) or request.url.path
    return f"{request.method} {path}"


def _register_unauthorized_handler(app: FastAPI) -> None:

    @app.exception_handler(UnauthorizedError)
    async def unauthorized_handler(request: Request, exc: UnauthorizedError):
        """Fixed body; the gate already logged the attempt."""
        return _unauthorized_response(request, exc)


def _unauthorized_response(
    request: Request, exc: UnauthorizedError,
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content=exc.to_response(),
        headers=_request_id_headers(error_context(request)),
    )


def _anonymous_on_gated_route(request: Request) -> UnauthorizedError | None:
    """The auth error a gated route owes an anonymous caller, if any."""
    operation = gated_operation(request)
    if operation is None:
        return None
    if read_session(request, get_app_settings(request)) is not None:
        return None
    return unauthorized(request, operation)


def _register_backend_error_handler(app: FastAPI) -> None:

    @app.exception_handler(BackendResponseError)
    async def backend_error_handler(request: Request, exc: BackendResponseError):
        """Relay backend 4xx verbatim, mask backend 5xx."""
        context = error_context(request, exc.context.operation)
        metrics = get_metrics(request)
        if exc.status_code >= 500:
            return await handle_api_error(
                exc, context, metrics=metrics, status_code=exc.status_code,
                development=get_app_settings(request).development,
            )
        logger.warning(
            f"Backend rejected {context['operation']} with {exc.status_code}",
            extra={**context, "status_code": exc.status_code},
        )
        await metrics.track_count("ApiErrors", 1, {
            "Operation": context["operation"],
            "StatusCode": str(exc.status_code),
            "Severity": classify_severity(exc.status_code).value,
        })
        return JSONResponse(
            status_code=exc.status_code, content=exc.body,
            headers=_request_id_headers(context),
        )


def _register_portfolio_error_handler(app: FastAPI) -> None:

    @app.exception_handler(PortfolioError)
    async def portfolio_error_handler(request: Request, exc: PortfolioError):
        """Handle all typed domain/infrastructure errors."""
        return await handle_api_error(
            exc,
            error_context(request, exc.context.operation),
            metrics=get_metrics(request),
            status_code=exc.http_status,
            user_message=exc.message if exc.expose else None,
            development=get_app_settings(request).development,
        )


def _register_validation_error_handler(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError,
    ):
        """Handle Pydantic validation errors."""
        denied = _anonymous_on_gated_route(request)
        if denied is not None:
            return _unauthorized_response(request, denied)
        context = error_context(request)
        logger.warning(
            f"Validation error on {request.url.path}: {exc.errors()}",
            extra=context,
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_build_validation_error_response(exc),
            headers=_request_id_headers(context),
        )


def _register_http_exception_handler(app: FastAPI) -> None:

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException,
    ):
        """Framework HTTP errors (unknown route, bad multipart) in the same envelope."""
        context = error_context(request)
        if exc.status_code >= 500:
            return await handle_api_error(
                exc, context, metrics=get_metrics(request),
                status_code=exc.status_code,
                development=get_app_settings(request).development,
            )
        if exc.status_code == status.HTTP_400_BAD_REQUEST:
            # body parse failures surface here before the auth gate runs
            denied = _anonymous_on_gated_route(request)
            if denied is not None:
                return _unauthorized_response(request, denied)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers={**(exc.headers or {}), **_request_id_headers(context)},
        )


def _build_validation_error_response(exc: RequestValidationError) -> dict:
    return {
        "error": "Invalid request data",
        "details": [
            {
                "field": ".".join(str(loc) for loc in e["loc"]),
                "message": e["msg"],
                "type": e["type"],
            }
            for e in exc.errors()
        ],
    }


def _request_id_headers(context: dict[str, Any]) -> dict[str, str]:
    request_id = context.get("request_id")
    return {REQUEST_ID_HEADER: request_id} if request_id else {}
