"""Request Context Middleware — correlation id, request log, last-resort error boundary.

Invariants:
    - A RequestContext exists on request.state before any route code runs
    - x-request-id is set on every response, success or error
    - Untyped exceptions escaping a route are handled here, once, via
      handle_api_error (generic 500, details only in development)
    - Request completion is logged and counted when request logging is enabled
"""

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from portfolio.api.dependencies import (
    get_app_settings, get_logger, get_metrics, get_request_context,
)
from portfolio.api.error_handlers import error_context, handle_api_error
from portfolio.core.request_context import REQUEST_ID_HEADER


class RequestContextMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        context = get_request_context(request)
        settings = get_app_settings(request)
        metrics = get_metrics(request)
        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            response = await handle_api_error(
                e, error_context(request), metrics=metrics,
                development=settings.development,
            )

        response.headers[REQUEST_ID_HEADER] = context.request_id

        if settings.enable_request_logging:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            get_logger(request).info(
                "Request completed",
                extra={
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                },
            )
            dimensions = {
                "Method": context.method,
                "StatusCode": str(response.status_code),
            }
            await metrics.track_duration("ApiRequest", duration_ms, dimensions)
            await metrics.track_count("ApiRequestCount", 1, {
                **dimensions,
                "Success": "true" if response.status_code < 400 else "false",
            })
        return response
