"""Error Response Shaping — severity classification and the exposure rule.

Invariants:
    - 4xx: the real message is returned to the caller
    - 5xx: the caller sees "Internal server error", whatever the real message
    - Never raises, whatever the input (exception, str, dict, None)
    - details (type + traceback) only when include_details is set

Design Decisions:
    - Pure functions: the responder in api/error_handlers.py does the IO (log, metrics)
"""

import traceback
from typing import Any

from portfolio.core.errors import ErrorSeverity, PortfolioError

GENERIC_SERVER_MESSAGE = "Internal server error"
UNKNOWN_ERROR_MESSAGE = "An unknown error occurred"


def classify_severity(status_code: int) -> ErrorSeverity:
    """Map an HTTP status to a log severity."""
    if status_code >= 500:
        return ErrorSeverity.CRITICAL
    if status_code >= 400:
        return ErrorSeverity.MEDIUM
    return ErrorSeverity.LOW


def should_expose(status_code: int) -> bool:
    """Only client errors (4xx) carry their real message to the caller."""
    return 400 <= status_code < 500


def extract_error_message(error: Any) -> str:
    """Best-effort human message from anything that was raised or passed in."""
    if isinstance(error, PortfolioError):
        return error.message or UNKNOWN_ERROR_MESSAGE
    if isinstance(error, BaseException):
        return str(error) or UNKNOWN_ERROR_MESSAGE
    if isinstance(error, str):
        return error or UNKNOWN_ERROR_MESSAGE
    if isinstance(error, dict):
        message = error.get("message")
        return str(message) if message else UNKNOWN_ERROR_MESSAGE
    message = getattr(error, "message", None)
    if message:
        return str(message)
    return UNKNOWN_ERROR_MESSAGE


def error_type_name(error: Any) -> str:
    """Class name for exceptions, "Error" for anything else."""
    if isinstance(error, BaseException):
        return type(error).__name__
    return "Error"


def format_error_details(error: Any) -> dict:
    """Type name and traceback, for logs and development responses."""
    details = {"name": error_type_name(error)}
    if isinstance(error, BaseException):
        details["stack"] = "".join(
            traceback.format_exception(type(error), error, error.__traceback__),
        )
    return details


def build_error_body(
    error: Any,
    status_code: int,
    user_message: str | None = None,
    include_details: bool = False,
) -> dict:
    """Build the JSON error envelope returned to the caller."""
    exposed = should_expose(status_code)
    message = extract_error_message(error)

    if user_message is not None:
        body = {"error": user_message}
        if exposed and message != user_message:
            body["message"] = message
    else:
        body = {"error": message if exposed else GENERIC_SERVER_MESSAGE}

    if include_details:
        body["details"] = format_error_details(error)
    return body
