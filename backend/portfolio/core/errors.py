"""Error Hierarchy — typed, categorized exceptions for every failure the API surfaces.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity), http_status
    - expose=True marks messages that are safe to return verbatim, whatever the status
    - 4xx errors are client-actionable; 5xx errors are masked unless expose is set
    - to_response() produces the REST envelope {"error": message}

Design Decisions:
    - Single hierarchy with PortfolioError base: FastAPI handlers catch the whole family
    - BackendResponseError keeps the backend's status and JSON body for pass-through
    - ErrorContext as dataclass: observability data without coupling to logging
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorSeverity(str, Enum):
    """Error severity for log enrichment. Never drives control flow."""
    LOW = "low"
    MEDIUM = "medium"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    AUTHENTICATION = "authentication"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFIGURATION = "configuration"
    EXTERNAL_API = "external_api"
    STORAGE = "storage"


@dataclass
class ErrorContext:
    """Context carried alongside an error into logs."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    operation: str | None = None
    album_id: str | None = None
    image_id: str | None = None
    debug_info: dict[str, Any] | None = None


class PortfolioError(Exception):
    """Base exception for all portfolio API errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        context: ErrorContext | None = None,
        http_status: int = 500,
        expose: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status
        self.expose = expose

    def to_response(self) -> dict:
        """Convert to the REST error envelope."""
        return {"error": self.message}


# ─── Client Errors (400-level) ──────────────────────────────────

class UnauthorizedError(PortfolioError):
    """No valid admin session on a mutating request."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Unauthorized", "UNAUTHORIZED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.MEDIUM, context, 401, expose=True,
        )


class InvalidCredentialsError(PortfolioError):
    """Login attempted with a wrong or missing password."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Invalid credentials", "INVALID_CREDENTIALS",
            ErrorCategory.AUTHENTICATION, ErrorSeverity.MEDIUM, context, 401,
            expose=True,
        )


class AlbumNotFoundError(PortfolioError):
    """Backend could not produce the requested album."""
    def __init__(self, album_id: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.album_id = album_id
        super().__init__(
            "Album not found", "ALBUM_NOT_FOUND",
            ErrorCategory.RESOURCE_NOT_FOUND, ErrorSeverity.MEDIUM, ctx, 404,
            expose=True,
        )
        self.album_id = album_id


# ─── Infrastructure Errors (500-level) ──────────────────────────

class BackendNotConfiguredError(PortfolioError):
    """BACKEND_API_URL is unset. Operator-facing, so never masked."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Backend API not configured", "BACKEND_NOT_CONFIGURED",
            ErrorCategory.CONFIGURATION, ErrorSeverity.CRITICAL, context, 500,
            expose=True,
        )


class BackendResponseError(PortfolioError):
    """Backend answered with a non-2xx status.

    body is the backend's parsed JSON error (or a fallback envelope) and is
    relayed unchanged for 4xx statuses.
    """

    FALLBACK_MESSAGE = "Backend request failed"

    def __init__(
        self, status_code: int, body: Any, context: ErrorContext | None = None,
    ):
        super().__init__(
            _message_from_body(body) or self.FALLBACK_MESSAGE,
            "BACKEND_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.CRITICAL if status_code >= 500 else ErrorSeverity.MEDIUM,
            context, status_code,
        )
        self.status_code = status_code
        self.body = body


class UpstreamUploadError(PortfolioError):
    """Image store rejected or failed an upload."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message or "Upload failed", "UPLOAD_FAILED",
            ErrorCategory.EXTERNAL_API, ErrorSeverity.CRITICAL, context, 500,
        )


class StorageError(PortfolioError):
    """Local filesystem operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Storage {operation} failed: {message}", "STORAGE_ERROR",
            ErrorCategory.STORAGE, ErrorSeverity.CRITICAL, context, 500,
        )
        self.operation = operation


def _message_from_body(body: Any) -> str | None:
    if isinstance(body, dict):
        for key in ("error", "message"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return None
