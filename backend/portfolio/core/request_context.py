"""Request Context — per-request correlation id and client metadata.

Invariants:
    - An inbound x-request-id is reused verbatim; otherwise a uuid4 is generated
    - Building a context never fails (no IO, no parsing that can raise)
    - Contexts live for one request and are never persisted
"""

import uuid
from collections.abc import Mapping
from dataclasses import dataclass

REQUEST_ID_HEADER = "x-request-id"


@dataclass(frozen=True)
class RequestContext:
    """Metadata of one inbound request, bound into every log line it produces."""
    request_id: str
    method: str
    path: str
    ip: str | None = None
    user_agent: str | None = None

    def to_log_extra(self) -> dict:
        return {
            "request_id": self.request_id,
            "method": self.method,
            "path": self.path,
            "client_ip": self.ip,
            "user_agent": self.user_agent,
        }


def generate_request_id() -> str:
    return str(uuid.uuid4())


def resolve_request_id(headers: Mapping[str, str]) -> str:
    """Reuse the caller's correlation id when present."""
    request_id = (headers.get(REQUEST_ID_HEADER) or "").strip()
    return request_id or generate_request_id()


def resolve_client_ip(
    headers: Mapping[str, str], peer_host: str | None = None,
) -> str | None:
    """First x-forwarded-for hop, then x-real-ip, then the socket peer."""
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return headers.get("x-real-ip") or peer_host


def build_request_context(
    method: str,
    path: str,
    headers: Mapping[str, str],
    peer_host: str | None = None,
) -> RequestContext:
    return RequestContext(
        request_id=resolve_request_id(headers),
        method=method,
        path=path,
        ip=resolve_client_ip(headers, peer_host),
        user_agent=headers.get("user-agent"),
    )
