"""Backend Client — the one outbound HTTP path to the image/album backend.

Invariants:
    - base_url unset → BackendNotConfiguredError before any IO
    - X-API-Key attached (when configured) to every non-GET call and to
      authenticated GETs; never to public GETs
    - Non-2xx → BackendResponseError carrying status + parsed JSON body
      (fallback {"error": "Backend request failed"} when the body is not JSON)
    - Empty 2xx body → {}; malformed 2xx JSON raises ValueError (masked 500 upstream)
    - Network errors (httpx.HTTPError) propagate unchanged to the route boundary
    - No retries, no custom timeout: httpx defaults apply

Design Decisions:
    - One shared httpx.AsyncClient per app, closed on shutdown
    - transport parameter: tests plug in httpx.MockTransport
"""

import logging
from typing import Any

import httpx

from portfolio.core.errors import BackendNotConfiguredError, BackendResponseError

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"


class BackendClient:
    """Thin async wrapper over httpx for the backend API."""

    def __init__(
        self,
        base_url: str | None,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/") if base_url else None
        self.api_key = api_key
        self._client = httpx.AsyncClient(transport=transport)

    @property
    def configured(self) -> bool:
        return self.base_url is not None

    def build_url(self, path: str) -> str:
        if not self.base_url:
            raise BackendNotConfiguredError()
        return f"{self.base_url}{path}"

    def _headers(self, method: str, authenticated: bool) -> dict[str, str]:
        headers = {}
        if self.api_key and (method.upper() != "GET" or authenticated):
            headers[API_KEY_HEADER] = self.api_key
        return headers

    async def send(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
        authenticated: bool = False,
    ) -> httpx.Response:
        """Issue one request; status handling is left to the caller."""
        url = self.build_url(path)
        return await self._client.request(
            method,
            url,
            json=json,
            params=params,
            files=files,
            headers=self._headers(method, authenticated),
        )

    async def fetch_json(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
        authenticated: bool = False,
    ) -> Any:
        """Send and return the parsed JSON body, raising on non-2xx."""
        response = await self.send(
            method, path, json=json, params=params, files=files,
            authenticated=authenticated,
        )
        if not response.is_success:
            raise BackendResponseError(
                response.status_code, error_payload(response),
            )
        if not response.content:
            return {}
        return response.json()

    async def aclose(self) -> None:
        await self._client.aclose()


def error_payload(response: httpx.Response) -> Any:
    """Backend's JSON error body, or a generic envelope when unparsable."""
    try:
        return response.json()
    except ValueError:
        logger.debug(
            f"Backend returned non-JSON error body (status {response.status_code})",
        )
        return {"error": BackendResponseError.FALLBACK_MESSAGE}
