"""Root conftest — shared fixtures for app, fake backend and recorded metrics.

Invariants:
    - Every test gets its own app built by create_app() with explicit Settings
    - The backend is an httpx.MockTransport: no network, every request recorded
    - Metrics are captured in memory (RecordingMetrics) instead of emitted

Design Decisions:
    - Unmatched backend routes answer 404 so a missing stub shows up as a clear failure
    - auth_client carries a valid session cookie; client carries none
"""

import os
from collections.abc import Callable

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

# Keep the module-level app in portfolio.main quiet and offline
os.environ.setdefault("METRICS_BACKEND", "disabled")
os.environ.setdefault("ENABLE_REQUEST_LOGGING", "false")

from portfolio.config import Settings  # noqa: E402
from portfolio.core.domain_types import MetricsBackend, RuntimeEnvironment  # noqa: E402
from portfolio.infrastructure.metrics import Metric, MetricsClient  # noqa: E402
from portfolio.infrastructure.session_tokens import create_session_token  # noqa: E402
from portfolio.main import create_app  # noqa: E402

BACKEND_URL = "http://backend.test"
API_KEY = "test-api-key"
ADMIN_PASSWORD = "correct-horse"
SESSION_SECRET = "test-session-secret"


class RecordingMetrics(MetricsClient):
    """Keeps every metric in a list."""

    def __init__(self):
        self.metrics: list[Metric] = []

    async def _emit(self, metric: Metric) -> None:
        self.metrics.append(metric)

    def named(self, name: str) -> list[Metric]:
        return [m for m in self.metrics if m.name == name]

    @property
    def names(self) -> list[str]:
        return [m.name for m in self.metrics]


class FakeBackend:
    """Scriptable backend API behind httpx.MockTransport."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self._routes: dict[tuple[str, str], list[Callable[[httpx.Request], httpx.Response]]] = {}

    def on(
        self,
        method: str,
        path: str,
        status_code: int = 200,
        json=None,
        content: bytes | None = None,
        handler: Callable[[httpx.Request], httpx.Response] | None = None,
    ) -> "FakeBackend":
        """Queue a response. The last queued response repeats."""
        if handler is None:
            def handler(request, status_code=status_code, json=json, content=content):
                if content is not None:
                    return httpx.Response(status_code, content=content)
                return httpx.Response(status_code, json=json)
        self._routes.setdefault((method.upper(), path), []).append(handler)
        return self

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self._routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"error": "No stub for route"})
        handler = queue.pop(0) if len(queue) > 1 else queue[0]
        return handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        backend_api_url=BACKEND_URL,
        backend_api_key=API_KEY,
        admin_password=ADMIN_PASSWORD,
        session_secret=SESSION_SECRET,
        environment=RuntimeEnvironment.TEST,
        metrics_backend=MetricsBackend.DISABLED,
        enable_request_logging=True,
        uploads_dir=str(tmp_path / "uploads"),
    )


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def metrics() -> RecordingMetrics:
    return RecordingMetrics()


@pytest.fixture
def app(settings, fake_backend, metrics):
    application = create_app(settings, backend_transport=fake_backend.transport)
    application.state.metrics = metrics
    return application


@pytest.fixture
async def client(app):
    """Anonymous client — no session cookie."""
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c


@pytest.fixture
async def auth_client(app, settings):
    """Client holding a valid admin session cookie."""
    token = create_session_token(settings.session_secret, 3600)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies={settings.session_cookie_name: token},
    ) as c:
        yield c
