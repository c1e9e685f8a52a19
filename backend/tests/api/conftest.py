"""API conftest — app variants (local image storage, other environments) and client helpers."""

from contextlib import asynccontextmanager
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from portfolio.core.domain_types import ImageSourceKind
from portfolio.infrastructure.session_tokens import create_session_token
from portfolio.main import create_app


@asynccontextmanager
async def _open_client(app, authenticated=False):
    """AsyncClient bound to app, optionally carrying an admin session cookie."""
    settings = app.state.settings
    cookies = {}
    if authenticated:
        cookies[settings.session_cookie_name] = create_session_token(
            settings.session_secret, 3600,
        )
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test", cookies=cookies,
    ) as c:
        yield c


@pytest.fixture
def open_client():
    return _open_client


@pytest.fixture
def build_app(fake_backend, metrics):
    """Factory: app for settings overridden with **changes, sharing fake backend + metrics."""

    def _build(settings, **changes):
        application = create_app(
            settings.model_copy(update=changes),
            backend_transport=fake_backend.transport,
        )
        application.state.metrics = metrics
        return application

    return _build


@pytest.fixture
def local_app(build_app, settings):
    return build_app(settings, image_source=ImageSourceKind.LOCAL)


@pytest.fixture
def uploads_dir(settings):
    return Path(settings.uploads_dir)
