"""Auth Routes — login cookie, logout, session introspection.

Invariants:
    - Wrong password → 401 {"error": "Invalid credentials"}, no cookie
    - Login sets an http-only SameSite=Lax session cookie; Secure only in production
    - The cookie set by login opens the gated routes
"""

from portfolio.core.domain_types import RuntimeEnvironment


async def test_wrong_password(client, settings):
    resp = await client.post("/api/auth/login", json={"password": "guess"})

    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid credentials"}
    assert settings.session_cookie_name not in resp.headers.get("set-cookie", "")


async def test_empty_password_is_invalid_request(client):
    resp = await client.post("/api/auth/login", json={"password": ""})

    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid request data"


async def test_login_sets_session_cookie(client, settings):
    resp = await client.post("/api/auth/login", json={"password": settings.admin_password})

    assert resp.status_code == 200
    body = resp.json()
    assert body["authenticated"] is True
    assert body["user"] == {"id": "1", "name": "Admin"}
    cookie = resp.headers["set-cookie"]
    assert cookie.startswith(f"{settings.session_cookie_name}=")
    assert "HttpOnly" in cookie
    assert "SameSite=lax" in cookie
    assert "Secure" not in cookie
    assert f"Max-Age={settings.session_max_age_seconds}" in cookie


async def test_login_cookie_opens_gated_routes(client, settings, fake_backend):
    fake_backend.on("DELETE", "/api/albums/a1", json={"success": True})

    await client.post("/api/auth/login", json={"password": settings.admin_password})
    resp = await client.delete("/api/albums/a1")

    assert resp.status_code == 200


async def test_production_cookie_is_secure(build_app, settings, open_client):
    app = build_app(settings, environment=RuntimeEnvironment.PRODUCTION)

    async with open_client(app) as c:
        resp = await c.post("/api/auth/login", json={"password": settings.admin_password})

    assert "Secure" in resp.headers["set-cookie"]


async def test_session_anonymous(client):
    resp = await client.get("/api/auth/session")

    assert resp.status_code == 200
    assert resp.json() == {"authenticated": False, "user": None, "expires_at": None}


async def test_session_authenticated(auth_client):
    resp = await auth_client.get("/api/auth/session")

    body = resp.json()
    assert body["authenticated"] is True
    assert body["user"]["name"] == "Admin"
    assert body["expires_at"] > 0


async def test_logout_clears_cookie(auth_client, settings):
    resp = await auth_client.post("/api/auth/logout")

    assert resp.status_code == 200
    assert resp.json() == {"success": True}
    cookie = resp.headers["set-cookie"]
    assert cookie.startswith(f'{settings.session_cookie_name}=""')
    assert "Max-Age=0" in cookie
