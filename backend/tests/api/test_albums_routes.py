"""Album Routes — public reads, gated writes, faithful relay of backend answers.

Invariants:
    - Unauthenticated POST/PUT/DELETE → 401 {"error": "Unauthorized"} with zero backend calls
    - Authenticated writes carry X-API-Key and forward the client JSON unchanged
    - POST → 201; backend 4xx relayed with its status and body
    - GET one album: any backend non-2xx → 404 {"error": "Album not found"}
    - Backend 5xx keeps its status with a masked body; network failures → masked 500
    - Album write logs carry the album id and acting user
    - BACKEND_API_URL unset → 500 {"error": "Backend API not configured"}
"""

import json
import logging

import httpx

from portfolio.infrastructure.backend_client import API_KEY_HEADER
from portfolio.infrastructure.session_tokens import create_session_token

ALBUM = {
    "album_id": "a1",
    "name": "Iceland",
    "description": "",
    "cover_image_id": "",
    "image_ids": ["i1", "i2"],
    "tags": ["travel"],
    "published": True,
    "created_at": 1700000000000,
    "updated_at": 1700000000000,
}


# ==============================================================================
# Public reads
# ==============================================================================


async def test_list_albums_is_public(client, fake_backend, metrics):
    fake_backend.on("GET", "/api/albums", json=[ALBUM])

    resp = await client.get("/api/albums")

    assert resp.status_code == 200
    assert resp.json() == [ALBUM]
    assert API_KEY_HEADER not in fake_backend.last_request.headers
    assert "FetchAlbums.Success" in metrics.names


async def test_list_albums_forwards_published_filter(client, fake_backend):
    fake_backend.on("GET", "/api/albums", json=[ALBUM])

    await client.get("/api/albums", params={"published": "true"})

    assert fake_backend.last_request.url.params["published"] == "true"


async def test_list_albums_without_filter_sends_no_query(client, fake_backend):
    fake_backend.on("GET", "/api/albums", json=[])

    await client.get("/api/albums")

    assert fake_backend.last_request.url.query == b""


async def test_get_album(client, fake_backend):
    body = {**ALBUM, "images": [{"id": "i1", "url": "https://cdn/i1"}]}
    fake_backend.on("GET", "/api/albums/a1", json=body)

    resp = await client.get("/api/albums/a1")

    assert resp.status_code == 200
    assert resp.json() == body


async def test_get_album_backend_404_is_album_not_found(client, fake_backend, metrics):
    fake_backend.on("GET", "/api/albums/missing", 404, json={"error": "nope"})

    resp = await client.get("/api/albums/missing")

    assert resp.status_code == 404
    assert resp.json() == {"error": "Album not found"}
    assert "FetchAlbum.Failure" in metrics.names


async def test_get_album_backend_500_is_also_not_found(client, fake_backend):
    fake_backend.on("GET", "/api/albums/a1", 500, json={"error": "db down"})

    resp = await client.get("/api/albums/a1")

    assert resp.status_code == 404
    assert resp.json() == {"error": "Album not found"}


# ==============================================================================
# Auth gate
# ==============================================================================


async def test_create_without_session_never_reaches_backend(client, fake_backend, metrics):
    resp = await client.post("/api/albums", json={"name": "Iceland"})

    assert resp.status_code == 401
    assert resp.json() == {"error": "Unauthorized"}
    assert fake_backend.requests == []
    assert "CreateAlbum" not in metrics.names


async def test_update_and_delete_without_session(client, fake_backend):
    put = await client.put("/api/albums/a1", json={"name": "x"})
    delete = await client.delete("/api/albums/a1")

    assert put.status_code == 401
    assert delete.status_code == 401
    assert put.json() == delete.json() == {"error": "Unauthorized"}
    assert fake_backend.requests == []


async def test_tampered_cookie_is_rejected(app, settings, fake_backend):
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://test",
        cookies={settings.session_cookie_name: "forged.token.value"},
    ) as c:
        resp = await c.delete("/api/albums/a1")

    assert resp.status_code == 401
    assert fake_backend.requests == []


async def test_bearer_token_is_accepted(client, settings, fake_backend):
    fake_backend.on("DELETE", "/api/albums/a1", json={"success": True})
    token = create_session_token(settings.session_secret, 60)

    resp = await client.delete(
        "/api/albums/a1", headers={"Authorization": f"Bearer {token}"},
    )

    assert resp.status_code == 200


# ==============================================================================
# Authenticated writes
# ==============================================================================


async def test_create_album_forwards_body_with_api_key(auth_client, fake_backend, settings):
    fake_backend.on("POST", "/api/albums", json=ALBUM)
    payload = {"name": "Iceland", "tags": ["travel"], "location": "Reykjavik"}

    resp = await auth_client.post("/api/albums", json=payload)

    assert resp.status_code == 201
    assert resp.json() == ALBUM
    sent = fake_backend.last_request
    assert sent.method == "POST"
    assert sent.headers[API_KEY_HEADER] == settings.backend_api_key
    assert json.loads(sent.content) == payload


async def test_create_album_requires_name(auth_client, fake_backend):
    resp = await auth_client.post("/api/albums", json={"description": "no name"})

    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid request data"
    assert fake_backend.requests == []


async def test_update_album_forwards_only_sent_fields(auth_client, fake_backend):
    fake_backend.on("PUT", "/api/albums/a1", json={**ALBUM, "published": False})

    resp = await auth_client.put("/api/albums/a1", json={"published": False})

    assert resp.status_code == 200
    assert resp.json()["published"] is False
    assert json.loads(fake_backend.last_request.content) == {"published": False}


async def test_update_album_logs_album_and_user(auth_client, fake_backend, caplog):
    caplog.set_level(logging.DEBUG, logger="portfolio.request")
    fake_backend.on("PUT", "/api/albums/a1", json=ALBUM)

    resp = await auth_client.put(
        "/api/albums/a1", json={"name": "Iceland"}, headers={"x-request-id": "r-upd"},
    )

    assert resp.status_code == 200
    updating, updated = [
        r for r in caplog.records
        if r.getMessage() in ("Updating album", "Album updated")
    ]
    assert updating.details == ["name"]
    for record in (updating, updated):
        assert record.album_id == "a1"
        assert record.user == "Admin"
        assert record.request_id == "r-upd"


async def test_delete_twice_relays_backend_404(auth_client, fake_backend):
    fake_backend.on("DELETE", "/api/albums/a1", json={"success": True})
    fake_backend.on("DELETE", "/api/albums/a1", 404, json={"error": "Album not found"})

    first = await auth_client.delete("/api/albums/a1")
    second = await auth_client.delete("/api/albums/a1")

    assert first.status_code == 200
    assert first.json() == {"success": True}
    assert second.status_code == 404
    assert second.json() == {"error": "Album not found"}


async def test_backend_client_error_is_relayed_verbatim(auth_client, fake_backend, metrics):
    body = {"error": "Album name already exists", "field": "name"}
    fake_backend.on("POST", "/api/albums", 409, json=body)

    resp = await auth_client.post("/api/albums", json={"name": "Iceland"})

    assert resp.status_code == 409
    assert resp.json() == body
    [api_error] = metrics.named("ApiErrors")
    assert api_error.dimensions["StatusCode"] == "409"


async def test_backend_server_error_is_masked(auth_client, fake_backend):
    fake_backend.on("PUT", "/api/albums/a1", 500, json={"error": "pg: password auth failed"})

    resp = await auth_client.put("/api/albums/a1", json={"name": "x"})

    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error"}


async def test_public_listing_keeps_backend_server_status(client, fake_backend, metrics):
    fake_backend.on("GET", "/api/albums", 503, json={"error": "dynamodb throttled"})

    resp = await client.get("/api/albums")

    assert resp.status_code == 503
    assert resp.json() == {"error": "Internal server error"}
    assert "dynamodb" not in resp.text
    [api_error] = metrics.named("ApiErrors")
    assert api_error.dimensions["StatusCode"] == "503"
    assert api_error.dimensions["Severity"] == "critical"


async def test_network_failure_is_masked(auth_client, fake_backend, metrics):
    def refuse(request):
        raise httpx.ConnectError("connect to 10.0.0.5:5432 refused", request=request)

    fake_backend.on("DELETE", "/api/albums/a1", handler=refuse)

    resp = await auth_client.delete("/api/albums/a1")

    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error"}
    assert "10.0.0.5" not in resp.text
    assert "DeleteAlbum.Failure" in metrics.names


async def test_album_ids_are_percent_encoded(auth_client, fake_backend):
    fake_backend.on("DELETE", "/api/albums/a b", json={"success": True})

    await auth_client.delete("/api/albums/a%20b")

    assert fake_backend.last_request.url.raw_path == b"/api/albums/a%20b"


# ==============================================================================
# Backend not configured
# ==============================================================================


async def test_backend_not_configured(build_app, settings, open_client, fake_backend):
    app = build_app(settings, backend_api_url=None)

    async with open_client(app, authenticated=True) as c:
        listing = await c.get("/api/albums")
        create = await c.post("/api/albums", json={"name": "x"})

    assert listing.status_code == 500
    assert listing.json() == {"error": "Backend API not configured"}
    assert create.status_code == 500
    assert create.json() == {"error": "Backend API not configured"}
    assert fake_backend.requests == []
