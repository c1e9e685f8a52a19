"""Albums — collection and single-album proxy routes.

Invariants:
    - GET routes are public; POST/PUT/DELETE pass the auth gate first
    - Outbound JSON body == the client's JSON body (exclude_unset dump)
    - Backend 4xx is relayed unchanged (BackendResponseError handler)
    - GET /{album_id}: any non-2xx from the backend becomes 404 "Album not found"
    - POST returns 201; every other success returns 200
"""

from urllib.parse import quote

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from portfolio.api.dependencies import (
    get_backend, get_logger, get_metrics, require_session,
)
from portfolio.core.errors import AlbumNotFoundError, ErrorContext
from portfolio.infrastructure.backend_client import BackendClient
from portfolio.infrastructure.metrics import MetricsClient, track_operation
from portfolio.infrastructure.observability import RequestLogger
from portfolio.infrastructure.session_tokens import Session
from portfolio.schemas.album import (
    Album, AlbumWithImages, CreateAlbumRequest, UpdateAlbumRequest,
)

router = APIRouter(prefix="/api/albums", tags=["albums"])


def album_path(album_id: str, *parts: str) -> str:
    """Backend path for an album, ids percent-encoded."""
    segments = [quote(album_id, safe="")] + [quote(p, safe="") for p in parts]
    return "/api/albums/" + "/".join(segments)


@router.get("")
async def list_albums(
    published: bool | None = Query(None),
    backend: BackendClient = Depends(get_backend),
    metrics: MetricsClient = Depends(get_metrics),
    log: RequestLogger = Depends(get_logger),
):
    """List albums, optionally only published ones."""
    params = {"published": published} if published is not None else None
    log.debug("Fetching albums", extra={"details": params})
    data = await track_operation(
        metrics, "FetchAlbums",
        lambda: backend.fetch_json("GET", "/api/albums", params=params),
    )
    return JSONResponse(content=data)


@router.post(
    "", status_code=status.HTTP_201_CREATED,
    responses={201: {"model": Album}},
)
async def create_album(
    body: CreateAlbumRequest,
    session: Session = Depends(require_session("CreateAlbum")),
    backend: BackendClient = Depends(get_backend),
    metrics: MetricsClient = Depends(get_metrics),
    log: RequestLogger = Depends(get_logger),
):
    payload = body.model_dump(exclude_unset=True)
    data = await track_operation(
        metrics, "CreateAlbum",
        lambda: backend.fetch_json("POST", "/api/albums", json=payload),
    )
    log.info("Album created", extra={"user": session.name})
    return JSONResponse(content=data, status_code=status.HTTP_201_CREATED)


@router.get("/{album_id}", responses={200: {"model": AlbumWithImages}})
async def get_album(
    album_id: str,
    backend: BackendClient = Depends(get_backend),
    metrics: MetricsClient = Depends(get_metrics),
    log: RequestLogger = Depends(get_logger),
):
    """Album with its resolved image references."""

    async def fetch_album():
        response = await backend.send("GET", album_path(album_id))
        if not response.is_success:
            raise AlbumNotFoundError(
                album_id, ErrorContext(
                    operation="FetchAlbum",
                    debug_info={"backend_status": response.status_code},
                ),
            )
        return response.json()

    data = await track_operation(metrics, "FetchAlbum", fetch_album)
    log.debug("Album fetched", extra={"album_id": album_id})
    return JSONResponse(content=data)


@router.put("/{album_id}", responses={200: {"model": Album}})
async def update_album(
    album_id: str,
    body: UpdateAlbumRequest,
    session: Session = Depends(require_session("UpdateAlbum")),
    backend: BackendClient = Depends(get_backend),
    metrics: MetricsClient = Depends(get_metrics),
    log: RequestLogger = Depends(get_logger),
):
    payload = body.model_dump(exclude_unset=True)
    log = log.bind(album_id=album_id, user=session.name)
    log.debug("Updating album", extra={"details": sorted(payload)})
    data = await track_operation(
        metrics, "UpdateAlbum",
        lambda: backend.fetch_json("PUT", album_path(album_id), json=payload),
    )
    log.info("Album updated")
    return JSONResponse(content=data)


@router.delete("/{album_id}")
async def delete_album(
    album_id: str,
    session: Session = Depends(require_session("DeleteAlbum")),
    backend: BackendClient = Depends(get_backend),
    metrics: MetricsClient = Depends(get_metrics),
    log: RequestLogger = Depends(get_logger),
):
    data = await track_operation(
        metrics, "DeleteAlbum",
        lambda: backend.fetch_json("DELETE", album_path(album_id)),
    )
    log.info("Album deleted", extra={"album_id": album_id, "user": session.name})
    return JSONResponse(content=data)
