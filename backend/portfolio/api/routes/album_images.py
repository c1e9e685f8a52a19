"""Album Images — add, remove and reorder images inside an album.

Invariants:
    - Every route passes the auth gate before the backend is called
    - Reorder sends the full ordered id list; the backend validates it
      against the album's actual contents
    - No coordination between concurrent mutations of one album
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from portfolio.api.dependencies import (
    get_backend, get_logger, get_metrics, require_session,
)
from portfolio.api.routes.albums import album_path
from portfolio.infrastructure.backend_client import BackendClient
from portfolio.infrastructure.metrics import MetricsClient, track_operation
from portfolio.infrastructure.observability import RequestLogger
from portfolio.infrastructure.session_tokens import Session
from portfolio.schemas.album import AddImagesRequest, ReorderImagesRequest

router = APIRouter(prefix="/api/albums", tags=["album-images"])


@router.post("/{album_id}/images")
async def add_album_images(
    album_id: str,
    body: AddImagesRequest,
    session: Session = Depends(require_session("AddAlbumImages")),
    backend: BackendClient = Depends(get_backend),
    metrics: MetricsClient = Depends(get_metrics),
    log: RequestLogger = Depends(get_logger),
):
    """Insert images at body.position (-1 appends)."""
    payload = body.model_dump(exclude_unset=True)
    log = log.bind(album_id=album_id, user=session.name)
    data = await track_operation(
        metrics, "AddAlbumImages",
        lambda: backend.fetch_json(
            "POST", album_path(album_id, "images"), json=payload,
        ),
    )
    log.info(f"Added {len(body.image_ids)} images to album")
    return JSONResponse(content=data)


@router.delete("/{album_id}/images/{image_id}")
async def remove_album_image(
    album_id: str,
    image_id: str,
    session: Session = Depends(require_session("RemoveAlbumImage")),
    backend: BackendClient = Depends(get_backend),
    metrics: MetricsClient = Depends(get_metrics),
    log: RequestLogger = Depends(get_logger),
):
    data = await track_operation(
        metrics, "RemoveAlbumImage",
        lambda: backend.fetch_json(
            "DELETE", album_path(album_id, "images", image_id),
        ),
    )
    log.bind(album_id=album_id, user=session.name).info(
        "Removed image from album", extra={"image_id": image_id},
    )
    return JSONResponse(content=data)


@router.put("/{album_id}/reorder")
async def reorder_album_images(
    album_id: str,
    body: ReorderImagesRequest,
    session: Session = Depends(require_session("ReorderAlbumImages")),
    backend: BackendClient = Depends(get_backend),
    metrics: MetricsClient = Depends(get_metrics),
    log: RequestLogger = Depends(get_logger),
):
    payload = body.model_dump(exclude_unset=True)
    data = await track_operation(
        metrics, "ReorderAlbumImages",
        lambda: backend.fetch_json(
            "PUT", album_path(album_id, "reorder"), json=payload,
        ),
    )
    log.bind(album_id=album_id, user=session.name).info(
        "Album images reordered", extra={"count": len(body.image_ids)},
    )
    return JSONResponse(content=data)
