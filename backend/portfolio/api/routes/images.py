"""Images — gallery listing and admin deletion through the active image source.

Invariants:
    - Response shape {"images": [...]} regardless of the configured source
    - Listing is public; deletion passes the auth gate
    - Operation name reflects the source (FetchImagesFromBackend / FetchImagesFromLocalStorage)
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from portfolio.api.dependencies import (
    get_image_source, get_logger, get_metrics, require_session,
)
from portfolio.infrastructure.image_sources import ImageSource
from portfolio.infrastructure.metrics import MetricsClient, track_operation
from portfolio.infrastructure.observability import RequestLogger
from portfolio.infrastructure.session_tokens import Session
from portfolio.schemas.image import ImageListResponse

router = APIRouter(prefix="/api/images", tags=["images"])


@router.get("", responses={200: {"model": ImageListResponse}})
async def list_images(
    source: ImageSource = Depends(get_image_source),
    metrics: MetricsClient = Depends(get_metrics),
    log: RequestLogger = Depends(get_logger),
):
    images = await track_operation(
        metrics, f"FetchImagesFrom{source.name}", source.list_images,
    )
    log.info(
        "Images fetched",
        extra={"count": len(images), "source": source.name},
    )
    return JSONResponse(content={"images": images})


@router.delete("/{image_id}")
async def delete_image(
    image_id: str,
    session: Session = Depends(require_session("DeleteImage")),
    source: ImageSource = Depends(get_image_source),
    metrics: MetricsClient = Depends(get_metrics),
    log: RequestLogger = Depends(get_logger),
):
    existed = await track_operation(
        metrics, "DeleteImage", lambda: source.delete_image(image_id),
    )
    log.info(
        "Image deleted" if existed else "Image already absent",
        extra={"image_id": image_id, "source": source.name, "user": session.name},
    )
    return JSONResponse(content={"deleted": image_id})
