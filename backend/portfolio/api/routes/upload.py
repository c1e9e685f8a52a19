"""Upload — validated multipart image upload into the active image source.

Invariants:
    - Auth gate first, then local validation, then the image source
    - Rejections return 400 with a fixed message and never reach the source:
      "No file provided", "File too large" (> 50 MiB), "Invalid file type"
    - Metrics: UploadRejected{Reason} per rejection, ImageUploaded{FileType}
      per success, UploadFailed per hard failure (then re-raised, masked 500)
"""

import time

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile

from portfolio.api.dependencies import (
    get_image_source, get_logger, get_metrics, require_session,
)
from portfolio.core.upload_rules import MAX_UPLOAD_BYTES, UploadRejection, check_upload
from portfolio.infrastructure.image_sources import ImageSource
from portfolio.infrastructure.metrics import MetricsClient, track_operation
from portfolio.infrastructure.observability import RequestLogger
from portfolio.infrastructure.session_tokens import Session

router = APIRouter(prefix="/api/upload", tags=["upload"])

FILE_FIELD = "file"


@router.post("")
async def upload_image(
    request: Request,
    session: Session = Depends(require_session("UploadImage")),
    source: ImageSource = Depends(get_image_source),
    metrics: MetricsClient = Depends(get_metrics),
    log: RequestLogger = Depends(get_logger),
):
    """Accept one image as multipart field "file"."""
    start = time.perf_counter()
    try:
        form = await request.form()
        upload = form.get(FILE_FIELD)
        if not isinstance(upload, UploadFile):
            log.warning("Upload request missing file")
            return await _reject(metrics, UploadRejection.NO_FILE)

        content = await upload.read()
        file_name = upload.filename or ""
        file_type = upload.content_type
        rejection = check_upload(len(content), file_type)
        if rejection is not None:
            log.warning(
                rejection.message,
                extra={
                    "reason": rejection.value,
                    "file_name": file_name,
                    "file_size": len(content),
                    "file_type": file_type,
                    "details": {"max_size": MAX_UPLOAD_BYTES},
                },
            )
            return await _reject(metrics, rejection)

        log.debug(
            "Uploading file",
            extra={
                "file_name": file_name, "file_size": len(content),
                "file_type": file_type, "source": source.name,
            },
        )
        result = await track_operation(
            metrics, "UploadImage",
            lambda: source.upload_image(content, file_name, file_type),
        )
    except Exception:
        await metrics.track_count("UploadFailed", 1)
        raise

    log.info(
        "File uploaded",
        extra={
            "file_name": file_name,
            "file_size": len(content),
            "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            "user": session.name,
        },
    )
    await metrics.track_count("ImageUploaded", 1, {"FileType": file_type})
    return JSONResponse(content=result)


async def _reject(metrics: MetricsClient, rejection: UploadRejection) -> JSONResponse:
    await metrics.track_count("UploadRejected", 1, {"Reason": rejection.value})
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": rejection.message},
    )
