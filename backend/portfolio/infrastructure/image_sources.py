"""Image Sources — one interface for listing, storing and deleting images.

Invariants:
    - Exactly one source is active per process, chosen by settings.image_source
    - list_images() always yields the {id, name, url, uploadedAt, ...} shape
    - LocalFileImageSource re-reads the directory on every call (no index)
    - Local listing is sorted by modification time, newest first
    - Local filenames are reduced to their basename (no path traversal)
    - Deleting a missing local file is not an error; delete_image reports
      whether the image was there

Design Decisions:
    - Strategy objects over per-route if/else on the deployment mode
    - Filesystem calls run in asyncio.to_thread
    - OSError mapped to StorageError, backend failures to BackendResponseError /
      UpstreamUploadError (core/errors.py)
"""

import asyncio
import mimetypes
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from urllib.parse import quote

from portfolio.config import Settings
from portfolio.core.domain_types import ImageSourceKind
from portfolio.core.errors import StorageError, UpstreamUploadError
from portfolio.infrastructure.backend_client import BackendClient
from portfolio.schemas.image import ImageMetadata

IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg"})


class ImageSource(ABC):
    """Where gallery images live."""

    name: str = "Unknown"

    @abstractmethod
    async def list_images(self) -> list[dict[str, Any]]:
        ...

    @abstractmethod
    async def upload_image(
        self, content: bytes, filename: str, content_type: str | None = None,
    ) -> dict[str, Any]:
        ...

    @abstractmethod
    async def delete_image(self, image_id: str) -> bool:
        """Remove an image; returns whether the source reported it present."""


class BackendImageSource(ImageSource):
    """Images held by the backend API."""

    name = "Backend"

    def __init__(self, backend: BackendClient):
        self.backend = backend

    async def list_images(self) -> list[dict[str, Any]]:
        data = await self.backend.fetch_json("GET", "/api/images")
        if isinstance(data, dict):
            return list(data.get("images") or [])
        if isinstance(data, list):
            return data
        return []

    async def upload_image(
        self, content: bytes, filename: str, content_type: str | None = None,
    ) -> dict[str, Any]:
        response = await self.backend.send(
            "POST", "/api/images/upload",
            files={"image": (filename, content, content_type or "application/octet-stream")},
        )
        if not response.is_success:
            raise UpstreamUploadError(response.text or "Upload failed")
        return response.json()

    async def delete_image(self, image_id: str) -> bool:
        # a non-2xx answer raises BackendResponseError
        await self.backend.fetch_json(
            "DELETE", f"/api/images/{quote(image_id, safe='')}",
        )
        return True


class LocalFileImageSource(ImageSource):
    """Images stored as plain files under one directory."""

    name = "LocalStorage"

    def __init__(self, uploads_dir: str | Path, public_path: str = "/uploads"):
        self.uploads_dir = Path(uploads_dir)
        self.public_path = public_path.rstrip("/")

    # ─── Public API ──────────────────────────────────────────────

    async def list_images(self) -> list[dict[str, Any]]:
        return await self._run("list", self._list_sync)

    async def upload_image(
        self, content: bytes, filename: str, content_type: str | None = None,
    ) -> dict[str, Any]:
        safe_name = self._safe_name(filename, content_type)
        return await self._run("write", self._write_sync, content, safe_name)

    async def delete_image(self, image_id: str) -> bool:
        existed = await self.image_exists(image_id)
        await self._run("delete", self.get_image_path(image_id).unlink, missing_ok=True)
        return existed

    async def image_exists(self, filename: str) -> bool:
        return await asyncio.to_thread(self.get_image_path(filename).is_file)

    def get_image_url(self, filename: str) -> str:
        return f"{self.public_path}/{Path(filename).name}"

    def get_image_path(self, filename: str) -> Path:
        return self.uploads_dir / Path(filename.replace("\\", "/")).name

    # ─── Sync helpers (run in worker thread) ─────────────────────

    def _ensure_dir(self) -> None:
        self.uploads_dir.mkdir(parents=True, exist_ok=True)

    def _list_sync(self) -> list[dict[str, Any]]:
        self._ensure_dir()
        entries = []
        for path in self.uploads_dir.iterdir():
            if not path.is_file() or path.suffix.lower() not in IMAGE_EXTENSIONS:
                continue
            stat = path.stat()
            entries.append((stat.st_mtime, self._metadata(path, stat)))
        entries.sort(key=lambda e: e[0], reverse=True)
        return [meta for _, meta in entries]

    def _write_sync(self, content: bytes, filename: str) -> dict[str, Any]:
        self._ensure_dir()
        path = self.uploads_dir / filename
        path.write_bytes(content)
        return self._metadata(path, path.stat())

    def _metadata(self, path: Path, stat) -> dict[str, Any]:
        return ImageMetadata(
            id=path.name,
            name=path.stem,
            url=self.get_image_url(path.name),
            uploadedAt=datetime.fromtimestamp(
                stat.st_mtime, tz=timezone.utc,
            ).isoformat(),
            size=stat.st_size,
            format=path.suffix.lstrip(".").lower() or None,
        ).model_dump(exclude_none=True)

    @staticmethod
    def _safe_name(filename: str, content_type: str | None) -> str:
        name = Path((filename or "").replace("\\", "/")).name
        if name in ("", ".", ".."):
            ext = mimetypes.guess_extension(content_type or "") or ""
            name = f"{uuid.uuid4().hex}{ext}"
        return name

    async def _run(self, operation: str, fn, *args, **kwargs):
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except OSError as e:
            raise StorageError(str(e), operation)


def create_image_source(settings: Settings, backend: BackendClient) -> ImageSource:
    """Pick the image source once, at startup."""
    if settings.image_source == ImageSourceKind.LOCAL:
        return LocalFileImageSource(settings.uploads_dir, settings.uploads_public_path)
    return BackendImageSource(backend)
