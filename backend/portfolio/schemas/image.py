"""Image Schemas — metadata returned by every image source.

Invariants:
    - url may be presigned and expire: never cached beyond one response
    - uploadedAt is ISO-8601; the camelCase name is part of the public contract
"""

from pydantic import BaseModel, ConfigDict


class ImageMetadata(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    url: str
    uploadedAt: str
    size: int | None = None
    format: str | None = None
    width: int | None = None
    height: int | None = None


class ImageListResponse(BaseModel):
    images: list[dict]
