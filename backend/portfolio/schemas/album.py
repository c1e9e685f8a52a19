"""Album Schemas — DTOs exchanged with the backend album endpoints.

Invariants:
    - image_ids order is display order and is never re-sorted here
    - Request bodies are forwarded as model_dump(exclude_unset=True),
      so the outbound JSON equals what the client sent
    - AddImagesRequest.position == -1 means append
"""

from pydantic import BaseModel, ConfigDict, Field


class _PassThrough(BaseModel):
    model_config = ConfigDict(extra="allow")


class AlbumImage(_PassThrough):
    """Lightweight image reference resolved by the backend."""
    id: str
    url: str


class Album(_PassThrough):
    album_id: str
    name: str
    description: str = ""
    cover_image_id: str = ""
    image_ids: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    published: bool = False
    created_at: int = 0  # epoch ms
    updated_at: int = 0  # epoch ms


class AlbumWithImages(Album):
    images: list[AlbumImage] = Field(default_factory=list)


class CreateAlbumRequest(_PassThrough):
    name: str
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    published: bool = False


class UpdateAlbumRequest(_PassThrough):
    name: str | None = None
    description: str | None = None
    cover_image_id: str | None = None
    tags: list[str] | None = None
    published: bool | None = None


class AddImagesRequest(_PassThrough):
    image_ids: list[str]
    position: int = Field(-1, ge=-1)


class ReorderImagesRequest(_PassThrough):
    image_ids: list[str]
