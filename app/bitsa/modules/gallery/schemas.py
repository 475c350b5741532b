from __future__ import annotations

from pydantic import Field

from app.bitsa.schemas import RequestModel


class GalleryImageCreate(RequestModel):
    title: str = Field(min_length=1)
    image_url: str = Field(min_length=1)
    caption: str | None = None
    category: str | None = None


class GalleryImageUpdate(RequestModel):
    title: str | None = Field(default=None, min_length=1)
    image_url: str | None = Field(default=None, min_length=1)
    caption: str | None = None
    category: str | None = None
