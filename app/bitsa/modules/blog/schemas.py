from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from app.bitsa.schemas import RequestModel


class BlogPostCreate(RequestModel):
    title: str = Field(min_length=1)
    slug: str | None = None  # derived from the title when omitted
    excerpt: str = Field(min_length=1)
    content: str = Field(min_length=1)
    category: str = Field(min_length=1)
    image_url: str | None = None

    @field_validator("slug", "image_url", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
        return v or None


class BlogPostUpdate(RequestModel):
    title: str | None = Field(default=None, min_length=1)
    slug: str | None = Field(default=None, min_length=1)
    excerpt: str | None = Field(default=None, min_length=1)
    content: str | None = Field(default=None, min_length=1)
    category: str | None = Field(default=None, min_length=1)
    image_url: str | None = None
