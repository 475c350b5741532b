from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from app.bitsa.schemas import RequestModel


class _WithImage(RequestModel):
    image_url: str | None = None

    @field_validator("image_url", mode="before")
    @classmethod
    def blank_image(cls, v: Any) -> Any:
        return v or None


class DiscussionCreate(_WithImage):
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)


class ReplyCreate(_WithImage):
    content: str = Field(min_length=1)
