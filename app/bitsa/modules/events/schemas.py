from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import Field, field_validator

from app.bitsa.schemas import RequestModel


def _naive_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class EventCreate(RequestModel):
    # attendeeCount is deliberately absent: the count is derived from registrations.
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    date: datetime
    time: str = Field(min_length=1)
    location: str = Field(min_length=1)
    image_url: str | None = None

    @field_validator("date")
    @classmethod
    def to_naive_utc(cls, v: datetime) -> datetime:
        return _naive_utc(v)

    @field_validator("image_url", mode="before")
    @classmethod
    def blank_image(cls, v: Any) -> Any:
        return v or None


class EventUpdate(RequestModel):
    title: str | None = Field(default=None, min_length=1)
    description: str | None = Field(default=None, min_length=1)
    date: datetime | None = None
    time: str | None = Field(default=None, min_length=1)
    location: str | None = Field(default=None, min_length=1)
    image_url: str | None = None

    @field_validator("date")
    @classmethod
    def to_naive_utc(cls, v: datetime | None) -> datetime | None:
        return _naive_utc(v)
