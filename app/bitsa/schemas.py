"""
Request DTOs shared by the API blueprints.

Bodies arrive as camelCase JSON; models declare snake_case fields and accept
either spelling. `parse_body()` turns pydantic errors into `ValidationFailed`.
"""
from __future__ import annotations

import re
from typing import Annotated, Any, TypeVar

from flask import request
from pydantic import AfterValidator, BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from app.bitsa.constants import PASSWORD_MIN_LENGTH
from app.bitsa.errors import ValidationFailed

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

M = TypeVar("M", bound=BaseModel)


class RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


def normalize_email(value: str) -> str:
    value = (value or "").strip().lower()
    if not _EMAIL_RE.match(value):
        raise ValueError("Invalid email address")
    return value


Email = Annotated[str, AfterValidator(normalize_email)]


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def parse_body(model: type[M], data: Any | None = None) -> M:
    if data is None:
        data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationFailed("Request body must be a JSON object")
    try:
        return model.model_validate(data)
    except ValidationError as e:
        errors = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        first = errors[0] if errors else None
        message = f"{first['field']}: {first['message']}" if first and first["field"] else None
        raise ValidationFailed(message, errors=errors)


# -- Auth / accounts ---------------------------------------


class RegisterRequest(RequestModel):
    email: Email
    password: str = Field(min_length=PASSWORD_MIN_LENGTH)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    student_id: str | None = None
    course: str | None = None
    year_of_study: str | None = None
    phone: str | None = None

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def strip_names(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("student_id", "course", "year_of_study", "phone", mode="before")
    @classmethod
    def optional_blank(cls, v: Any) -> Any:
        return _blank_to_none(v)


class LoginRequest(RequestModel):
    email: str
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        # Unknown or malformed emails fail as bad credentials, not as a validation error.
        return (v or "").strip().lower()


class ForgotPasswordRequest(RequestModel):
    email: Email


class ResetPasswordRequest(RequestModel):
    token: str = Field(min_length=1)
    password: str = Field(min_length=PASSWORD_MIN_LENGTH)


class ProfileUpdateRequest(RequestModel):
    first_name: str | None = Field(default=None, min_length=1)
    last_name: str | None = Field(default=None, min_length=1)
    student_id: str | None = None
    course: str | None = None
    year_of_study: str | None = None
    phone: str | None = None

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def strip_names(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("student_id", "course", "year_of_study", "phone", mode="before")
    @classmethod
    def optional_blank(cls, v: Any) -> Any:
        return _blank_to_none(v)


class AvatarUploadRequest(RequestModel):
    image_data: str = Field(min_length=1)
