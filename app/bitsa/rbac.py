from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from functools import wraps
from typing import Any

from flask import current_app, g, request

from app.bitsa.db import db_session
from app.bitsa.errors import Forbidden, Unauthenticated
from app.bitsa.models import User


@dataclass(frozen=True)
class AuthContext:
    """Identity of the caller for one request, built from the verified session."""

    sid: str
    user_id: str
    email: str
    name: str
    is_admin: bool
    expires_at: int


def current_auth() -> AuthContext | None:
    return getattr(g, "auth", None)


def require_auth(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Reject anonymous callers with 401; pass the AuthContext to the view as `auth`."""

    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        auth = current_auth()
        if auth is None:
            raise Unauthenticated()
        return fn(*args, auth=auth, **kwargs)

    return wrapped


def require_admin(fn: Callable[..., Any]) -> Callable[..., Any]:
    """
    401 for anonymous callers, 403 for non-admins.

    The admin flag is read from the users table on every request (never from the
    session claims) so revoking the role takes effect on the next call.
    """

    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        auth = current_auth()
        if auth is None:
            raise Unauthenticated()
        user = db_session().get(User, auth.user_id)
        if user is None:
            raise Unauthenticated()
        if not user.is_admin:
            current_app.logger.warning(
                "Forbidden: admin required user_id=%s path=%s request_id=%s",
                auth.user_id,
                request.path,
                getattr(g, "request_id", None),
            )
            raise Forbidden()
        return fn(*args, auth=replace(auth, is_admin=True), **kwargs)

    return wrapped
