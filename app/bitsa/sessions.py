"""
Server-side session store.

A login issues one row in ``sessions`` keyed by a random sid. The sid is the
only thing placed in the (signed) Flask cookie; the claims object stays in the
database and is re-read on every request.
"""
from __future__ import annotations

import json
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import delete
from sqlalchemy.orm import Session

from app.bitsa.models import AuthSession, User
from app.bitsa.security import generate_session_id


def _is_inline(url: str | None) -> bool:
    return bool(url) and url.startswith("data:")


def build_claims(user: User, expires_at: datetime) -> dict[str, Any]:
    return {
        "sub": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "name": user.display_name,
        # inline data: avatars stay on the user row only
        "profile_image_url": None if _is_inline(user.profile_image_url) else user.profile_image_url,
        "exp": int((expires_at - datetime(1970, 1, 1)).total_seconds()),
    }


def issue_session(s: Session, user: User, *, ttl: timedelta, now: datetime | None = None) -> AuthSession:
    now = now or datetime.utcnow()
    expires_at = now + ttl
    row = AuthSession(
        sid=generate_session_id(),
        user_id=user.id,
        sess=json.dumps(build_claims(user, expires_at), sort_keys=True),
        expire=expires_at,
    )
    s.add(row)
    return row


def load_session(s: Session, sid: str | None, now: datetime | None = None) -> dict[str, Any] | None:
    """Return the claims for `sid`, or None if unknown or expired. Expired rows are dropped."""
    if not sid:
        return None
    row = s.get(AuthSession, sid)
    if row is None:
        return None
    now = now or datetime.utcnow()
    if row.expire <= now:
        # staged only; the caller commits
        s.delete(row)
        return None
    try:
        return json.loads(row.sess)
    except ValueError:
        return None


def destroy_session(s: Session, sid: str | None) -> None:
    if not sid:
        return
    row = s.get(AuthSession, sid)
    if row is not None:
        s.delete(row)


def revoke_user_sessions(s: Session, user_id: str) -> int:
    result = s.execute(delete(AuthSession).where(AuthSession.user_id == user_id))
    return result.rowcount or 0


def purge_expired_sessions(s: Session, now: datetime | None = None) -> int:
    now = now or datetime.utcnow()
    result = s.execute(delete(AuthSession).where(AuthSession.expire <= now))
    return result.rowcount or 0
