"""
Append-only audit trail.

Actions are named ``<entity>.<verb>`` (``event.register``, ``blog.delete``,
``auth.login_failed``). The actor may be a loaded ``User`` or the request's
``AuthContext``; anonymous actions pass ``actor=None``.
"""
import json
from typing import Any, Union

from flask import g, has_request_context, request
from sqlalchemy.orm import Session

from app.bitsa.models import AuditEvent, User
from app.bitsa.rbac import AuthContext

Actor = Union[User, AuthContext, None]

_REASON_MAX = 512


def _actor_identity(actor: Actor) -> tuple[str | None, str | None]:
    if actor is None:
        return None, None
    if isinstance(actor, AuthContext):
        return actor.user_id, actor.email
    return actor.id, actor.email


def record_event(
    s: Session,
    *,
    actor: Actor,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    reason: str | None = None,
    metadata: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> AuditEvent:
    in_request = has_request_context()
    actor_id, actor_email = _actor_identity(actor)
    ev = AuditEvent(
        request_id=request_id or (getattr(g, "request_id", None) if in_request else None),
        actor_user_id=actor_id,
        actor_user_email=actor_email,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason[:_REASON_MAX] if reason else None,
        # change sets may carry datetimes
        metadata_json=json.dumps(metadata, sort_keys=True, default=str) if metadata else None,
        client_ip=request.remote_addr if in_request else None,
    )
    s.add(ev)
    return ev
