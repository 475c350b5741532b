from __future__ import annotations

from flask import Blueprint, jsonify

from app.bitsa.db import db_session
from app.bitsa.errors import NotFound, Unauthenticated
from app.bitsa.models import User
from app.bitsa.modules.events.schemas import EventCreate, EventUpdate
from app.bitsa.modules.events.service import (
    attendee_count,
    create_event,
    delete_event,
    get_event,
    is_registered,
    list_attendees,
    list_events,
    register_for_event,
    require_event,
    serialize_event,
    unregister_from_event,
    update_event,
)
from app.bitsa.rbac import AuthContext, require_admin, require_auth
from app.bitsa.schemas import parse_body

bp = Blueprint("events", __name__)


def _acting_user(s, auth: AuthContext) -> User:
    user = s.get(User, auth.user_id)
    if user is None:
        raise Unauthenticated()
    return user


# ---------- Public ----------
@bp.get("")
def events_list():
    return jsonify([serialize_event(e) for e in list_events(db_session())])


@bp.get("/<event_id>")
def event_detail(event_id: str):
    event = get_event(db_session(), event_id)
    if event is None:
        raise NotFound("Event not found")
    return jsonify(serialize_event(event))


# ---------- Admin ----------
@bp.post("")
@require_admin
def event_create(auth: AuthContext):
    req = parse_body(EventCreate)
    s = db_session()
    event = create_event(s, req, auth)
    s.commit()
    return jsonify(serialize_event(event)), 201


@bp.put("/<event_id>")
@require_admin
def event_update(event_id: str, auth: AuthContext):
    req = parse_body(EventUpdate)
    s = db_session()
    event = update_event(s, event_id, req, auth)
    s.commit()
    return jsonify(serialize_event(event))


@bp.delete("/<event_id>")
@require_admin
def event_delete(event_id: str, auth: AuthContext):
    s = db_session()
    delete_event(s, event_id, auth)
    s.commit()
    return "", 204


@bp.get("/<event_id>/attendees")
@require_admin
def event_attendees(event_id: str, auth: AuthContext):
    return jsonify(list_attendees(db_session(), event_id))


# ---------- Registration ----------
@bp.post("/<event_id>/register")
@require_auth
def event_register(event_id: str, auth: AuthContext):
    s = db_session()
    count = register_for_event(s, event_id, _acting_user(s, auth))
    s.commit()
    return jsonify({"message": "Successfully registered for event", "attendeeCount": count})


@bp.delete("/<event_id>/register")
@require_auth
def event_unregister(event_id: str, auth: AuthContext):
    s = db_session()
    count = unregister_from_event(s, event_id, _acting_user(s, auth))
    s.commit()
    return jsonify({"message": "Successfully unregistered from event", "attendeeCount": count})


@bp.get("/<event_id>/registration-status")
@require_auth
def event_registration_status(event_id: str, auth: AuthContext):
    s = db_session()
    event = require_event(s, event_id)
    return jsonify(
        {
            "isRegistered": is_registered(s, event.id, auth.user_id),
            "attendeeCount": attendee_count(s, event.id),
        }
    )
