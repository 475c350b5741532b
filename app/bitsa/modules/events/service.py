"""
Events and the registration ledger.

`event_registrations` is the only source of truth for who attends what. The
`Event.attendee_count` column is a display cache that is rewritten from the
ledger after every register/unregister; it is never taken from client input.

Duplicate registrations are rejected by the (event_id, user_id) unique
constraint rather than by a read-then-write check, so two concurrent requests
for the same pair still leave exactly one row.
"""
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from app.bitsa.audit import record_event
from app.bitsa.errors import AlreadyRegistered, NotFound
from app.bitsa.models import User
from app.bitsa.modules.events.models import Event, EventRegistration
from app.bitsa.utils import isoformat

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.bitsa.modules.events.schemas import EventCreate, EventUpdate
    from app.bitsa.rbac import AuthContext


def serialize_event(event: Event) -> dict[str, Any]:
    return {
        "id": event.id,
        "title": event.title,
        "description": event.description,
        "date": isoformat(event.date),
        "time": event.time,
        "location": event.location,
        "imageUrl": event.image_url,
        "attendeeCount": event.attendee_count,
        "createdAt": isoformat(event.created_at),
    }


def list_events(s: "Session") -> list[Event]:
    return s.query(Event).order_by(Event.date.desc()).all()


def get_event(s: "Session", event_id: str) -> Event | None:
    return s.get(Event, event_id)


def require_event(s: "Session", event_id: str) -> Event:
    event = get_event(s, event_id)
    if event is None:
        raise NotFound("Event not found")
    return event


def create_event(s: "Session", req: "EventCreate", actor: "AuthContext") -> Event:
    event = Event(
        title=req.title,
        description=req.description,
        date=req.date,
        time=req.time,
        location=req.location,
        image_url=req.image_url,
        attendee_count="0",
        created_at=datetime.utcnow(),
    )
    s.add(event)
    s.flush()
    record_event(
        s,
        actor=actor,
        action="event.create",
        entity_type="Event",
        entity_id=event.id,
        metadata={"title": event.title},
    )
    return event


def update_event(s: "Session", event_id: str, req: "EventUpdate", actor: "AuthContext") -> Event:
    event = require_event(s, event_id)
    changes = {}
    for field, value in req.model_dump(exclude_unset=True).items():
        if value is None and field != "image_url":
            continue
        old = getattr(event, field)
        if old != value:
            changes[field] = {"old": str(old) if old is not None else None, "new": str(value) if value is not None else None}
            setattr(event, field, value)
    record_event(
        s,
        actor=actor,
        action="event.edit",
        entity_type="Event",
        entity_id=event.id,
        metadata={"title": event.title, "changes": changes},
    )
    return event


def delete_event(s: "Session", event_id: str, actor: "AuthContext") -> None:
    event = require_event(s, event_id)
    record_event(
        s,
        actor=actor,
        action="event.delete",
        entity_type="Event",
        entity_id=event.id,
        metadata={"title": event.title},
    )
    s.delete(event)


# ---------- Registration ledger ----------


def attendee_count(s: "Session", event_id: str) -> int:
    return (
        s.query(func.count(EventRegistration.id))
        .filter(EventRegistration.event_id == event_id)
        .scalar()
        or 0
    )


def is_registered(s: "Session", event_id: str, user_id: str) -> bool:
    return (
        s.query(EventRegistration.id)
        .filter(EventRegistration.event_id == event_id, EventRegistration.user_id == user_id)
        .first()
        is not None
    )


def refresh_attendee_count(s: "Session", event: Event) -> int:
    s.flush()
    count = attendee_count(s, event.id)
    event.attendee_count = str(count)
    return count


def register_for_event(s: "Session", event_id: str, user: User) -> int:
    """
    Add `user` to the event's ledger and return the new attendee count.

    Raises NotFound for an unknown event and AlreadyRegistered when the pair
    already exists. Any other integrity failure propagates unchanged.
    """
    user_id = user.id
    event = require_event(s, event_id)
    s.add(EventRegistration(event_id=event.id, user_id=user_id, registered_at=datetime.utcnow()))
    try:
        s.flush()  # Force unique constraint check
    except IntegrityError:
        s.rollback()
        if is_registered(s, event_id, user_id):
            raise AlreadyRegistered()
        raise

    count = refresh_attendee_count(s, event)
    record_event(s, actor=user, action="event.register", entity_type="Event", entity_id=event.id)
    return count


def unregister_from_event(s: "Session", event_id: str, user: User) -> int:
    """Remove `user` from the ledger if present (no-op otherwise); return the new count."""
    event = require_event(s, event_id)
    deleted = (
        s.query(EventRegistration)
        .filter(EventRegistration.event_id == event.id, EventRegistration.user_id == user.id)
        .delete(synchronize_session=False)
    )
    count = refresh_attendee_count(s, event)
    if deleted:
        record_event(s, actor=user, action="event.unregister", entity_type="Event", entity_id=event.id)
    return count


def list_attendees(s: "Session", event_id: str) -> list[dict[str, Any]]:
    event = require_event(s, event_id)
    regs = (
        s.query(EventRegistration)
        .filter(EventRegistration.event_id == event.id)
        .order_by(EventRegistration.registered_at.asc())
        .all()
    )
    return [
        {
            "userId": r.user_id,
            "email": r.user.email if r.user else None,
            "firstName": r.user.first_name if r.user else None,
            "lastName": r.user.last_name if r.user else None,
            "registeredAt": isoformat(r.registered_at),
        }
        for r in regs
    ]
