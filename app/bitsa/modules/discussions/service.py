"""
Discussion forum: member-authored threads with flat replies.

Anyone may read; any signed-in member may post; only admins delete. Deleting
a thread removes its replies with it.
"""
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func

from app.bitsa.audit import record_event
from app.bitsa.errors import Mismatch, NotFound
from app.bitsa.models import User
from app.bitsa.modules.discussions.models import Discussion, DiscussionReply
from app.bitsa.utils import isoformat, validate_image_data

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.bitsa.modules.discussions.schemas import DiscussionCreate, ReplyCreate
    from app.bitsa.rbac import AuthContext


def _author_fields(author: User | None) -> dict[str, Any]:
    return {
        "authorFirstName": author.first_name if author else None,
        "authorLastName": author.last_name if author else None,
        "authorEmail": author.email if author else None,
    }


def serialize_discussion(d: Discussion, *, reply_count: int | None = None) -> dict[str, Any]:
    out = {
        "id": d.id,
        "title": d.title,
        "content": d.content,
        "imageUrl": d.image_url,
        "authorId": d.author_id,
        "createdAt": isoformat(d.created_at),
        **_author_fields(d.author),
    }
    if reply_count is not None:
        out["replyCount"] = reply_count
    return out


def serialize_reply(r: DiscussionReply) -> dict[str, Any]:
    return {
        "id": r.id,
        "discussionId": r.discussion_id,
        "content": r.content,
        "imageUrl": r.image_url,
        "authorId": r.author_id,
        "createdAt": isoformat(r.created_at),
        **_author_fields(r.author),
    }


def list_discussions(s: "Session") -> list[dict[str, Any]]:
    """Newest first, each with its reply count."""
    reply_counts = (
        s.query(
            DiscussionReply.discussion_id.label("discussion_id"),
            func.count(DiscussionReply.id).label("reply_count"),
        )
        .group_by(DiscussionReply.discussion_id)
        .subquery()
    )
    rows = (
        s.query(Discussion, func.coalesce(reply_counts.c.reply_count, 0))
        .outerjoin(reply_counts, reply_counts.c.discussion_id == Discussion.id)
        .order_by(Discussion.created_at.desc())
        .all()
    )
    return [serialize_discussion(d, reply_count=int(count)) for d, count in rows]


def get_discussion(s: "Session", discussion_id: str) -> Discussion:
    d = s.get(Discussion, discussion_id)
    if d is None:
        raise NotFound("Discussion not found")
    return d


def get_discussion_detail(s: "Session", discussion_id: str) -> dict[str, Any]:
    d = get_discussion(s, discussion_id)
    replies = (
        s.query(DiscussionReply)
        .filter(DiscussionReply.discussion_id == d.id)
        .order_by(DiscussionReply.created_at.asc())
        .all()
    )
    out = serialize_discussion(d)
    out["replies"] = [serialize_reply(r) for r in replies]
    return out


def create_discussion(s: "Session", req: "DiscussionCreate", author: User) -> Discussion:
    if req.image_url:
        validate_image_data(req.image_url)
    d = Discussion(
        title=req.title,
        content=req.content,
        image_url=req.image_url,
        author_id=author.id,
        created_at=datetime.utcnow(),
    )
    s.add(d)
    s.flush()
    return d


def create_reply(s: "Session", discussion_id: str, req: "ReplyCreate", author: User) -> DiscussionReply:
    d = get_discussion(s, discussion_id)
    if req.image_url:
        validate_image_data(req.image_url)
    r = DiscussionReply(
        discussion_id=d.id,
        content=req.content,
        image_url=req.image_url,
        author_id=author.id,
        created_at=datetime.utcnow(),
    )
    s.add(r)
    s.flush()
    return r


def delete_discussion(s: "Session", discussion_id: str, actor: "AuthContext") -> None:
    d = get_discussion(s, discussion_id)
    record_event(
        s,
        actor=actor,
        action="discussion.delete",
        entity_type="Discussion",
        entity_id=d.id,
        metadata={"title": d.title, "author_id": d.author_id},
    )
    s.delete(d)


def delete_reply(s: "Session", discussion_id: str, reply_id: str, actor: "AuthContext") -> None:
    r = s.get(DiscussionReply, reply_id)
    if r is None:
        raise NotFound("Reply not found")
    if r.discussion_id != discussion_id:
        raise Mismatch()
    record_event(
        s,
        actor=actor,
        action="discussion.reply_delete",
        entity_type="DiscussionReply",
        entity_id=r.id,
        metadata={"discussion_id": discussion_id, "author_id": r.author_id},
    )
    s.delete(r)
