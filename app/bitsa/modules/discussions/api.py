from __future__ import annotations

from flask import Blueprint, jsonify

from app.bitsa.db import db_session
from app.bitsa.errors import Unauthenticated
from app.bitsa.models import User
from app.bitsa.modules.discussions.schemas import DiscussionCreate, ReplyCreate
from app.bitsa.modules.discussions.service import (
    create_discussion,
    create_reply,
    delete_discussion,
    delete_reply,
    get_discussion_detail,
    list_discussions,
    serialize_discussion,
    serialize_reply,
)
from app.bitsa.rbac import AuthContext, require_admin, require_auth
from app.bitsa.schemas import parse_body

bp = Blueprint("discussions", __name__)


def _author(s, auth: AuthContext) -> User:
    user = s.get(User, auth.user_id)
    if user is None:
        raise Unauthenticated()
    return user


@bp.get("")
def discussions_list():
    return jsonify(list_discussions(db_session()))


@bp.post("")
@require_auth
def discussion_create(auth: AuthContext):
    req = parse_body(DiscussionCreate)
    s = db_session()
    d = create_discussion(s, req, _author(s, auth))
    s.commit()
    return jsonify(serialize_discussion(d)), 201


@bp.get("/<discussion_id>")
def discussion_detail(discussion_id: str):
    return jsonify(get_discussion_detail(db_session(), discussion_id))


@bp.post("/<discussion_id>/replies")
@require_auth
def reply_create(discussion_id: str, auth: AuthContext):
    req = parse_body(ReplyCreate)
    s = db_session()
    r = create_reply(s, discussion_id, req, _author(s, auth))
    s.commit()
    return jsonify(serialize_reply(r)), 201


@bp.delete("/<discussion_id>")
@require_admin
def discussion_delete(discussion_id: str, auth: AuthContext):
    s = db_session()
    delete_discussion(s, discussion_id, auth)
    s.commit()
    return "", 204


@bp.delete("/<discussion_id>/replies/<reply_id>")
@require_admin
def reply_delete(discussion_id: str, reply_id: str, auth: AuthContext):
    s = db_session()
    delete_reply(s, discussion_id, reply_id, auth)
    s.commit()
    return "", 204
