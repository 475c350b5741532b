from __future__ import annotations

from flask import Blueprint, jsonify

from app.bitsa.db import db_session
from app.bitsa.errors import NotFound
from app.bitsa.modules.blog.schemas import BlogPostCreate, BlogPostUpdate
from app.bitsa.modules.blog.service import (
    create_post,
    delete_post,
    get_post,
    get_post_by_slug,
    list_posts,
    serialize_post,
    update_post,
)
from app.bitsa.rbac import AuthContext, require_admin
from app.bitsa.schemas import parse_body

bp = Blueprint("blog", __name__)


@bp.get("")
def posts_list():
    return jsonify([serialize_post(p) for p in list_posts(db_session())])


@bp.get("/slug/<slug>")
def post_by_slug(slug: str):
    post = get_post_by_slug(db_session(), slug)
    if post is None:
        raise NotFound("Blog post not found")
    return jsonify(serialize_post(post))


@bp.get("/<post_id>")
def post_detail(post_id: str):
    post = get_post(db_session(), post_id)
    if post is None:
        raise NotFound("Blog post not found")
    return jsonify(serialize_post(post))


@bp.post("")
@require_admin
def post_create(auth: AuthContext):
    req = parse_body(BlogPostCreate)
    s = db_session()
    post = create_post(s, req, auth)
    s.commit()
    return jsonify(serialize_post(post)), 201


@bp.put("/<post_id>")
@require_admin
def post_update(post_id: str, auth: AuthContext):
    req = parse_body(BlogPostUpdate)
    s = db_session()
    post = update_post(s, post_id, req, auth)
    s.commit()
    return jsonify(serialize_post(post))


@bp.delete("/<post_id>")
@require_admin
def post_delete(post_id: str, auth: AuthContext):
    s = db_session()
    delete_post(s, post_id, auth)
    s.commit()
    return "", 204
