from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import IntegrityError

from app.bitsa.audit import record_event
from app.bitsa.errors import DuplicateSlug, NotFound, ValidationFailed
from app.bitsa.modules.blog.models import BlogPost
from app.bitsa.utils import isoformat, slugify

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.bitsa.modules.blog.schemas import BlogPostCreate, BlogPostUpdate
    from app.bitsa.rbac import AuthContext


def serialize_post(post: BlogPost) -> dict[str, Any]:
    return {
        "id": post.id,
        "title": post.title,
        "slug": post.slug,
        "excerpt": post.excerpt,
        "content": post.content,
        "category": post.category,
        "imageUrl": post.image_url,
        "authorId": post.author_id,
        "publishedAt": isoformat(post.published_at),
        "createdAt": isoformat(post.created_at),
    }


def list_posts(s: "Session") -> list[BlogPost]:
    return s.query(BlogPost).order_by(BlogPost.published_at.desc()).all()


def get_post(s: "Session", post_id: str) -> BlogPost | None:
    return s.get(BlogPost, post_id)


def get_post_by_slug(s: "Session", slug: str) -> BlogPost | None:
    return s.query(BlogPost).filter(BlogPost.slug == slug).one_or_none()


def _slug_taken(s: "Session", slug: str, exclude_id: str | None = None) -> bool:
    q = s.query(BlogPost.id).filter(BlogPost.slug == slug)
    if exclude_id:
        q = q.filter(BlogPost.id != exclude_id)
    return q.first() is not None


def _flush_unique(s: "Session") -> None:
    try:
        s.flush()  # Force unique constraint check
    except IntegrityError:
        s.rollback()
        raise DuplicateSlug()


def create_post(s: "Session", req: "BlogPostCreate", actor: "AuthContext") -> BlogPost:
    slug = slugify(req.slug or req.title)
    if not slug:
        raise ValidationFailed("slug: could not derive a slug from the title")
    if _slug_taken(s, slug):
        raise DuplicateSlug()

    now = datetime.utcnow()
    post = BlogPost(
        title=req.title,
        slug=slug,
        excerpt=req.excerpt,
        content=req.content,
        category=req.category,
        image_url=req.image_url,
        author_id=actor.user_id,
        published_at=now,
        created_at=now,
    )
    s.add(post)
    _flush_unique(s)
    record_event(
        s,
        actor=actor,
        action="blog.create",
        entity_type="BlogPost",
        entity_id=post.id,
        metadata={"title": post.title, "slug": post.slug},
    )
    return post


def update_post(s: "Session", post_id: str, req: "BlogPostUpdate", actor: "AuthContext") -> BlogPost:
    post = get_post(s, post_id)
    if post is None:
        raise NotFound("Blog post not found")

    data = req.model_dump(exclude_unset=True)
    if data.get("slug"):
        data["slug"] = slugify(data["slug"])
        if not data["slug"]:
            raise ValidationFailed("slug: invalid slug")
        if _slug_taken(s, data["slug"], exclude_id=post.id):
            raise DuplicateSlug()

    changes = {}
    for field, value in data.items():
        if value is None and field != "image_url":
            continue
        if getattr(post, field) != value:
            changes[field] = {"old": getattr(post, field), "new": value}
            setattr(post, field, value)
    _flush_unique(s)
    record_event(
        s,
        actor=actor,
        action="blog.edit",
        entity_type="BlogPost",
        entity_id=post.id,
        metadata={"changes": sorted(changes)},
    )
    return post


def delete_post(s: "Session", post_id: str, actor: "AuthContext") -> None:
    post = get_post(s, post_id)
    if post is None:
        raise NotFound("Blog post not found")
    record_event(
        s,
        actor=actor,
        action="blog.delete",
        entity_type="BlogPost",
        entity_id=post.id,
        metadata={"title": post.title, "slug": post.slug},
    )
    s.delete(post)
