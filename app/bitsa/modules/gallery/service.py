from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.bitsa.audit import record_event
from app.bitsa.errors import NotFound
from app.bitsa.modules.gallery.models import GalleryImage
from app.bitsa.utils import isoformat

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.bitsa.modules.gallery.schemas import GalleryImageCreate, GalleryImageUpdate
    from app.bitsa.rbac import AuthContext


def serialize_image(image: GalleryImage) -> dict[str, Any]:
    return {
        "id": image.id,
        "title": image.title,
        "imageUrl": image.image_url,
        "caption": image.caption,
        "category": image.category,
        "uploadedAt": isoformat(image.uploaded_at),
    }


def list_images(s: "Session") -> list[GalleryImage]:
    return s.query(GalleryImage).order_by(GalleryImage.uploaded_at.desc()).all()


def get_image(s: "Session", image_id: str) -> GalleryImage | None:
    return s.get(GalleryImage, image_id)


def create_image(s: "Session", req: "GalleryImageCreate", actor: "AuthContext") -> GalleryImage:
    image = GalleryImage(
        title=req.title,
        image_url=req.image_url,
        caption=req.caption,
        category=req.category,
        uploaded_at=datetime.utcnow(),
    )
    s.add(image)
    s.flush()
    record_event(s, actor=actor, action="gallery.create", entity_type="GalleryImage", entity_id=image.id)
    return image


def update_image(s: "Session", image_id: str, req: "GalleryImageUpdate", actor: "AuthContext") -> GalleryImage:
    image = get_image(s, image_id)
    if image is None:
        raise NotFound("Gallery image not found")
    for field, value in req.model_dump(exclude_unset=True).items():
        if value is None and field in ("title", "image_url"):
            continue
        setattr(image, field, value)
    record_event(s, actor=actor, action="gallery.edit", entity_type="GalleryImage", entity_id=image.id)
    return image


def delete_image(s: "Session", image_id: str, actor: "AuthContext") -> None:
    image = get_image(s, image_id)
    if image is None:
        raise NotFound("Gallery image not found")
    record_event(s, actor=actor, action="gallery.delete", entity_type="GalleryImage", entity_id=image.id)
    s.delete(image)
