from __future__ import annotations

from flask import Blueprint, jsonify

from app.bitsa.db import db_session
from app.bitsa.errors import NotFound
from app.bitsa.modules.gallery.schemas import GalleryImageCreate, GalleryImageUpdate
from app.bitsa.modules.gallery.service import (
    create_image,
    delete_image,
    get_image,
    list_images,
    serialize_image,
    update_image,
)
from app.bitsa.rbac import AuthContext, require_admin
from app.bitsa.schemas import parse_body

bp = Blueprint("gallery", __name__)


@bp.get("")
def images_list():
    return jsonify([serialize_image(i) for i in list_images(db_session())])


@bp.get("/<image_id>")
def image_detail(image_id: str):
    image = get_image(db_session(), image_id)
    if image is None:
        raise NotFound("Gallery image not found")
    return jsonify(serialize_image(image))


@bp.post("")
@require_admin
def image_create(auth: AuthContext):
    req = parse_body(GalleryImageCreate)
    s = db_session()
    image = create_image(s, req, auth)
    s.commit()
    return jsonify(serialize_image(image)), 201


@bp.put("/<image_id>")
@require_admin
def image_update(image_id: str, auth: AuthContext):
    req = parse_body(GalleryImageUpdate)
    s = db_session()
    image = update_image(s, image_id, req, auth)
    s.commit()
    return jsonify(serialize_image(image))


@bp.delete("/<image_id>")
@require_admin
def image_delete(image_id: str, auth: AuthContext):
    s = db_session()
    delete_image(s, image_id, auth)
    s.commit()
    return "", 204
