import logging

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import or_, select
from sqlalchemy.orm import selectinload

from spa_admin.errors import ConflictError, NotFoundError, ValidationError
from spa_admin.extensions import db
from spa_admin.models import Booking, Branch, BranchServicePricing, Hotel, Service
from spa_admin.api.admin.pricing import create_pricing_row
from spa_admin.utils.auth import admin_required
from spa_admin.utils.branches import normalize_slug, require_branch, slugify
from spa_admin.utils.pagination import (
    ordered,
    paginate,
    pagination_meta,
    parse_bool,
    parse_page,
    parse_sort,
    positive_path_int,
)
from spa_admin.utils.patch import Patch, as_bool, optional_str, positive_int, required_str
from spa_admin.utils.s3_utils import delete_file_from_s3, image_key, upload_file_to_s3
from spa_admin.utils.serialize import (
    HOTEL_FIELDS,
    branch_dict,
    pricing_dict,
    row_dict,
)

logger = logging.getLogger(__name__)

branches_bp = Blueprint("admin_branches", __name__, url_prefix="/api/admin/branches")

IMAGE_SLOTS = (1, 2, 3, 4, 5)

BRANCH_UPDATE_FIELDS = {
    "name": required_str,
    "slug": optional_str,
    "address": optional_str,
    "phone": optional_str,
    "country": optional_str,
    "city": optional_str,
    "region": optional_str,
    "description": optional_str,
    "is_active": as_bool,
    **{f"image_url_{slot}": optional_str for slot in IMAGE_SLOTS},
    "hotel_name": required_str,
    "hotel_title": required_str,
    "hotel_description": required_str,
    "hotel_image_url_1": required_str,
}


def _load_branch(ref):
    found = require_branch(ref)
    return db.session.get(Branch, found.id)


def _ensure_slug_free(slug, branch_id=None):
    stmt = select(Branch.id).where(Branch.slug == slug)
    if branch_id is not None:
        stmt = stmt.where(Branch.id != branch_id)
    if db.session.scalar(stmt) is not None:
        raise ConflictError("Branch slug already exists")


@branches_bp.route("", methods=["GET"])
@admin_required
def list_branches():
    """
    List branches
    ---
    tags:
      - Branches
    parameters:
      - {in: query, name: page, type: integer}
      - {in: query, name: limit, type: integer}
      - {in: query, name: is_active, type: boolean}
      - {in: query, name: search, type: string, description: matches name or address}
      - {in: query, name: sortBy, type: string}
      - {in: query, name: sortOrder, type: string, enum: [asc, desc]}
    responses:
      200:
        description: Page of branches
    """
    page = parse_page(request.args)
    sort = parse_sort(request.args, current_app.config["BRANCH_SORT_FIELDS"], "created_at")

    stmt = select(Branch)
    is_active = parse_bool(request.args.get("is_active"))
    if is_active is not None:
        stmt = stmt.where(Branch.is_active.is_(is_active))
    search = (request.args.get("search") or "").strip()
    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(or_(Branch.name.ilike(pattern), Branch.address.ilike(pattern)))

    rows, total = paginate(ordered(stmt, Branch, sort), page)
    return jsonify(
        {
            "status": "success",
            "pagination": pagination_meta(page, total),
            "data": {"branches": [branch_dict(b, with_hotel=False) for b in rows]},
        }
    ), 200


@branches_bp.route("/branchesList", methods=["GET"])
@admin_required
def branches_list():
    rows = db.session.execute(
        select(Branch.id, Branch.name, Branch.slug)
        .where(Branch.is_active.is_(True))
        .order_by(Branch.name.asc())
    ).all()
    return jsonify(
        {
            "status": "success",
            "data": {
                "branchesList": [
                    {"id": r.id, "name": r.name, "slug": r.slug} for r in rows
                ]
            },
        }
    ), 200


@branches_bp.route("/<ref>", methods=["GET"])
@admin_required
def get_branch(ref):
    """
    Branch by numeric id or slug, with its hotel
    ---
    tags:
      - Branches
    parameters:
      - {in: path, name: ref, type: string, required: true}
    responses:
      200:
        description: Branch
      404:
        description: Branch not found
    """
    branch = _load_branch(ref)
    return jsonify({"status": "success", "data": {"branch": branch_dict(branch)}}), 200


@branches_bp.route("", methods=["POST"])
@admin_required
def create_branch():
    """
    Create a branch together with its hotel profile
    ---
    tags:
      - Branches
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [name]
          properties:
            name: {type: string}
            slug: {type: string}
            address: {type: string}
            city: {type: string}
            country: {type: string}
            hotel_name: {type: string}
            hotel_title: {type: string}
    responses:
      201:
        description: Created branch and hotel
      400:
        description: name is required
      409:
        description: Branch slug already exists
    """
    data = request.get_json(silent=True) or {}
    name = optional_str(data.get("name"), "name")
    if not name:
        raise ValidationError("name is required")

    given_slug = optional_str(data.get("slug"), "slug")
    slug = (normalize_slug(given_slug) if given_slug else slugify(name)) or "branch"
    _ensure_slug_free(slug)

    hotel = Hotel(
        name=optional_str(data.get("hotel_name"), "hotel_name") or "Hotel",
        title=optional_str(data.get("hotel_title"), "hotel_title") or "",
        description=optional_str(data.get("hotel_description"), "hotel_description"),
        image_url_1=optional_str(data.get("hotel_image_url_1"), "hotel_image_url_1"),
    )
    db.session.add(hotel)
    db.session.flush()

    branch = Branch(
        name=name,
        slug=slug,
        hotel_id=hotel.id,
        is_active=as_bool(data.get("is_active", True), "is_active"),
    )
    for field in ("address", "phone", "country", "city", "region", "description"):
        setattr(branch, field, optional_str(data.get(field), field))
    for slot in IMAGE_SLOTS:
        field = f"image_url_{slot}"
        setattr(branch, field, optional_str(data.get(field), field))

    db.session.add(branch)
    db.session.commit()
    logger.info("Branch %s (%s) created with hotel %s", branch.id, slug, hotel.id)

    return jsonify(
        {
            "status": "success",
            "data": {
                "branch": branch_dict(branch, with_hotel=False),
                "hotel": row_dict(hotel, HOTEL_FIELDS),
            },
        }
    ), 201


@branches_bp.route("/<ref>", methods=["PUT"])
@admin_required
def update_branch(ref):
    branch = _load_branch(ref)
    patch = Patch.from_json(request.get_json(silent=True), BRANCH_UPDATE_FIELDS)
    if not patch:
        raise ValidationError("No fields to update")

    hotel_patch = patch.subset("hotel_")
    branch_patch = patch.without(*(f"hotel_{name}" for name, _ in hotel_patch))

    slug = branch_patch.get("slug")
    if slug:
        slug = normalize_slug(slug)
    elif "name" in branch_patch:
        slug = slugify(branch_patch.get("name"))
    branch_patch = branch_patch.without("slug")
    if slug:
        _ensure_slug_free(slug, branch.id)
        branch.slug = slug

    branch_patch.apply_to(branch)
    if hotel_patch and branch.hotel is not None:
        hotel_patch.apply_to(branch.hotel)

    db.session.commit()
    return jsonify({"status": "success", "data": {"branch": branch_dict(branch)}}), 200


@branches_bp.route("/<ref>", methods=["DELETE"])
@admin_required
def delete_branch(ref):
    branch = _load_branch(ref)

    priced = db.session.scalar(
        select(BranchServicePricing.id)
        .where(BranchServicePricing.branch_id == branch.id)
        .limit(1)
    )
    if priced is not None:
        raise ConflictError("Branch is used in pricing and cannot be deleted")
    booked = db.session.scalar(
        select(Booking.id).where(Booking.branch_id == branch.id).limit(1)
    )
    if booked is not None:
        raise ConflictError("Branch is used in bookings and cannot be deleted")

    hotel = branch.hotel
    branch_id = branch.id
    db.session.delete(branch)
    if hotel is not None:
        db.session.delete(hotel)
    db.session.commit()
    logger.info("Branch %s deleted", branch_id)
    return jsonify({"status": "success", "message": "Branch deleted successfully"}), 200


@branches_bp.route("/<ref>/toggle", methods=["PATCH"])
@admin_required
def toggle_branch(ref):
    branch = _load_branch(ref)
    branch.is_active = not branch.is_active
    db.session.commit()
    return jsonify({"status": "success", "data": {"branch": branch_dict(branch, with_hotel=False)}}), 200


@branches_bp.route("/<ref>/services", methods=["POST"])
@admin_required
def create_branch_service(ref):
    branch = _load_branch(ref)
    data = request.get_json(silent=True) or {}
    if data.get("service_id") in (None, ""):
        raise ValidationError("service_id is required")
    service_id = positive_int(data.get("service_id"), "service_id")

    pricing = create_pricing_row(branch.id, service_id, data)
    return jsonify({"status": "success", "data": {"branchService": pricing_dict(pricing, with_relations=False)}}), 201


@branches_bp.route("/<ref>/services", methods=["GET"])
@admin_required
def list_branch_services(ref):
    branch = _load_branch(ref)
    rows = db.session.scalars(
        select(BranchServicePricing)
        .options(selectinload(BranchServicePricing.service))
        .where(BranchServicePricing.branch_id == branch.id)
        .order_by(BranchServicePricing.id.asc())
    ).all()

    services = []
    for row in rows:
        item = pricing_dict(row, with_relations=False)
        item["service_name"] = row.service.name if row.service else None
        services.append(item)
    return jsonify({"status": "success", "data": {"services": services}}), 200


@branches_bp.route("/<ref>/services/<service_id>", methods=["DELETE"])
@admin_required
def delete_branch_service(ref, service_id):
    service_id = positive_path_int(service_id, "Invalid service id", missing="Service not found")
    branch = _load_branch(ref)
    if db.session.get(Service, service_id) is None:
        raise NotFoundError("Service not found")

    pricing = db.session.scalar(
        select(BranchServicePricing).where(
            BranchServicePricing.branch_id == branch.id,
            BranchServicePricing.service_id == service_id,
        )
    )
    if pricing is None:
        raise NotFoundError("Branch service pricing not found")

    db.session.delete(pricing)
    db.session.commit()
    logger.info("Service %s removed from branch %s", service_id, branch.id)
    return jsonify({"status": "success", "message": "Branch service deleted"}), 200


@branches_bp.route("/<ref>/images/<slot>", methods=["POST"])
@admin_required
def upload_branch_image(ref, slot):
    """
    Upload a branch image into slot 1..5
    ---
    tags:
      - Images
    consumes:
      - multipart/form-data
    parameters:
      - {in: path, name: ref, type: string, required: true}
      - {in: path, name: slot, type: integer, required: true}
      - {in: formData, name: image_file, type: file, required: true}
    responses:
      200:
        description: Branch with the new image url
      400:
        description: Bad slot or missing file
      500:
        description: Upload failed
    """
    slot = positive_path_int(slot, "slot must be 1, 2, 3, 4, or 5")
    if slot not in IMAGE_SLOTS:
        raise ValidationError("slot must be 1, 2, 3, 4, or 5")
    image_file = request.files.get("image_file")
    if image_file is None or not image_file.filename:
        raise ValidationError("No file uploaded")

    branch = _load_branch(ref)
    key = image_key("branches", branch.id, image_file.filename)
    url = upload_file_to_s3(image_file, key)

    field = f"image_url_{slot}"
    previous = getattr(branch, field)
    setattr(branch, field, url)
    db.session.commit()

    if previous and not delete_file_from_s3(previous):
        logger.warning("Old image for branch %s slot %s was left in S3", branch.id, slot)

    return jsonify({"status": "success", "data": {"branch": branch_dict(branch, with_hotel=False)}}), 200
