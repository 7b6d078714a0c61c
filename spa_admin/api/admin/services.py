import logging

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from spa_admin.errors import ConflictError, NotFoundError, ValidationError
from spa_admin.extensions import db
from spa_admin.models import BranchServicePricing, Service, ServiceCategory
from spa_admin.utils.auth import admin_required
from spa_admin.utils.pagination import (
    get_or_404,
    ordered,
    paginate,
    pagination_meta,
    parse_bool,
    parse_int,
    parse_page,
    parse_sort,
)
from spa_admin.utils.patch import (
    Patch,
    as_bool,
    optional_str,
    positive_int,
    positive_int_or_null,
    required_str,
)
from spa_admin.utils.serialize import service_dict

logger = logging.getLogger(__name__)

services_bp = Blueprint("admin_services", __name__, url_prefix="/api/admin/services")

SERVICE_UPDATE_FIELDS = {
    "category_id": positive_int,
    "name": required_str,
    "description": optional_str,
    "default_duration_min": positive_int_or_null,
    "image_url_1": optional_str,
    "is_active": as_bool,
}


def _require_category(category_id):
    if db.session.get(ServiceCategory, category_id) is None:
        raise NotFoundError("Category not found")


@services_bp.route("", methods=["GET"])
@admin_required
def list_services():
    """
    List services
    ---
    tags:
      - Services
    parameters:
      - {in: query, name: page, type: integer}
      - {in: query, name: limit, type: integer}
      - {in: query, name: category_id, type: integer}
      - {in: query, name: is_active, type: boolean}
      - {in: query, name: search, type: string, description: case-insensitive name match}
      - {in: query, name: sortBy, type: string}
      - {in: query, name: sortOrder, type: string, enum: [asc, desc]}
    responses:
      200:
        description: Page of services with their category
    """
    page = parse_page(request.args)
    sort = parse_sort(request.args, current_app.config["SERVICE_SORT_FIELDS"], "created_at")

    stmt = select(Service).options(selectinload(Service.category))
    category_id = parse_int(request.args.get("category_id"), "category_id")
    if category_id:
        stmt = stmt.where(Service.category_id == category_id)
    is_active = parse_bool(request.args.get("is_active"))
    if is_active is not None:
        stmt = stmt.where(Service.is_active.is_(is_active))
    search = (request.args.get("search") or "").strip()
    if search:
        stmt = stmt.where(Service.name.ilike(f"%{search}%"))

    rows, total = paginate(ordered(stmt, Service, sort), page)
    return jsonify(
        {
            "status": "success",
            "pagination": pagination_meta(page, total),
            "data": {"services": [service_dict(s, with_category=True) for s in rows]},
        }
    ), 200


@services_bp.route("/servicesList", methods=["GET"])
@admin_required
def services_list():
    rows = db.session.execute(
        select(Service.id, Service.name).order_by(Service.name.asc())
    ).all()
    return jsonify(
        {
            "status": "success",
            "data": {"servicesList": [{"id": r.id, "name": r.name} for r in rows]},
        }
    ), 200


@services_bp.route("/<int:service_id>", methods=["GET"])
@admin_required
def get_service(service_id):
    service = get_or_404(Service, service_id, "Service not found")
    return jsonify({"status": "success", "data": {"service": service_dict(service, with_category=True)}}), 200


@services_bp.route("", methods=["POST"])
@admin_required
def create_service():
    """
    Create a service
    ---
    tags:
      - Services
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [category_id, name]
          properties:
            category_id: {type: integer}
            name: {type: string}
            description: {type: string}
            default_duration_min: {type: integer}
            is_active: {type: boolean}
    responses:
      201:
        description: Created service
      400:
        description: Validation error
      404:
        description: Category not found
    """
    data = request.get_json(silent=True) or {}
    if data.get("category_id") in (None, ""):
        raise ValidationError("category_id is required")
    category_id = positive_int(data.get("category_id"), "category_id")
    name = optional_str(data.get("name"), "name")
    if not name:
        raise ValidationError("name is required")
    duration = positive_int_or_null(
        data.get("default_duration_min"), "default_duration_min"
    )

    _require_category(category_id)

    service = Service(
        category_id=category_id,
        name=name,
        description=optional_str(data.get("description"), "description"),
        default_duration_min=duration,
        image_url_1=optional_str(data.get("image_url_1"), "image_url_1"),
        is_active=as_bool(data.get("is_active", True), "is_active"),
    )
    db.session.add(service)
    db.session.commit()
    logger.info("Service %s created in category %s", service.id, category_id)
    return jsonify({"status": "success", "data": {"service": service_dict(service)}}), 201


@services_bp.route("/<int:service_id>", methods=["PUT"])
@admin_required
def update_service(service_id):
    service = get_or_404(Service, service_id, "Service not found")
    patch = Patch.from_json(request.get_json(silent=True), SERVICE_UPDATE_FIELDS)
    if not patch:
        raise ValidationError("No fields to update")
    if "category_id" in patch:
        _require_category(patch.get("category_id"))

    patch.apply_to(service)
    db.session.commit()
    return jsonify({"status": "success", "data": {"service": service_dict(service)}}), 200


@services_bp.route("/<int:service_id>", methods=["DELETE"])
@admin_required
def delete_service(service_id):
    service = get_or_404(Service, service_id, "Service not found")

    priced = db.session.scalar(
        select(BranchServicePricing.id)
        .where(BranchServicePricing.service_id == service_id)
        .limit(1)
    )
    if priced is not None:
        raise ConflictError("Service is used in branch pricing and cannot be deleted")

    db.session.delete(service)
    db.session.commit()
    logger.info("Service %s deleted", service_id)
    return jsonify({"status": "success", "message": "Service deleted successfully"}), 200


@services_bp.route("/<int:service_id>/toggle", methods=["PATCH"])
@admin_required
def toggle_service(service_id):
    service = get_or_404(Service, service_id, "Service not found")
    service.is_active = not service.is_active
    db.session.commit()
    return jsonify({"status": "success", "data": {"service": service_dict(service)}}), 200
