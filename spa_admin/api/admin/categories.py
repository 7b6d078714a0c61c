import logging

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import func, select

from spa_admin.errors import ConflictError, ValidationError
from spa_admin.extensions import db
from spa_admin.models import Service, ServiceCategory
from spa_admin.utils.auth import admin_required
from spa_admin.utils.pagination import (
    get_or_404,
    ordered,
    paginate,
    pagination_meta,
    parse_page,
    parse_sort,
)
from spa_admin.utils.patch import Patch, as_bool, optional_str, required_str
from spa_admin.utils.serialize import CATEGORY_FIELDS, row_dict

logger = logging.getLogger(__name__)

categories_bp = Blueprint(
    "admin_categories", __name__, url_prefix="/api/admin/categories"
)

CATEGORY_UPDATE_FIELDS = {
    "name": required_str,
    "description": optional_str,
    "is_active": as_bool,
}


@categories_bp.route("", methods=["GET"])
@admin_required
def list_categories():
    """
    List service categories
    ---
    tags:
      - Categories
    parameters:
      - {in: query, name: page, type: integer}
      - {in: query, name: limit, type: integer}
      - {in: query, name: sortBy, type: string}
      - {in: query, name: sortOrder, type: string, enum: [asc, desc]}
    responses:
      200:
        description: Page of categories
    """
    page = parse_page(request.args)
    sort = parse_sort(
        request.args,
        current_app.config["CATEGORY_SORT_FIELDS"],
        "sort_order",
        default_order="asc",
    )
    rows, total = paginate(ordered(select(ServiceCategory), ServiceCategory, sort), page)
    return jsonify(
        {
            "status": "success",
            "pagination": pagination_meta(page, total),
            "data": {"categories": [row_dict(c, CATEGORY_FIELDS) for c in rows]},
        }
    ), 200


@categories_bp.route("/categoriesList", methods=["GET"])
@admin_required
def categories_list():
    rows = db.session.execute(
        select(ServiceCategory.id, ServiceCategory.name).order_by(
            ServiceCategory.sort_order.asc(), ServiceCategory.id.asc()
        )
    ).all()
    return jsonify(
        {
            "status": "success",
            "data": {"categoriesList": [{"id": r.id, "name": r.name} for r in rows]},
        }
    ), 200


@categories_bp.route("/<int:category_id>", methods=["GET"])
@admin_required
def get_category(category_id):
    category = get_or_404(ServiceCategory, category_id, "Category not found")
    return jsonify({"status": "success", "data": {"category": row_dict(category, CATEGORY_FIELDS)}}), 200


@categories_bp.route("", methods=["POST"])
@admin_required
def create_category():
    """
    Create a category (appended after the current last sort_order)
    ---
    tags:
      - Categories
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [name]
          properties:
            name: {type: string}
            description: {type: string}
            is_active: {type: boolean}
    responses:
      201:
        description: Created category
      400:
        description: Name is required
    """
    data = request.get_json(silent=True) or {}
    name = optional_str(data.get("name"), "name")
    if not name:
        raise ValidationError("Name is required")

    last = db.session.scalar(select(func.max(ServiceCategory.sort_order)))
    category = ServiceCategory(
        name=name,
        description=optional_str(data.get("description"), "description"),
        is_active=as_bool(data.get("is_active", True), "is_active"),
        sort_order=(last or 0) + 1,
    )
    db.session.add(category)
    db.session.commit()
    logger.info("Category %s created", category.id)
    return jsonify({"status": "success", "data": {"category": row_dict(category, CATEGORY_FIELDS)}}), 201


@categories_bp.route("/<int:category_id>", methods=["PUT"])
@admin_required
def update_category(category_id):
    category = get_or_404(ServiceCategory, category_id, "Category not found")
    patch = Patch.from_json(request.get_json(silent=True), CATEGORY_UPDATE_FIELDS)
    if not patch:
        raise ValidationError("No fields to update")

    patch.apply_to(category)
    db.session.commit()
    return jsonify({"status": "success", "data": {"category": row_dict(category, CATEGORY_FIELDS)}}), 200


@categories_bp.route("/<int:category_id>", methods=["DELETE"])
@admin_required
def delete_category(category_id):
    category = get_or_404(ServiceCategory, category_id, "Category not found")

    in_use = db.session.scalar(
        select(Service.id).where(Service.category_id == category_id).limit(1)
    )
    if in_use is not None:
        raise ConflictError("Category is used in services and cannot be deleted")

    db.session.delete(category)
    db.session.commit()
    logger.info("Category %s deleted", category_id)
    return jsonify({"status": "success", "message": "Category deleted successfully"}), 200


@categories_bp.route("/<int:category_id>/toggle", methods=["PATCH"])
@admin_required
def toggle_category(category_id):
    category = get_or_404(ServiceCategory, category_id, "Category not found")
    category.is_active = not category.is_active
    db.session.commit()
    return jsonify({"status": "success", "data": {"category": row_dict(category, CATEGORY_FIELDS)}}), 200
