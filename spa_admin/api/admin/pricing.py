import logging

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from spa_admin.errors import ConflictError, NotFoundError, ValidationError
from spa_admin.extensions import db
from spa_admin.models import Branch, BranchServicePricing, Service
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
from spa_admin.utils.patch import Patch, amount, as_bool, currency_in, positive_int
from spa_admin.utils.serialize import pricing_dict

logger = logging.getLogger(__name__)

pricing_bp = Blueprint(
    "admin_pricing", __name__, url_prefix="/api/admin/branch-service-pricing"
)


def _update_fields():
    return {
        "price_amount": amount,
        "currency": currency_in(current_app.config["PRICING_CURRENCIES"]),
        "duration_min": positive_int,
        "is_active": as_bool,
    }


def _with_relations(stmt):
    return stmt.options(
        selectinload(BranchServicePricing.branch),
        selectinload(BranchServicePricing.service),
    )


@pricing_bp.route("", methods=["GET"])
@admin_required
def list_pricing():
    """
    List branch service pricing
    ---
    tags:
      - Pricing
    parameters:
      - {in: query, name: page, type: integer}
      - {in: query, name: limit, type: integer}
      - {in: query, name: branch_id, type: integer}
      - {in: query, name: service_id, type: integer}
      - {in: query, name: is_active, type: boolean}
      - {in: query, name: sortBy, type: string}
      - {in: query, name: sortOrder, type: string, enum: [asc, desc]}
    responses:
      200:
        description: Page of pricing rows with branch and service names
    """
    page = parse_page(request.args)
    sort = parse_sort(request.args, current_app.config["PRICING_SORT_FIELDS"], "created_at")

    stmt = _with_relations(select(BranchServicePricing))
    branch_id = parse_int(request.args.get("branch_id"), "branch_id")
    if branch_id:
        stmt = stmt.where(BranchServicePricing.branch_id == branch_id)
    service_id = parse_int(request.args.get("service_id"), "service_id")
    if service_id:
        stmt = stmt.where(BranchServicePricing.service_id == service_id)
    is_active = parse_bool(request.args.get("is_active"))
    if is_active is not None:
        stmt = stmt.where(BranchServicePricing.is_active.is_(is_active))

    rows, total = paginate(ordered(stmt, BranchServicePricing, sort), page)
    return jsonify(
        {
            "status": "success",
            "pagination": pagination_meta(page, total),
            "data": {"pricings": [pricing_dict(p) for p in rows]},
        }
    ), 200


@pricing_bp.route("/<int:pricing_id>", methods=["GET"])
@admin_required
def get_pricing(pricing_id):
    pricing = get_or_404(BranchServicePricing, pricing_id, "Pricing not found")
    return jsonify({"status": "success", "data": {"pricing": pricing_dict(pricing)}}), 200


def create_pricing_row(branch_id, service_id, data):
    """Validate and insert one pricing row; shared with the branch services endpoint."""
    config = current_app.config
    if data.get("price_amount") is None:
        raise ValidationError("price_amount is required and must be a number")
    price = amount(data.get("price_amount"), "price_amount")
    if data.get("duration_min") is None:
        raise ValidationError("duration_min is required and must be a number")
    duration = positive_int(data.get("duration_min"), "duration_min")
    currency = currency_in(config["PRICING_CURRENCIES"])(
        data.get("currency") or config["DEFAULT_CURRENCY"], "currency"
    )

    if db.session.get(Branch, branch_id) is None:
        raise NotFoundError("Branch not found")
    if db.session.get(Service, service_id) is None:
        raise NotFoundError("Service not found")

    existing = db.session.scalar(
        select(BranchServicePricing.id).where(
            BranchServicePricing.branch_id == branch_id,
            BranchServicePricing.service_id == service_id,
        )
    )
    if existing is not None:
        raise ConflictError("Pricing already exists for this branch and service")

    pricing = BranchServicePricing(
        branch_id=branch_id,
        service_id=service_id,
        price_amount=price,
        currency=currency,
        duration_min=duration,
        is_active=as_bool(data.get("is_active", True), "is_active"),
    )
    db.session.add(pricing)
    try:
        db.session.commit()
    except IntegrityError:
        # lost the race against a concurrent insert
        db.session.rollback()
        raise ConflictError("Pricing already exists for this branch and service")
    logger.info(
        "Pricing %s created: branch %s service %s at %s %s",
        pricing.id,
        branch_id,
        service_id,
        price,
        currency,
    )
    return pricing


@pricing_bp.route("", methods=["POST"])
@admin_required
def create_pricing():
    """
    Price a service at a branch
    ---
    tags:
      - Pricing
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [branch_id, service_id, price_amount, duration_min]
          properties:
            branch_id: {type: integer}
            service_id: {type: integer}
            price_amount: {type: number}
            currency: {type: string, example: EGP}
            duration_min: {type: integer}
            is_active: {type: boolean}
    responses:
      201:
        description: Created pricing row
      400:
        description: Validation error
      404:
        description: Branch or service not found
      409:
        description: Pricing already exists for this branch and service
    """
    data = request.get_json(silent=True) or {}
    for field in ("branch_id", "service_id"):
        if data.get(field) in (None, ""):
            raise ValidationError(f"{field} is required")
    branch_id = positive_int(data.get("branch_id"), "branch_id")
    service_id = positive_int(data.get("service_id"), "service_id")

    pricing = create_pricing_row(branch_id, service_id, data)
    return jsonify({"status": "success", "data": {"pricing": pricing_dict(pricing, with_relations=False)}}), 201


@pricing_bp.route("/<int:pricing_id>", methods=["PUT"])
@admin_required
def update_pricing(pricing_id):
    pricing = get_or_404(BranchServicePricing, pricing_id, "Pricing not found")
    patch = Patch.from_json(request.get_json(silent=True), _update_fields())
    if not patch:
        raise ValidationError("No fields to update")

    patch.apply_to(pricing)
    db.session.commit()
    return jsonify({"status": "success", "data": {"pricing": pricing_dict(pricing, with_relations=False)}}), 200


@pricing_bp.route("/<int:pricing_id>", methods=["DELETE"])
@admin_required
def delete_pricing(pricing_id):
    pricing = get_or_404(BranchServicePricing, pricing_id, "Pricing not found")
    db.session.delete(pricing)
    db.session.commit()
    logger.info("Pricing %s deleted", pricing_id)
    return jsonify({"status": "success", "message": "Pricing deleted"}), 200


@pricing_bp.route("/<int:pricing_id>/toggle", methods=["PATCH"])
@admin_required
def toggle_pricing(pricing_id):
    pricing = get_or_404(BranchServicePricing, pricing_id, "Pricing not found")
    pricing.is_active = not pricing.is_active
    db.session.commit()
    return jsonify({"status": "success", "data": {"pricing": pricing_dict(pricing, with_relations=False)}}), 200
