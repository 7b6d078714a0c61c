from flask import Blueprint, jsonify, request
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from spa_admin.errors import NotFoundError
from spa_admin.extensions import db
from spa_admin.models import Branch, BranchServicePricing, Hotel, Service, ServiceCategory
from spa_admin.utils.branches import require_branch
from spa_admin.utils.pagination import parse_int
from spa_admin.utils.serialize import HOTEL_FIELDS, row_dict

browse_bp = Blueprint("customer_browse", __name__, url_prefix="/api/customer/browse")

PUBLIC_BRANCH_FIELDS = (
    "id",
    "name",
    "address",
    "phone",
    "country",
    "city",
    "region",
    "slug",
    "description",
    "image_url_1",
    "image_url_2",
    "image_url_3",
    "image_url_4",
    "image_url_5",
)


@browse_bp.route("/branches", methods=["GET"])
def list_branches():
    """
    Active branches, optionally filtered by city / country
    ---
    tags:
      - Browse
    security: []
    parameters:
      - {in: query, name: city, type: string}
      - {in: query, name: country, type: string}
    responses:
      200:
        description: Active branches ordered by name
    """
    city = (request.args.get("city") or "").strip() or None
    country = (request.args.get("country") or "").strip() or None

    stmt = select(Branch).where(Branch.is_active.is_(True))
    if country:
        stmt = stmt.where(Branch.country.ilike(f"%{country}%"))
    if city:
        stmt = stmt.where(Branch.city.ilike(f"%{city}%"))
    branches = db.session.scalars(stmt.order_by(Branch.name.asc())).all()

    return jsonify(
        {
            "status": "success",
            "data": {
                "branches": [row_dict(b, PUBLIC_BRANCH_FIELDS) for b in branches],
                "filters": {"city": city, "country": country},
            },
        }
    ), 200


@browse_bp.route("/branches/<ref>/services", methods=["GET"])
def branch_services(ref):
    """
    Services bookable at a branch (id or slug)
    ---
    tags:
      - Browse
    security: []
    parameters:
      - {in: path, name: ref, type: string, required: true}
      - {in: query, name: category_id, type: integer}
    responses:
      200:
        description: Branch summary and its active priced services
      404:
        description: Branch not found or not active
    """
    category_id = parse_int(request.args.get("category_id"), "category_id")
    found = require_branch(ref, active_only=True)
    branch = db.session.get(Branch, found.id)

    stmt = (
        select(BranchServicePricing)
        .join(Service, Service.id == BranchServicePricing.service_id)
        .options(selectinload(BranchServicePricing.service).selectinload(Service.category))
        .where(
            BranchServicePricing.branch_id == branch.id,
            BranchServicePricing.is_active.is_(True),
            Service.is_active.is_(True),
        )
        .order_by(Service.name.asc(), Service.id.asc())
    )
    if category_id is not None:
        stmt = stmt.where(Service.category_id == category_id)

    services = []
    for pricing in db.session.scalars(stmt):
        service = pricing.service
        category = service.category
        services.append(
            {
                "id": service.id,
                "name": service.name,
                "description": service.description,
                "price_amount": float(pricing.price_amount),
                "currency": pricing.currency,
                "duration_min": (
                    pricing.duration_min
                    if pricing.duration_min is not None
                    else service.default_duration_min
                ),
                "image_url_1": service.image_url_1,
                "category": {"id": category.id, "name": category.name} if category else None,
            }
        )

    branch_fields = ("id", "name", "slug", "description") + tuple(
        f"image_url_{slot}" for slot in range(1, 6)
    )
    return jsonify(
        {
            "status": "success",
            "data": {"branch": row_dict(branch, branch_fields), "services": services},
        }
    ), 200


@browse_bp.route("/branches/<ref>/hotel", methods=["GET"])
def branch_hotel(ref):
    found = require_branch(ref, active_only=True)
    branch = db.session.get(Branch, found.id)
    hotel = db.session.get(Hotel, branch.hotel_id) if branch.hotel_id else None
    if hotel is None:
        raise NotFoundError("Hotel not found")
    return jsonify({"status": "success", "data": {"hotel": row_dict(hotel, HOTEL_FIELDS)}}), 200


@browse_bp.route("/categories", methods=["GET"])
def categories():
    rows = db.session.execute(
        select(ServiceCategory.id, ServiceCategory.name)
        .where(ServiceCategory.is_active.is_(True))
        .order_by(ServiceCategory.name.asc())
    ).all()
    return jsonify(
        {"status": "success", "data": {"categories": [{"id": r.id, "name": r.name} for r in rows]}}
    ), 200


@browse_bp.route("/countries", methods=["GET"])
def countries():
    rows = db.session.scalars(
        select(Branch.country)
        .where(Branch.is_active.is_(True), Branch.country.is_not(None))
        .distinct()
    ).all()
    return jsonify({"status": "success", "data": {"countries": sorted(c for c in rows if c)}}), 200


@browse_bp.route("/cities", methods=["GET"])
def cities():
    country = (request.args.get("country") or "").strip() or None
    stmt = select(Branch.city).where(Branch.is_active.is_(True), Branch.city.is_not(None))
    if country:
        stmt = stmt.where(Branch.country.ilike(f"%{country}%"))
    rows = db.session.scalars(stmt.distinct()).all()
    return jsonify(
        {
            "status": "success",
            "data": {"cities": sorted(c for c in rows if c), "filter": {"country": country}},
        }
    ), 200
