from flask import Blueprint, jsonify, request
from sqlalchemy import func, select

from spa_admin.extensions import db
from spa_admin.models import Booking, BookingItem, Branch, Service
from spa_admin.services.registry import booking_services
from spa_admin.utils.auth import admin_required
from spa_admin.utils.pagination import parse_date, parse_int

dashboard_bp = Blueprint("admin_dashboard", __name__, url_prefix="/api/admin/dashboard")


def _count(stmt):
    return db.session.scalar(stmt) or 0


@dashboard_bp.route("/statistics", methods=["GET"])
@admin_required
def statistics():
    """
    Dashboard counters and revenue
    ---
    tags:
      - Dashboard
    parameters:
      - {in: query, name: branch_id, type: integer}
      - {in: query, name: service_id, type: integer, description: only bookings containing this service}
      - {in: query, name: from, type: string, format: date}
      - {in: query, name: to, type: string, format: date}
    responses:
      200:
        description: bookings_count, branches_count, active/inactive services and total_revenue
    """
    branch_id = parse_int(request.args.get("branch_id"), "branch_id")
    service_id = parse_int(request.args.get("service_id"), "service_id")
    date_from = parse_date(request.args.get("from"), "from")
    date_to = parse_date(request.args.get("to"), "to")

    filters = []
    if branch_id:
        filters.append(Booking.branch_id == branch_id)
    if date_from:
        filters.append(Booking.date >= date_from)
    if date_to:
        filters.append(Booking.date <= date_to)
    if service_id:
        filters.append(
            Booking.id.in_(
                select(BookingItem.booking_id).where(BookingItem.service_id == service_id)
            )
        )

    totals = select(func.count(Booking.id), func.coalesce(func.sum(Booking.total_amount), 0))
    for clause in filters:
        totals = totals.where(clause)
    bookings_count, revenue = db.session.execute(totals).one()

    return jsonify(
        {
            "success": True,
            "data": {
                "bookings_count": bookings_count or 0,
                "branches_count": _count(select(func.count(Branch.id))),
                "active_services_count": _count(
                    select(func.count(Service.id)).where(Service.is_active.is_(True))
                ),
                "inactive_services_count": _count(
                    select(func.count(Service.id)).where(Service.is_active.is_(False))
                ),
                "total_revenue": float(revenue or 0),
            },
        }
    ), 200


@dashboard_bp.route("/recent-bookings", methods=["GET"])
@admin_required
def recent_bookings():
    limit = parse_int(request.args.get("limit"), "limit") or 10
    rows = booking_services().read_model.recent(limit)
    return jsonify({"success": True, "data": rows}), 200
