from flask import Blueprint, jsonify, request

from spa_admin.services.registry import booking_services
from spa_admin.utils.auth import admin_required
from spa_admin.utils.pagination import positive_path_int

admin_bookings_bp = Blueprint(
    "admin_bookings", __name__, url_prefix="/api/admin/bookings"
)


@admin_bookings_bp.route("", methods=["GET"])
@admin_required
def list_bookings():
    """
    List bookings
    ---
    tags:
      - Bookings
    parameters:
      - {in: query, name: page, type: integer, default: 1}
      - {in: query, name: limit, type: integer, default: 20}
      - {in: query, name: from, type: string, format: date}
      - {in: query, name: to, type: string, format: date}
      - {in: query, name: branch_id, type: integer}
      - in: query
        name: status
        type: string
        enum: [pending, confirmed, completed, cancelled]
      - in: query
        name: sortBy
        type: string
        enum: [created_at, date, total_amount, id]
      - {in: query, name: sortOrder, type: string, enum: [asc, desc]}
    responses:
      200:
        description: Page of bookings with items_count and total_duration
      400:
        description: Invalid status filter
    """
    page, rows, total = booking_services().read_model.get_list_page(request.args)
    return jsonify(
        {
            "success": True,
            "page": page.page,
            "limit": page.limit,
            "total": total,
            "data": rows,
        }
    ), 200


@admin_bookings_bp.route("/<booking_id>", methods=["GET"])
@admin_required
def get_booking(booking_id):
    """
    Booking detail with services grouped by service and totals
    ---
    tags:
      - Bookings
    parameters:
      - {in: path, name: booking_id, type: integer, required: true}
    responses:
      200:
        description: Booking detail
      404:
        description: Booking not found
    """
    booking_id = positive_path_int(booking_id, "Invalid booking id", missing="Booking not found")
    detail = booking_services().read_model.get_detail(booking_id)
    return jsonify({"success": True, "data": detail}), 200


@admin_bookings_bp.route("/<booking_id>/status", methods=["PATCH"])
@admin_required
def update_booking_status(booking_id):
    """
    Move a booking to a new status
    ---
    tags:
      - Bookings
    parameters:
      - {in: path, name: booking_id, type: integer, required: true}
      - in: body
        name: body
        schema:
          type: object
          required: [status]
          properties:
            status:
              type: string
              enum: [pending, confirmed, completed, cancelled]
    responses:
      200:
        description: New status
      400:
        description: Unknown status or illegal transition
      404:
        description: Booking not found
    """
    booking_id = positive_path_int(booking_id, "Invalid booking id", missing="Booking not found")
    data = request.get_json(silent=True) or {}
    booking = booking_services().status_machine.transition(
        booking_id, data.get("status")
    )
    return jsonify({"success": True, "data": {"id": booking.id, "status": booking.status}}), 200
