from flask import Blueprint, jsonify, request

from spa_admin.services.registry import booking_services

customer_bookings_bp = Blueprint(
    "customer_bookings", __name__, url_prefix="/api/customer/bookings"
)


@customer_bookings_bp.route("", methods=["POST"])
def create_booking():
    """
    Book one or more services at a branch
    ---
    tags:
      - Bookings
    security: []
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [branch_id, date, services, customer]
          properties:
            branch_id:
              type: string
              description: numeric id or slug
            date:
              type: string
              format: date
            notes:
              type: string
            services:
              type: array
              items:
                type: object
                properties:
                  service_id: {type: integer}
                  quantity: {type: integer, minimum: 1}
            customer:
              type: object
              required: [phone]
              properties:
                first_name: {type: string}
                last_name: {type: string}
                phone: {type: string}
                email: {type: string}
                gender: {type: string}
                nationality: {type: string}
    responses:
      201:
        description: Booking created with its line breakdown
      400:
        description: Invalid request, or a service / branch cannot be booked
      500:
        description: Storage failure (nothing was stored)
    """
    result = booking_services().assembler.create_booking(request.get_json(silent=True))
    return jsonify(
        {
            "success": True,
            "booking_id": result.booking_id,
            "items": [line.to_dict() for line in result.items],
            "grand_total": float(result.grand_total),
            "currency": result.currency,
        }
    ), 201
