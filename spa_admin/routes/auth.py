import logging

from flask import Blueprint, g, jsonify, request
from sqlalchemy import select

from spa_admin.errors import AuthError, ForbiddenError, ValidationError
from spa_admin.extensions import db
from spa_admin.models import Admins
from spa_admin.utils.auth import admin_required, check_password, sign_admin_token
from spa_admin.utils.serialize import ADMIN_FIELDS, row_dict

logger = logging.getLogger(__name__)

auth_bp = Blueprint("admin_auth", __name__, url_prefix="/api/admin/auth")


@auth_bp.route("/login", methods=["POST"])
def login():
    """
    Admin login
    ---
    tags:
      - Authentication
    security: []
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [email, password]
          properties:
            email:
              type: string
            password:
              type: string
    responses:
      200:
        description: Admin profile and JWT
      400:
        description: Missing email or password
      401:
        description: Invalid email or password
      403:
        description: Admin account is disabled
    """
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    if not email or not password:
        raise ValidationError("Email and password are required")

    admin = db.session.scalar(select(Admins).where(Admins.email == email))
    if admin is None:
        raise AuthError("Invalid email or password")
    if not admin.is_active:
        raise ForbiddenError("Admin account is disabled")
    if not check_password(password, admin.password_hash):
        logger.info("Failed admin login for %s", email)
        raise AuthError("Invalid email or password")

    token = sign_admin_token(admin)
    logger.info("Admin %s logged in", admin.id)

    body = row_dict(admin, ADMIN_FIELDS)
    body["token"] = token
    return jsonify({"status": "success", "data": body}), 200


@auth_bp.route("/logout", methods=["POST"])
def logout():
    """
    Admin logout (the client drops its token)
    ---
    tags:
      - Authentication
    responses:
      200:
        description: Logged out
    """
    return jsonify({"status": "success", "message": "Logged out successfully"}), 200


@auth_bp.route("/me", methods=["GET"])
@admin_required
def me():
    """
    Current admin
    ---
    tags:
      - Authentication
    responses:
      200:
        description: The admin named by the bearer token
      401:
        description: Missing or invalid token
    """
    return jsonify({"status": "success", "data": {"admin": row_dict(g.admin, ADMIN_FIELDS)}}), 200
