import datetime
from functools import wraps

import bcrypt
import jwt
from flask import current_app, g, request

from spa_admin.errors import AuthError, ForbiddenError
from spa_admin.extensions import db
from spa_admin.models import Admins


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def check_password(password: str, stored_hash) -> bool:
    if not stored_hash:
        return False
    if isinstance(stored_hash, str):
        stored_hash = stored_hash.encode("utf-8")
    try:
        return bcrypt.checkpw(password.encode("utf-8"), stored_hash)
    except ValueError:
        # not a bcrypt hash
        return False


def sign_admin_token(admin) -> str:
    payload = {
        "id": admin.id,
        "type": "admin",
        "exp": datetime.datetime.now(datetime.timezone.utc)
        + datetime.timedelta(hours=current_app.config["JWT_EXPIRES_HOURS"]),
    }
    return jwt.encode(payload, current_app.config["JWT_SECRET"], algorithm="HS256")


def _bearer_token():
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header.split(" ", 1)[1].strip() or None
    return None


def admin_required(view):
    """Reject the request unless it carries a token for an active admin."""

    @wraps(view)
    def wrapped(*args, **kwargs):
        token = _bearer_token()
        if not token:
            raise AuthError("Admin not logged in")

        try:
            decoded = jwt.decode(
                token, current_app.config["JWT_SECRET"], algorithms=["HS256"]
            )
        except jwt.PyJWTError:
            raise AuthError("Invalid or expired token")

        if decoded.get("type") != "admin":
            raise AuthError("Invalid token type")

        admin = db.session.get(Admins, decoded.get("id"))
        if not admin:
            raise AuthError("Admin not found")
        if not admin.is_active:
            raise ForbiddenError("Admin account disabled")

        g.admin = admin
        return view(*args, **kwargs)

    return wrapped
