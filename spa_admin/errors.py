"""
Error taxonomy and the Flask handlers that render it.

Every error response carries the same envelope::

    {"status": "error", "message": "..."}

``details`` (and ``stack`` for unexpected failures) are only added when
DEBUG_ERRORS is on.
"""

import logging
import traceback
from typing import Any, Dict, Optional

from flask import current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from spa_admin.extensions import db

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors that are safe to show to API clients."""

    status_code = 500

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}


class ValidationError(AppError):
    status_code = 400


class AuthError(AppError):
    status_code = 401


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


class InvalidTransitionError(ConflictError):
    """Illegal booking status change. Served as 400 on the admin API."""

    status_code = 400

    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            f"Invalid status transition from {current} to {target}",
            details={"from": current, "to": target},
        )
        self.current = current
        self.target = target


class UnavailableError(AppError):
    """Requested services cannot be sold at the branch."""

    status_code = 400


class StorageError(AppError):
    status_code = 500


class NotificationError(AppError):
    """Raised inside notification delivery only; logged, never returned."""


def error_response(message, status_code, details=None, stack=None):
    body = {"status": "error", "message": message}
    if current_app.config.get("DEBUG_ERRORS"):
        if details:
            body["details"] = details
        if stack:
            body["stack"] = stack
    return jsonify(body), status_code


def register_error_handlers(app):
    @app.errorhandler(AppError)
    def handle_app_error(err):
        if err.status_code >= 500:
            logger.error("%s: %s", type(err).__name__, err.message, exc_info=err)
            cause = err.__cause__
            details = dict(err.details)
            if cause is not None:
                details["cause"] = str(cause)
            return error_response(
                err.message, err.status_code, details, traceback.format_exc()
            )
        return error_response(err.message, err.status_code, err.details)

    @app.errorhandler(SQLAlchemyError)
    def handle_storage_error(err):
        logger.exception("Unhandled database error")
        db.session.rollback()
        return error_response(
            "Database error", 500, {"cause": str(err)}, traceback.format_exc()
        )

    @app.errorhandler(HTTPException)
    def handle_http_error(err):
        return error_response(err.description or err.name, err.code)

    @app.errorhandler(Exception)
    def handle_unexpected(err):
        logger.exception("Unhandled error")
        return error_response(
            "Something went wrong", 500, {"cause": str(err)}, traceback.format_exc()
        )
