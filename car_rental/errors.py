"""
Exception classes for the rental API and the handlers that turn them into
JSON responses.

Services raise these; the handlers registered by ``register_error_handlers``
catch them at the request boundary so clients only ever see
``{"error": <message>}`` while the log keeps the full detail.
"""

import logging

from flask import jsonify
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class RentalError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class Unauthenticated(RentalError):
    """Raised when the request carries no resolvable caller identity."""

    status_code = 401
    default_message = "Unauthorized"


class ValidationError(RentalError):
    """Raised for missing or malformed fields."""

    status_code = 400
    default_message = "Invalid request"


class NotFound(RentalError):
    """Raised when a booking, vehicle or customer id does not resolve."""

    status_code = 404
    default_message = "Not found"


class Unauthorized(NotFound):
    """Raised when the record belongs to another owner.

    Reported as 404 so callers cannot probe for other owners' ids.
    """

    default_message = "Not found or unauthorized"


class Conflict(RentalError):
    """Raised when a unique constraint would be violated."""

    status_code = 400
    default_message = "A record with similar details already exists"


class VehicleUnavailable(RentalError):
    """Raised when a booking targets a vehicle that is not Available."""

    status_code = 400
    default_message = "Vehicle is not available"


def _error_response(message: str, status: int):
    return jsonify({'error': message}), status


def register_error_handlers(app, db) -> None:
    """Attach JSON error handlers to ``app``."""

    @app.errorhandler(RentalError)
    def handle_rental_error(err: RentalError):
        db.session.rollback()
        if err.status_code >= 500:
            logger.error("Request failed: %s", err.message)
        else:
            logger.warning("Request rejected (%s): %s", err.status_code, err.message)
        return _error_response(err.message, err.status_code)

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        db.session.rollback()
        logger.warning("Integrity error: %s", err.orig)
        return _error_response(Conflict.default_message, Conflict.status_code)

    @app.errorhandler(HTTPException)
    def handle_http_error(err: HTTPException):
        return _error_response(err.name, err.code)

    @app.errorhandler(Exception)
    def handle_unexpected(err: Exception):
        db.session.rollback()
        logger.exception("Unhandled error while processing request")
        return _error_response("Internal server error", 500)
