"""Error taxonomy shared by the service layer and the HTTP adapters."""

from __future__ import annotations

from flask import jsonify
from werkzeug.exceptions import HTTPException


class VibeFloError(Exception):
    """Base class; ``message`` is safe to show to the caller."""

    status_code = 500
    default_message = "Server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(VibeFloError):
    status_code = 400
    default_message = "Invalid request"


class AuthError(VibeFloError):
    status_code = 401
    default_message = "User not authenticated"


class AuthorizationError(VibeFloError):
    status_code = 403
    default_message = "You do not have permission to access this resource"


class NotFoundError(VibeFloError):
    status_code = 404
    default_message = "Not found"


class ConflictError(VibeFloError):
    # Duplicate membership is reported as a caller error, not 409
    status_code = 400
    default_message = "Already exists"


class PersistenceError(VibeFloError):
    status_code = 500
    default_message = "Server error"


class ExternalServiceError(VibeFloError):
    status_code = 500
    default_message = "External service unavailable"


def error_response(message: str, status: int):
    return jsonify({"message": message}), status


def register_error_handlers(app) -> None:
    """Render every error as ``{"message": ...}`` with the status carrying the taxonomy."""

    @app.errorhandler(VibeFloError)
    def _handle_vibeflo_error(exc: VibeFloError):
        if exc.status_code >= 500:
            app.logger.error("%s: %s", type(exc).__name__, exc.message)
        return error_response(exc.message, exc.status_code)

    @app.errorhandler(HTTPException)
    def _handle_http_exception(exc: HTTPException):
        return error_response(exc.description or exc.name, exc.code or 500)

    @app.errorhandler(Exception)
    def _handle_unexpected(exc: Exception):
        app.logger.error("Unhandled error: %s", exc, exc_info=True)
        return error_response("Server error", 500)


__all__ = [
    "VibeFloError",
    "ValidationError",
    "AuthError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "PersistenceError",
    "ExternalServiceError",
    "error_response",
    "register_error_handlers",
]
