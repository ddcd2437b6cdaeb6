"""Maps service errors to HTTP responses through one table."""

import logging

from flask import Flask
from werkzeug.exceptions import HTTPException

from src.api.utils import error_response
from src.core.exceptions import (
    AnalyticsServiceError,
    DuplicateRegistration,
    NoActiveCredential,
    NotFoundOrAlreadyInactive,
    NotFoundOrUnauthorized,
    PersistenceFailure,
    ValidationError,
)

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ValidationError: 400,
    DuplicateRegistration: 409,
    NotFoundOrUnauthorized: 404,
    NotFoundOrAlreadyInactive: 404,
    NoActiveCredential: 404,
    PersistenceFailure: 500,
}

HTTP_ERROR_MESSAGES = {
    404: "Endpoint not found",
    405: "Method not allowed",
}


def status_for(error: AnalyticsServiceError) -> int:
    """HTTP status for a service error; unmapped errors are server errors."""
    for cls in type(error).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return 500


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        return error_response(error.message, 400, errors=error.errors)

    @app.errorhandler(AnalyticsServiceError)
    def handle_service_error(error: AnalyticsServiceError):
        status = status_for(error)
        if status >= 500:
            logger.error(f"{type(error).__name__}: {error.message}", exc_info=error)
            # Storage details stay in the log
            if isinstance(error, PersistenceFailure):
                return error_response(PersistenceFailure.default_message, status)
            return error_response("Internal server error", status)
        return error_response(error.message, status)

    @app.errorhandler(429)
    def handle_rate_limited(error):
        return error_response(error.description or "Too many requests, please try again later", 429)

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        message = HTTP_ERROR_MESSAGES.get(error.code, error.name)
        return error_response(message, error.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        logger.exception(f"Unhandled error: {error}")
        return error_response("Internal server error", 500)
