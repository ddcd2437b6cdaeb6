"""Helpers shared by the API blueprints."""

import logging
from functools import wraps

from flask import current_app, g, jsonify, request

from src.services.container import ServiceContainer

logger = logging.getLogger(__name__)

EXTENSION_KEY = "beacon"


def get_services() -> ServiceContainer:
    """The ServiceContainer attached to the running app."""
    return current_app.extensions[EXTENSION_KEY]


def success_response(data=None, message: str | None = None, status: int = 200):
    body = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return jsonify(body), status


def error_response(error: str, status: int, **extra):
    body = {"success": False, "error": error}
    body.update(extra)
    return jsonify(body), status


def require_api_key(f):
    """Decorator to require a valid tenant API key.

    Sets ``g.tenant`` to the resolved TenantContext.
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        authenticator = get_services().authenticator

        if authenticator.extract_api_key(request.headers) is None:
            return error_response(
                "API key is required. Please provide it in x-api-key header or Authorization Bearer token", 401
            )

        tenant = authenticator.authenticate(request.headers)
        if tenant is None:
            return error_response("Invalid or expired API key", 401)

        g.tenant = tenant
        return f(*args, **kwargs)

    return decorated_function
