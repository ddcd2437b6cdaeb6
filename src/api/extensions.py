"""Flask extensions shared by the app factory and the blueprints."""

from flask import current_app
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Storage and the on/off switch come from RATELIMIT_* keys in app.config
limiter = Limiter(key_func=get_remote_address)


def key_management_limit() -> str:
    return current_app.config["BEACON_LIMIT_KEY_MANAGEMENT"]


def collection_limit() -> str:
    return current_app.config["BEACON_LIMIT_COLLECTION"]


def analytics_limit() -> str:
    return current_app.config["BEACON_LIMIT_ANALYTICS"]
