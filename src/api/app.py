"""Flask application factory for the analytics API."""

import logging
from datetime import UTC, datetime

from flask import Flask, jsonify
from flask_cors import CORS
from sqlalchemy.orm import sessionmaker
from werkzeug.middleware.proxy_fix import ProxyFix

from src.api.blueprints.analytics import analytics_bp
from src.api.blueprints.auth import auth_bp
from src.api.errors import register_error_handlers
from src.api.extensions import limiter
from src.api.utils import EXTENSION_KEY, get_services
from src.core.config import AppConfig, get_config
from src.core.database.database_session import check_database_health
from src.services.background_work_queue import BackgroundWorkQueue
from src.services.container import ServiceContainer

logger = logging.getLogger(__name__)


def create_app(
    config: AppConfig | None = None,
    session_factory: sessionmaker | None = None,
    work_queue: BackgroundWorkQueue | None = None,
) -> Flask:
    """Create and configure the Flask application.

    Args:
        config: Application configuration; read from the environment when omitted
        session_factory: SQLAlchemy session factory; the production engine when omitted
        work_queue: Background queue; a new one sized from config when omitted
    """
    config = config or get_config()

    app = Flask(__name__)
    app.json.sort_keys = False
    app.config["DEBUG"] = config.debug

    # Rate limiting
    app.config["RATELIMIT_ENABLED"] = config.rate_limits.enabled
    app.config["RATELIMIT_STORAGE_URI"] = config.rate_limits.storage_uri
    app.config["RATELIMIT_HEADERS_ENABLED"] = True
    app.config["BEACON_LIMIT_KEY_MANAGEMENT"] = config.rate_limits.key_management
    app.config["BEACON_LIMIT_COLLECTION"] = config.rate_limits.collection
    app.config["BEACON_LIMIT_ANALYTICS"] = config.rate_limits.analytics
    limiter.init_app(app)

    CORS(
        app,
        resources={r"/api/*": {"origins": config.server.origin_list}},
        methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-API-Key"],
        supports_credentials=True,
    )

    # Behind a load balancer the client address arrives in X-Forwarded-For
    if config.server.trust_proxy:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)

    app.extensions[EXTENSION_KEY] = ServiceContainer(config, session_factory, work_queue)

    app.register_blueprint(auth_bp)
    app.register_blueprint(analytics_bp)
    register_error_handlers(app)

    @app.route("/health", methods=["GET"])
    @limiter.exempt
    def health():
        healthy, message = check_database_health(get_services().session_factory)
        body = {
            "status": "ok" if healthy else "degraded",
            "timestamp": datetime.now(UTC).isoformat(),
            "database": message,
        }
        return jsonify(body), 200 if healthy else 503

    logger.info(f"Analytics API created (environment={config.environment})")
    return app
