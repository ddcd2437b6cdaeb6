"""Production server entry point for the analytics API.

Supports two server backends:
- Waitress (production, default)
- Werkzeug (development/debugging)
"""

import logging
import os

from flask import Flask

from src.core.config import get_config

logger = logging.getLogger(__name__)


def run_waitress(app: Flask, port: int, threads: int) -> None:
    """Run with Waitress WSGI server (production)."""
    from waitress import serve

    logger.info(f"Starting analytics API with Waitress on port {port} ({threads} threads)")
    serve(app, host="0.0.0.0", port=port, threads=threads)


def run_werkzeug(app: Flask, port: int) -> None:
    """Run with Werkzeug server (development)."""
    from werkzeug.serving import make_server

    logger.info(f"Starting analytics API with Werkzeug on port {port}")
    server = make_server("0.0.0.0", port, app, threaded=True)
    server.serve_forever()


def main() -> None:
    """Create the app and serve it until interrupted."""
    from src.api.app import create_app
    from src.api.utils import EXTENSION_KEY
    from src.core.logging_config import setup_structured_logging

    setup_structured_logging()
    config = get_config()
    app = create_app(config)
    services = app.extensions[EXTENSION_KEY]

    server_type = os.environ.get("SERVER_TYPE", "waitress").lower()
    try:
        if config.debug or server_type == "werkzeug":
            run_werkzeug(app, config.server.port)
        else:
            run_waitress(app, config.server.port, config.server.threads)
    finally:
        # Let queued aggregation jobs finish before exiting
        services.shutdown(wait=True)


if __name__ == "__main__":
    main()
