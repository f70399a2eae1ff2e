"""Flask application factory."""

from __future__ import annotations

import logging
import sys

from flask import Flask, request
from loguru import logger
from werkzeug.exceptions import HTTPException

from config import settings

from .blueprints import api_search
from .services.api_helpers import api_error


def configure_logging() -> None:
    """Route loguru to stdout at the configured level (JSON lines when log_format=json)."""
    logger.remove()
    serialize = str(getattr(settings, "log_format", "text") or "text").strip().lower() == "json"
    logger.add(sys.stdout, level=settings.log_level.upper(), serialize=serialize)

    if not settings.web.access_log:
        logging.getLogger("werkzeug").setLevel(logging.WARNING)


def _load_secret_key() -> str:
    sk = (settings.web.secret_key or "").strip()
    if sk:
        return sk

    logger.warning("No secret key configured (PAPER_SEARCH_SECRET_KEY); generating a random key")
    import secrets

    return secrets.token_urlsafe(32)


def create_app() -> Flask:
    configure_logging()

    app = Flask(__name__)
    app.secret_key = _load_secret_key()

    # Optional Sentry error reporting (no-op unless configured).
    try:
        from config.sentry import initialize_sentry

        initialize_sentry()
    except Exception as exc:
        logger.warning(f"Sentry initialization failed: {exc}")

    app.config.update(
        MAX_CONTENT_LENGTH=settings.web.max_content_length,
    )

    # Initialize Swagger/OpenAPI documentation (disabled by default)
    if settings.web.enable_swagger:
        try:
            from flasgger import Swagger

            app.config["SWAGGER"] = {
                "title": "Paper Search API",
                "uiversion": 3,
                "description": "Typeahead, autocorrect and ranked search over the paper repository",
                "version": "1.0.0",
                "specs_route": "/apidocs/",
            }
            Swagger(app)
        except ImportError:
            logger.warning("flasgger not installed, Swagger UI disabled")

    @app.errorhandler(HTTPException)
    def _handle_http_error(err: HTTPException):
        return api_error(err.name, err.code or 500)

    @app.errorhandler(Exception)
    def _handle_unexpected(err: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.path}: {err}")
        return api_error("Internal Server Error", 500)

    @app.after_request
    def add_security_headers(resp):
        resp.headers.setdefault("X-Content-Type-Options", "nosniff")
        resp.headers.setdefault("X-Frame-Options", "DENY")
        resp.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        resp.headers.setdefault("Cross-Origin-Resource-Policy", "same-origin")
        if request.path.startswith("/api/"):
            resp.headers.setdefault("Cache-Control", "no-store")
        return resp

    app.register_blueprint(api_search.bp)
    return app
