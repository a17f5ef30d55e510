"""
app/__init__.py — Flask application factory.

Pattern: create_app(config_name) creates and returns a configured Flask app.
         Nothing is initialised at import time, so tests can build isolated
         app instances and Alembic can import the metadata without a server.

Responsibilities:
  1. Load configuration from config_by_name[config_name]
  2. Configure logging from LOG_LEVEL
  3. Initialise extensions (SQLAlchemy, Marshmallow) via init_app()
  4. Register all route blueprints under /api/v1
  5. Register global error handlers that render the response envelope
     {"success": false, "message": ..., "error": {"code": ...}}

Note on model imports:
  All model modules are imported inside create_app() so that SQLAlchemy's
  metadata is populated before create_all() or Alembic inspects it.
"""

from __future__ import annotations

import logging
import traceback

from flask import Flask, jsonify, request
from flask.logging import default_handler
from marshmallow import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError
from werkzeug.exceptions import HTTPException

from roomsync.config import config_by_name, validate_production_config


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str = "development") -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
                     Defaults to "development".
    """
    app = Flask(__name__)
    app.json.sort_keys = False

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)

    if config_name == "production":
        validate_production_config(app)  # raises ValueError if misconfigured

    _configure_logging(app)

    # ── Extensions ─────────────────────────────────────────────────────────
    # Imported here (not at module top) to avoid circular imports.
    from roomsync.app.extensions import db, ma
    db.init_app(app)
    ma.init_app(app)

    # ── Model registration ─────────────────────────────────────────────────
    with app.app_context():
        from roomsync.app.models import (  # noqa: F401
            group,
            membership,
            rating,
            task,
            user,
        )

    _register_blueprints(app)
    _register_error_handlers(app)
    _register_cors(app)

    app.logger.debug("RoomSync app created with %s config", config_name)
    return app


def _configure_logging(app: Flask) -> None:
    """
    Sets the level on app.logger ("roomsync.app"). Service modules log through
    child loggers ("roomsync.app.services.*") and propagate to Flask's
    default handler.
    """
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO").upper())
    default_handler.setFormatter(logging.Formatter(
        "[%(asctime)s] %(levelname)s in %(name)s: %(message)s"
    ))


def _register_blueprints(app: Flask) -> None:
    """
    Registers all route blueprints under the /api/v1 prefix.

    Route files only specify paths relative to their resource.
    """
    from roomsync.app.routes.groups import groups_bp
    from roomsync.app.routes.ratings import ratings_bp
    from roomsync.app.routes.tasks import tasks_bp
    from roomsync.app.routes.users import users_bp

    app.register_blueprint(groups_bp,  url_prefix="/api/v1/groups")
    app.register_blueprint(users_bp,   url_prefix="/api/v1/users")
    app.register_blueprint(tasks_bp,   url_prefix="/api/v1/tasks")
    app.register_blueprint(ratings_bp, url_prefix="/api/v1/ratings")


def _error_body(code: str, message: str, field: str | None = None) -> dict:
    payload = {"code": code}
    if field is not None:
        payload["field"] = field
    return {"success": False, "message": message, "error": payload}


def _register_error_handlers(app: Flask) -> None:
    """
    Registers global error handlers.

    Handlers:
      AppError        → envelope with the error's own HTTP status
      ValidationError → MISSING_FIELD / INVALID_FIELD (400)
      StaleDataError  → CONCURRENT_MODIFICATION (409); a group changed under us
      IntegrityError  → CONFLICT (409); a uniqueness race slipped past the checks
      HTTPException   → envelope with werkzeug's status (unknown route, bad JSON)
      Exception       → INTERNAL_ERROR (500); traceback logged, never returned
    """
    from roomsync.app.errors import AppError, ErrorCode
    from roomsync.app.extensions import db

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        """Routes never catch AppError; they let it propagate here."""
        if error.http_status >= 500:
            app.logger.error("%r", error)
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        """
        Returns the FIRST field error only: one error, not many.

        marshmallow messages are keyed by field name, e.g.
        {"name": ["Missing data for required field."]}; schema-level errors
        use the "_schema" key and carry no field.
        """
        messages = error.messages
        field = None
        raw_message = "Invalid input."

        if isinstance(messages, dict) and messages:
            field_name, field_errors = next(iter(messages.items()))
            field = field_name if field_name != "_schema" else None
            if isinstance(field_errors, list) and field_errors:
                raw_message = str(field_errors[0])
            else:
                raw_message = str(field_errors)
        elif isinstance(messages, list) and messages:
            raw_message = str(messages[0])

        if raw_message.startswith("Missing data for required field"):
            code = ErrorCode.MISSING_FIELD
        else:
            code = ErrorCode.INVALID_FIELD

        return jsonify(_error_body(code, raw_message, field)), 400

    @app.errorhandler(StaleDataError)
    def handle_stale_data(error: StaleDataError):
        db.session.rollback()
        app.logger.warning("Concurrent modification rejected: %s", error)
        return jsonify(_error_body(
            ErrorCode.CONCURRENT_MODIFICATION,
            "The group was changed by another request. Reload and try again.",
        )), 409

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(error: IntegrityError):
        db.session.rollback()
        app.logger.warning("Integrity conflict rejected: %s", error.orig)
        return jsonify(_error_body(
            ErrorCode.CONFLICT,
            "The request conflicts with a concurrent change. Reload and try again.",
        )), 409

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        code = (error.name or "HTTP_ERROR").upper().replace(" ", "_")
        return jsonify(_error_body(code, error.description or error.name)), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        """
        Catches all unhandled exceptions and returns a generic 500 response.
        Stack traces never leave the server.
        """
        app.logger.error(
            "Unhandled exception: %s\n%s",
            str(error),
            traceback.format_exc(),
        )
        return jsonify(_error_body(
            ErrorCode.INTERNAL_ERROR,
            "An unexpected error occurred. Please try again later.",
        )), 500


def _register_cors(app: Flask) -> None:
    """
    Adds CORS headers for local development against the API (DEBUG or TESTING).
    The mobile client does not need them.
    """

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allow_all = bool(app.config.get("DEBUG") or app.config.get("TESTING"))

        if allow_all:
            response.headers["Access-Control-Allow-Origin"] = origin if origin else "*"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, PATCH, DELETE, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"

        return response
