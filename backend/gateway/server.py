"""
API gateway: combines the users, events and registrations blueprints.
This is the local entrypoint for development.
"""

import logging
from typing import Optional, Tuple

from flask import Flask, Response, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException, NotFound

from backend.auth_service.routes import auth_bp
from backend.config import Settings
from backend.database.db_connection import Database, init_app
from backend.events_service.routes import events_bp
from backend.registrations_service.routes import registrations_bp

logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(levelname)s] %(asctime)s - %(message)s"
BODY_METHODS = ("POST", "PATCH")
ACCEPTED_BODY_TYPES = ("application/json", "multipart/form-data")


def create_database(settings: Settings) -> Database:
    return Database(
        settings.database_url,
        min_connections=settings.db_min_connections,
        max_connections=settings.db_max_connections,
        sslmode="require" if settings.is_production else None,
    ).open()


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> Flask:
    """
    Application factory for creating the Flask app.

    Args:
        settings (Settings, optional): Defaults to `Settings.from_env()`.
        database (Database, optional): An opened store client. One is built
            from `settings` when not given.

    Returns:
        Flask: The configured Flask application.
    """
    settings = settings or Settings.from_env()
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)

    app = Flask(__name__)
    app.config.update(settings.to_flask_config())

    CORS(app, resources={
        r"/*": {
            "origins": settings.cors_origins,
            "methods": ["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"],
        }
    })

    init_app(app, database if database is not None else create_database(settings))

    # --- REQUEST CHECKS & LOGGING ---
    @app.before_request
    def reject_unsupported_body() -> Optional[Tuple[Response, int]]:
        """
        POST/PATCH bodies must be JSON or multipart form data. Requests
        without a content type pass through.
        """
        logger.info(f"[Gateway] Incoming {request.method} {request.path}")

        if request.method not in BODY_METHODS or not request.content_type:
            return None
        if request.mimetype in ACCEPTED_BODY_TYPES:
            return None
        return jsonify({"error": "body must be json or form-data"}), 400

    @app.after_request
    def log_response(response: Response) -> Response:
        logger.info(f"[Gateway] Response {request.method} {request.path} {response.status}")
        return response

    # --- REGISTER BLUEPRINTS ---
    app.register_blueprint(auth_bp, url_prefix="/users")
    app.register_blueprint(events_bp, url_prefix="/events")
    app.register_blueprint(registrations_bp, url_prefix="/registrations")

    # --- BASIC HEALTH CHECKPOINTS ---
    @app.route("/")
    def index():
        """
        Root URL: where each resource lives.
        """
        return jsonify({
            "users": "/users",
            "events": "/events",
            "registrations": "/registrations",
        }), 200

    @app.route("/health")
    def health():
        """
        Health check endpoint.
        """
        return jsonify({"status": "ok"}), 200

    # --- ERROR HANDLERS ---
    @app.errorhandler(NotFound)
    def not_found(error: NotFound):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(HTTPException)
    def http_error(error: HTTPException):
        return jsonify({"error": error.description}), error.code

    @app.errorhandler(Exception)
    def internal_error(error: Exception):
        logger.exception(f"[Gateway] Unhandled error on {request.method} {request.path}")
        return jsonify({"error": "Internal server error"}), 500

    return app


if __name__ == "__main__":
    settings = Settings.from_env()
    database = create_database(settings)
    app = create_app(settings, database)
    try:
        app.run(host="0.0.0.0", port=settings.port)
    finally:
        database.close()
