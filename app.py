"""Application factory."""

import logging
import os
import uuid

from flask import Flask, g, jsonify, request
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_limiter import Limiter
from flask_limiter.errors import RateLimitExceeded
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException

from config import Config
from models import db
from routes.admin import admin_bp
from routes.auth import auth_bp
from routes.content import content_bp
from routes.documents import documents_bp
from routes.protected import protected_bp
from storage import init_storage

migrate = Migrate()
jwt = JWTManager()
limiter = Limiter(key_func=get_remote_address)

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."


def create_app(config_class: type[Config] = Config) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Core subsystems
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    _register_jwt_callbacks()
    init_storage(app)

    # CORS
    CORS(
        app,
        resources={r"/api/*": {"origins": app.config.get("CORS_ORIGINS", "*")}},
        supports_credentials=True,
    )

    # Rate limiting: one fixed window per client IP across /api, plus a
    # tighter window shared by every /api/auth route.
    key_prefix = app.config.get("RATELIMIT_KEY_PREFIX") or str(uuid.uuid4())

    global limiter
    limiter = Limiter(
        key_func=get_remote_address,
        application_limits=[app.config.get("API_RATE_LIMIT", "100 per 15 minutes")],
        strategy=app.config.get("RATELIMIT_STRATEGY", "fixed-window"),
        storage_uri=app.config.get("RATELIMIT_STORAGE_URI", "memory://"),
        headers_enabled=app.config.get("RATELIMIT_HEADERS_ENABLED", True),
        key_prefix=key_prefix,
    )
    limiter.shared_limit(app.config.get("AUTH_RATE_LIMIT", "5 per 15 minutes"), scope="auth")(auth_bp)
    limiter.init_app(app)
    app.config["RATELIMIT_KEY_PREFIX"] = key_prefix

    # Blueprints
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(protected_bp, url_prefix="/api/protected")
    app.register_blueprint(admin_bp, url_prefix="/api/admin")
    app.register_blueprint(content_bp, url_prefix="/api")
    app.register_blueprint(documents_bp, url_prefix="/api")

    # Health
    @app.route("/api/health", methods=["GET"])
    def health_check():
        return jsonify({"success": True, "message": "ok"})

    # Errors
    _register_error_handlers(app)

    return app


def _error_response(status: int, error: str, detail: str, **extra):
    request_id = g.get("request_id") or str(uuid.uuid4())
    payload = {
        "success": False,
        "error": error,
        "detail": detail,
        "request_id": request_id,
    }
    payload.update(extra)
    response = jsonify(payload)
    response.status_code = status
    response.headers.setdefault("X-Request-ID", request_id)
    return response


def _register_jwt_callbacks() -> None:
    @jwt.unauthorized_loader
    def _missing_token(reason: str):
        return _error_response(
            401, "Unauthorized", "Access denied. Please log in to use this feature.", requiresAuth=True
        )

    @jwt.invalid_token_loader
    def _invalid_token(reason: str):
        return _error_response(401, "Unauthorized", "Invalid token. Please log in again.", requiresAuth=True)

    @jwt.expired_token_loader
    def _expired_token(jwt_header: dict, jwt_payload: dict):
        return _error_response(
            401, "Unauthorized", "Your session has expired. Please log in again.", requiresAuth=True
        )


def _register_error_handlers(app: Flask) -> None:
    """Register JSON error handlers with request IDs."""

    @app.before_request
    def _assign_request_id():
        g.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

    @app.after_request
    def _add_request_id_header(response):
        request_id = g.get("request_id")
        if request_id:
            response.headers.setdefault("X-Request-ID", request_id)
        return response

    @app.errorhandler(RateLimitExceeded)
    def _handle_rate_limit(error: RateLimitExceeded):
        app.logger.warning("Rate limit %s exceeded by %s", error.description, get_remote_address())
        return _error_response(429, "Too Many Requests", RATE_LIMIT_MESSAGE)

    @app.errorhandler(HTTPException)
    def _handle_http_exception(error: HTTPException):
        if (error.code or 500) >= 500:
            app.logger.error("%s %s failed: %s", request.method, request.path, error.description)
        return _error_response(
            error.code or 500,
            getattr(error, "name", "Error"),
            error.description,
            **getattr(error, "extra", {}),
        )

    @app.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        app.logger.exception("Unhandled application error", exc_info=error)
        return _error_response(500, "Internal Server Error", "An unexpected error occurred.")


if __name__ == "__main__":
    application = create_app()
    application.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
