# backend/posail/__init__.py
from datetime import timedelta

from flask import Flask, g, jsonify, request
from werkzeug.exceptions import HTTPException

from .config import Config
from .errors import ApiError
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Resolve identity token settings once; misconfiguration aborts start-up
    from .services.login_throttle_service import LoginThrottle
    from .services.token_service import parse_expires_in, resolve_jwt_secret

    app.config["JWT_SECRET"] = resolve_jwt_secret(
        app.config.get("JWT_SECRET"),
        production=app.config.get("ENV_NAME") == "production",
        logger=app.logger,
    )
    app.config["JWT_EXPIRES_DELTA"] = parse_expires_in(app.config.get("JWT_EXPIRES_IN"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    app.extensions["login_throttle"] = LoginThrottle(
        max_failures=app.config["LOGIN_MAX_FAILURES"],
        window=timedelta(minutes=app.config["LOGIN_FAILURE_WINDOW_MINUTES"]),
        lockout=timedelta(minutes=app.config["LOGIN_LOCKOUT_MINUTES"]),
    )

    @app.before_request
    def reset_request_scope():
        # g outlives a request when an app context is already pushed (CLI, tests)
        g.pop("scope", None)

    # Waiter path restrictions run before routing, so they also cover unknown paths
    from .services.role_access_service import enforce_role_paths
    app.before_request(enforce_role_paths)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.locales import locales_bp
    from .routes.insumo_categorias import insumo_categorias_bp
    from .routes.insumos import insumos_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(locales_bp)
    app.register_blueprint(insumo_categorias_bp)
    app.register_blueprint(insumos_bp)

    @app.errorhandler(ApiError)
    def handle_api_error(e: ApiError):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e: Exception):
        if isinstance(e, HTTPException):
            return e
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": "Internal server error", "reason": "internal_error"}), 500

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:4173",
            "http://127.0.0.1:4173",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = (
                "Authorization, Content-Type, x-local-id, x-user-role, x-user-id"
            )
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
