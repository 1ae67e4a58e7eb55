"""
Goal Planner
Flask Application Factory.

Usage:
    from planner import create_app
    app = create_app()           # defaults to APP_ENV or "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event

from planner.config import config
from planner.middleware.company_context import init_company_context
from planner.middleware.jwt_auth import init_jwt_middleware
from planner.middleware.logging_config import configure_logging
from planner.middleware.rate_limiter import init_rate_limits
from planner.middleware.timing import init_request_timing
from planner.models import db

logger = logging.getLogger(__name__)


# ── SQLite FK enforcement (global engine event) ─────────────────────────
@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement so ON DELETE CASCADE works on SQLite."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # per-blueprint limits only
    storage_uri=os.getenv("REDIS_URL", "memory://"),
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    # Instantiated so ProductionConfig can refuse to start without its secrets
    app.config.from_object(config[config_name]())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request middleware (order matters) ───────────────────────────────
    init_request_timing(app)
    init_jwt_middleware(app)
    init_company_context(app)

    # ── Import all models so Alembic can detect them ─────────────────────
    from planner.models import activity_log as _activity_log_models  # noqa: F401
    from planner.models import auth as _auth_models                  # noqa: F401
    from planner.models import planning as _planning_models          # noqa: F401

    # ── Blueprints ───────────────────────────────────────────────────────
    from planner.blueprints.access_bp import access_bp
    from planner.blueprints.admin_bp import admin_bp
    from planner.blueprints.feedback_bp import feedback_bp
    from planner.blueprints.health_bp import health_bp
    from planner.blueprints.me_bp import me_bp
    from planner.blueprints.months_bp import months_bp
    from planner.blueprints.planning_bp import planning_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(me_bp)
    app.register_blueprint(months_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(planning_bp)
    app.register_blueprint(feedback_bp)
    app.register_blueprint(access_bp)

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error"}, 500

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
