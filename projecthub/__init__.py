"""
ProjectHub
Flask Application Factory.

Usage:
    from projecthub import create_app
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
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from projecthub.config import config
from projecthub.middleware.jwt_auth import init_jwt_middleware
from projecthub.middleware.logging_config import configure_logging
from projecthub.middleware.maintenance import init_maintenance_gate
from projecthub.middleware.rate_limiter import init_rate_limits
from projecthub.middleware.timing import init_request_timing
from projecthub.models import db

logger = logging.getLogger(__name__)


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],
    storage_uri=os.getenv("REDIS_URL", "memory://"),
)


def _register_error_handlers(app):
    @app.errorhandler(404)
    def not_found(e):
        if request.path.startswith("/api/"):
            return {"error": "Not found", "code": "ERR_NOT_FOUND"}, 404
        return e

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(SQLAlchemyError)
    def database_error(e):
        db.session.rollback()
        logger.error("Database error on %s %s", request.method, request.path, exc_info=e)
        return {"error": "Internal server error", "code": "ERR_INTERNAL"}, 500

    @app.errorhandler(Exception)
    def server_error(e):
        if isinstance(e, HTTPException):
            return e
        logger.error("Unhandled error on %s %s", request.method, request.path, exc_info=e)
        return {"error": "Internal server error", "code": "ERR_INTERNAL"}, 500


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: One of "development", "testing", "production".
                     Defaults to the APP_ENV env var, or "development".
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    config_cls = config[config_name]
    if hasattr(config_cls, "validate"):
        config_cls.validate()

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_cls)

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

    # ── Request hooks (order matters: principal before maintenance) ──────
    init_request_timing(app)
    init_jwt_middleware(app)
    init_maintenance_gate(app)

    # ── Import all models so Alembic can detect them ─────────────────────
    from projecthub.models import audit as _audit_models            # noqa: F401
    from projecthub.models import auth as _auth_models              # noqa: F401
    from projecthub.models import gantt as _gantt_models            # noqa: F401
    from projecthub.models import note as _note_models              # noqa: F401
    from projecthub.models import notification as _notification_models  # noqa: F401
    from projecthub.models import project as _project_models        # noqa: F401
    from projecthub.models import settings as _settings_models      # noqa: F401
    from projecthub.models import workflow as _workflow_models      # noqa: F401

    if app.config.get("SQLALCHEMY_DATABASE_URI", "").startswith("sqlite"):
        with app.app_context():
            db.create_all()

    # ── Blueprints ───────────────────────────────────────────────────────
    from projecthub.blueprints.admin_bp import admin_bp
    from projecthub.blueprints.audit_bp import audit_bp
    from projecthub.blueprints.gantt_bp import gantt_bp
    from projecthub.blueprints.health_bp import health_bp, maintenance_bp
    from projecthub.blueprints.notes_bp import notes_bp
    from projecthub.blueprints.notifications_bp import notifications_bp
    from projecthub.blueprints.projects_bp import projects_bp
    from projecthub.blueprints.workflow_bp import costs_bp, proposals_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(maintenance_bp)
    app.register_blueprint(projects_bp)
    app.register_blueprint(notes_bp)
    app.register_blueprint(costs_bp)
    app.register_blueprint(proposals_bp)
    app.register_blueprint(gantt_bp)
    app.register_blueprint(audit_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(notifications_bp)

    _register_error_handlers(app)

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
