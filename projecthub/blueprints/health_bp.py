"""
Health check and maintenance page blueprints.

Endpoints:
    GET /api/v1/health        minimal liveness answer
    GET /api/v1/health/ready  simple 200 for load balancers
    GET /api/v1/health/live   dependency status (database, maintenance gate)
    GET /maintenance          notice shown while maintenance mode is on
"""

import logging
import time

from flask import Blueprint, current_app, jsonify, render_template_string
from sqlalchemy.exc import SQLAlchemyError

from projecthub.models import db
from projecthub.services.maintenance import get_gate

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/v1/health")
maintenance_bp = Blueprint("maintenance", __name__)

DEFAULT_MAINTENANCE_MESSAGE = "ProjectHub is undergoing scheduled maintenance. Please try again shortly."

_MAINTENANCE_PAGE = """<!doctype html>
<html lang="en">
<head><meta charset="utf-8"><title>Maintenance | ProjectHub</title></head>
<body>
  <main>
    <h1>We'll be back soon</h1>
    <p>{{ message }}</p>
  </main>
</body>
</html>
"""


@health_bp.route("", methods=["GET"])
def health():
    return jsonify({"status": "ok", "app": "ProjectHub"})


@health_bp.route("/ready", methods=["GET"])
def ready():
    """Readiness probe, always 200 while the process is serving."""
    return jsonify({"status": "ok"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    """Liveness check with dependency status."""
    checks = {}
    overall = True

    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        checks["database"] = {"status": "ok", "latency_ms": round((time.perf_counter() - t0) * 1000, 1)}
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Health check: database unavailable")
        checks["database"] = {"status": "error"}
        overall = False

    gate = get_gate()
    checks["maintenance"] = {"active": gate.is_active(), "cached": gate.cached_at is not None}
    checks["app"] = {"name": "ProjectHub", "debug": current_app.debug, "testing": current_app.testing}

    return jsonify({
        "status": "healthy" if overall else "degraded",
        "checks": checks,
    }), 200 if overall else 503


@maintenance_bp.route("/maintenance", methods=["GET"])
def maintenance_page():
    from projecthub.services.settings_service import get_setting

    try:
        message = get_setting("maintenance_message") or DEFAULT_MAINTENANCE_MESSAGE
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Could not read maintenance message")
        message = DEFAULT_MAINTENANCE_MESSAGE
    status = 503 if get_gate().is_active() else 200
    return render_template_string(_MAINTENANCE_PAGE, message=message), status
