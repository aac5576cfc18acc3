"""
Maintenance Middleware: blocks requests while maintenance mode is on.

Runs after the JWT middleware so ``g.principal`` is known.  While the gate
reports maintenance:
  - SUPER_ADMIN principals pass through
  - the maintenance page, health probes and the settings endpoint stay reachable
  - /api/ requests get a 503 JSON body
  - everything else is redirected to /maintenance
"""

import logging

from flask import redirect, request

from projecthub.auth import current_principal
from projecthub.models.auth import SUPER_ADMIN
from projecthub.services.maintenance import (
    DEFAULT_TTL_SECONDS,
    MaintenanceGate,
    load_maintenance_flag,
)
from projecthub.utils.errors import E, api_error

logger = logging.getLogger(__name__)

EXEMPT_PREFIXES = (
    "/maintenance",
    "/api/v1/health",
    "/api/v1/admin/settings",
)


def is_exempt_path(path: str) -> bool:
    return any(path == p or path.startswith(p + "/") for p in EXEMPT_PREFIXES)


def init_maintenance_gate(app):
    """Create the process-wide gate and register the before_request hook."""
    if "maintenance_gate" not in app.extensions:
        app.extensions["maintenance_gate"] = MaintenanceGate(
            load_maintenance_flag,
            ttl_seconds=app.config.get("MAINTENANCE_CACHE_TTL", DEFAULT_TTL_SECONDS),
        )

    @app.before_request
    def _maintenance_guard():
        if is_exempt_path(request.path):
            return None

        if not app.extensions["maintenance_gate"].is_active():
            return None

        principal = current_principal()
        if principal is not None and principal.role == SUPER_ADMIN:
            return None

        logger.info("Request blocked by maintenance mode: %s %s", request.method, request.path)
        if request.path.startswith("/api/"):
            return api_error(E.MAINTENANCE, "Service is under maintenance")
        return redirect("/maintenance")
