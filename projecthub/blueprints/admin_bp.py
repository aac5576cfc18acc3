"""
ProjectHub
Platform admin blueprint: system settings.

Endpoints (SUPER_ADMIN only, reachable during maintenance):
    GET  /api/v1/admin/settings
    PUT  /api/v1/admin/settings   body: {"maintenance_mode": bool, "maintenance_message": str}
"""

from flask import Blueprint, jsonify

from projecthub.auth import current_principal
from projecthub.blueprints import json_body, register_domain_error_handlers
from projecthub.middleware.permission_required import require_role
from projecthub.models.auth import SUPER_ADMIN
from projecthub.services import settings_service
from projecthub.services.maintenance import is_maintenance_active
from projecthub.utils.errors import outcome_response

admin_bp = Blueprint("admin", __name__, url_prefix="/api/v1/admin")
register_domain_error_handlers(admin_bp)


@admin_bp.route("/settings", methods=["GET"])
@require_role(SUPER_ADMIN)
def get_settings():
    return jsonify({
        "settings": settings_service.get_settings(),
        "maintenance_active": is_maintenance_active(),
    })


@admin_bp.route("/settings", methods=["PUT", "PATCH"])
@require_role(SUPER_ADMIN)
def update_settings():
    settings, err = settings_service.update_settings(current_principal(), json_body())
    if err:
        return outcome_response(err)
    return jsonify({"settings": settings, "maintenance_active": is_maintenance_active()})
