"""
ProjectHub
Gantt blueprint.

Endpoints:
    GET   /api/v1/projects/<pid>/gantt
    POST  /api/v1/projects/<pid>/gantt
    PATCH /api/v1/projects/<pid>/gantt/bulk-update   body: {"items": [...]}
"""

from flask import Blueprint, jsonify

from projecthub.auth import current_principal
from projecthub.blueprints import json_body, register_domain_error_handlers
from projecthub.middleware.project_access import require_project_access
from projecthub.services import gantt_service
from projecthub.utils.errors import outcome_response

gantt_bp = Blueprint("gantt", __name__, url_prefix="/api/v1/projects/<int:project_id>/gantt")
register_domain_error_handlers(gantt_bp)


@gantt_bp.route("", methods=["GET"])
@require_project_access()
def list_items(project_id):
    return jsonify({"items": gantt_service.list_items(project_id)})


@gantt_bp.route("", methods=["POST"])
@require_project_access(permission="task:manage")
def create_item(project_id):
    payload, err = gantt_service.create_item(project_id, current_principal(), json_body())
    if err:
        return outcome_response(err)
    return jsonify(payload), 201


@gantt_bp.route("/bulk-update", methods=["PATCH"])
@require_project_access(permission="task:manage")
def bulk_update(project_id):
    items, err = gantt_service.bulk_update(project_id, current_principal(), json_body().get("items"))
    if err:
        return outcome_response(err)
    return jsonify({"items": items, "updated": len(items)})
