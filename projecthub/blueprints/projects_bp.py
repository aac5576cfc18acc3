"""
ProjectHub
Projects & membership blueprint.

Endpoints:
    GET    /api/v1/projects                                   projects visible to the caller
    POST   /api/v1/projects                                   create (SUPER_ADMIN / ADMIN)
    GET    /api/v1/projects/<project_id>                      detail (+ caller's access)
    PATCH  /api/v1/projects/<project_id>                      update (manage)
    DELETE /api/v1/projects/<project_id>                      archive (manage + admin role)
    GET    /api/v1/projects/<project_id>/members              active members
    POST   /api/v1/projects/<project_id>/members              add / reactivate (manage)
    PATCH  /api/v1/projects/<project_id>/members/<member_id>  role / custom permissions (manage)
    DELETE /api/v1/projects/<project_id>/members/<member_id>  deactivate (manage)
"""

from flask import Blueprint, g, jsonify, request

from projecthub.auth import current_principal, require_auth
from projecthub.blueprints import json_body, register_domain_error_handlers
from projecthub.middleware.project_access import require_project_access
from projecthub.services import member_service, project_service
from projecthub.utils.errors import outcome_response

projects_bp = Blueprint("projects", __name__, url_prefix="/api/v1")
register_domain_error_handlers(projects_bp)


# ── Projects ─────────────────────────────────────────────────────────────────

@projects_bp.route("/projects", methods=["GET"])
@require_auth
def list_projects():
    return jsonify({"projects": project_service.list_projects(current_principal())})


@projects_bp.route("/projects", methods=["POST"])
@require_auth
def create_project():
    payload, err = project_service.create_project(current_principal(), json_body())
    if err:
        return outcome_response(err)
    return jsonify(payload), 201


@projects_bp.route("/projects/<int:project_id>", methods=["GET"])
@require_project_access()
def get_project(project_id):
    payload, err = project_service.get_project(project_id)
    if err:
        return outcome_response(err)
    payload["access"] = g.project_access._asdict()
    return jsonify(payload)


@projects_bp.route("/projects/<int:project_id>", methods=["PATCH"])
@require_project_access(manage=True)
def update_project(project_id):
    payload, err = project_service.update_project(project_id, current_principal(), json_body())
    if err:
        return outcome_response(err)
    return jsonify(payload)


@projects_bp.route("/projects/<int:project_id>", methods=["DELETE"])
@require_project_access(manage=True)
def archive_project(project_id):
    payload, err = project_service.archive_project(project_id, current_principal())
    if err:
        return outcome_response(err)
    return jsonify(payload)


# ── Members ──────────────────────────────────────────────────────────────────

@projects_bp.route("/projects/<int:project_id>/members", methods=["GET"])
@require_project_access()
def list_members(project_id):
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    if include_inactive and not g.project_access.can_manage:
        include_inactive = False
    return jsonify({"members": member_service.list_members(project_id, include_inactive)})


@projects_bp.route("/projects/<int:project_id>/members", methods=["POST"])
@require_project_access(manage=True)
def add_member(project_id):
    payload, err = member_service.add_member(project_id, current_principal(), json_body())
    if err:
        return outcome_response(err)
    return jsonify(payload), 200 if payload["reactivated"] else 201


@projects_bp.route("/projects/<int:project_id>/members/<int:member_id>", methods=["PATCH"])
@require_project_access(manage=True)
def update_member(project_id, member_id):
    payload, err = member_service.update_member(project_id, member_id, current_principal(), json_body())
    if err:
        return outcome_response(err)
    return jsonify(payload)


@projects_bp.route("/projects/<int:project_id>/members/<int:member_id>", methods=["DELETE"])
@require_project_access(manage=True)
def remove_member(project_id, member_id):
    payload, err = member_service.remove_member(project_id, member_id, current_principal())
    if err:
        return outcome_response(err)
    return jsonify(payload)
