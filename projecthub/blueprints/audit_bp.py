"""
ProjectHub
Audit blueprint.

Endpoints:
    GET  /api/v1/audit               list / filter audit logs
    GET  /api/v1/audit/<int:log_id>  single audit entry

Query params for the list:
    project_id, user_id, action, entity_type, from, to   filters
    sort_by (created_at), sort_order (asc|desc, default desc)
    page (default 1), page_size (default 20, capped at AUDIT_MAX_PAGE_SIZE)
"""

from flask import Blueprint, jsonify, request

from projecthub.auth import current_principal, require_auth
from projecthub.blueprints import register_domain_error_handlers
from projecthub.core.exceptions import ValidationError
from projecthub.services import audit_service
from projecthub.utils.errors import outcome_response

audit_bp = Blueprint("audit", __name__, url_prefix="/api/v1")
register_domain_error_handlers(audit_bp)


def _int_arg(name, default=None):
    raw = request.args.get(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError("Invalid query parameter", details={name: "must be an integer"})


@audit_bp.route("/audit", methods=["GET"])
@require_auth
def list_audit_logs():
    filters = audit_service.parse_audit_filters(request.args)
    payload, err = audit_service.query_audit_logs(
        current_principal(),
        filters,
        page=_int_arg("page", 1),
        page_size=_int_arg("page_size"),
        sort_by=request.args.get("sort_by", "created_at"),
        sort_order=request.args.get("sort_order", "desc"),
    )
    if err:
        return outcome_response(err)
    return jsonify(payload)


@audit_bp.route("/audit/<int:log_id>", methods=["GET"])
@require_auth
def get_audit_log(log_id):
    payload, err = audit_service.get_audit_log(current_principal(), log_id)
    if err:
        return outcome_response(err)
    return jsonify(payload)
