"""
ProjectHub
Workflow blueprints: cost entries and proposals.

Cost endpoints (costs_bp):
    GET  /api/v1/projects/<pid>/costs                      ?status=
    GET  /api/v1/projects/<pid>/costs/summary
    POST /api/v1/projects/<pid>/costs
    GET  /api/v1/projects/<pid>/costs/<cost_id>
    POST /api/v1/projects/<pid>/costs/<cost_id>/approve|reject|pay

Proposal endpoints (proposals_bp):
    GET  /api/v1/projects/<pid>/proposals                  ?status=
    POST /api/v1/projects/<pid>/proposals
    GET  /api/v1/projects/<pid>/proposals/<proposal_id>
    POST /api/v1/projects/<pid>/proposals/<proposal_id>/send|negotiate|approve|reject

A transition from a status that does not allow it answers 409 with
``details.current_status`` and ``details.attempted_status``.
"""

from flask import Blueprint, jsonify, request

from projecthub.auth import current_principal
from projecthub.blueprints import json_body, register_domain_error_handlers
from projecthub.core.exceptions import NotFoundError
from projecthub.middleware.project_access import require_project_access
from projecthub.models.workflow import COST_TRANSITIONS, PROPOSAL_TRANSITIONS
from projecthub.services import cost_service, proposal_service
from projecthub.utils.errors import outcome_response

costs_bp = Blueprint("costs", __name__, url_prefix="/api/v1/projects/<int:project_id>/costs")
proposals_bp = Blueprint("proposals", __name__, url_prefix="/api/v1/projects/<int:project_id>/proposals")
register_domain_error_handlers(costs_bp)
register_domain_error_handlers(proposals_bp)


def _respond(outcome, status=200):
    payload, err = outcome
    if err:
        return outcome_response(err)
    return jsonify(payload), status


# ═════════════════════════════════════════════════════════════════════════
# Costs
# ═════════════════════════════════════════════════════════════════════════

@costs_bp.route("", methods=["GET"])
@require_project_access()
def list_costs(project_id):
    return jsonify({"costs": cost_service.list_costs(project_id, request.args.get("status"))})


@costs_bp.route("/summary", methods=["GET"])
@require_project_access()
def cost_summary(project_id):
    return jsonify({"project_id": project_id, "totals": cost_service.cost_summary(project_id)})


@costs_bp.route("", methods=["POST"])
@require_project_access(permission="cost:manage")
def create_cost(project_id):
    return _respond(cost_service.create_cost(project_id, current_principal(), json_body()), 201)


@costs_bp.route("/<int:cost_id>", methods=["GET"])
@require_project_access()
def get_cost(project_id, cost_id):
    return _respond(cost_service.get_cost(project_id, cost_id))


@costs_bp.route("/<int:cost_id>/<action>", methods=["POST"])
@require_project_access(permission="cost:manage")
def transition_cost(project_id, cost_id, action):
    if action not in COST_TRANSITIONS:
        raise NotFoundError(resource="Transition", resource_id=action)
    return _respond(cost_service.transition_cost(project_id, cost_id, action, current_principal()))


# ═════════════════════════════════════════════════════════════════════════
# Proposals
# ═════════════════════════════════════════════════════════════════════════

@proposals_bp.route("", methods=["GET"])
@require_project_access()
def list_proposals(project_id):
    return jsonify({"proposals": proposal_service.list_proposals(project_id, request.args.get("status"))})


@proposals_bp.route("", methods=["POST"])
@require_project_access(permission="proposal:manage")
def create_proposal(project_id):
    return _respond(proposal_service.create_proposal(project_id, current_principal(), json_body()), 201)


@proposals_bp.route("/<int:proposal_id>", methods=["GET"])
@require_project_access()
def get_proposal(project_id, proposal_id):
    return _respond(proposal_service.get_proposal(project_id, proposal_id))


@proposals_bp.route("/<int:proposal_id>/<action>", methods=["POST"])
@require_project_access(permission="proposal:manage")
def transition_proposal(project_id, proposal_id, action):
    if action not in PROPOSAL_TRANSITIONS:
        raise NotFoundError(resource="Transition", resource_id=action)
    return _respond(proposal_service.transition_proposal(project_id, proposal_id, action, current_principal()))
