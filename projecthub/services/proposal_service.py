"""
Proposal Service: commercial proposals and their negotiation workflow.

DRAFT → SENT → NEGOTIATING;  SENT/NEGOTIATING → APPROVED | REJECTED.
Approval stamps the approver and notifies every active project member.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from projecthub.core.exceptions import ValidationError
from projecthub.models import db
from projecthub.models.workflow import PROPOSAL_STATUSES, PROPOSAL_TRANSITIONS, Proposal
from projecthub.services.audit_service import record_audit
from projecthub.services.cost_service import parse_amount
from projecthub.services.notification_service import NotificationService
from projecthub.services.transition_guard import apply_transition
from projecthub.utils.errors import E, service_error

logger = logging.getLogger(__name__)

CODE_MAX = 30


def _parse_proposal(data) -> dict:
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    errors = {}
    code = data.get("code")
    if not isinstance(code, str) or not code.strip():
        errors["code"] = "required"
    elif len(code.strip()) > CODE_MAX:
        errors["code"] = f"must be at most {CODE_MAX} characters"
    title = data.get("title")
    if not isinstance(title, str) or not title.strip():
        errors["title"] = "required"
    if errors:
        raise ValidationError("Invalid proposal", details=errors)
    parsed = {"code": code.strip(), "title": title.strip()}
    if data.get("total_value") is not None:
        parsed["total_value"] = parse_amount(data["total_value"], "total_value")
    return parsed


def list_proposals(project_id: int, status: str | None = None) -> list[dict]:
    q = Proposal.query.filter_by(project_id=project_id, is_active=True)
    if status:
        if status not in PROPOSAL_STATUSES:
            raise ValidationError("Invalid filter", details={"status": f"must be one of {sorted(PROPOSAL_STATUSES)}"})
        q = q.filter_by(status=status)
    return [p.to_dict() for p in q.order_by(Proposal.created_at.desc(), Proposal.id.desc()).all()]


def get_proposal(project_id: int, proposal_id: int):
    proposal = Proposal.query.filter_by(id=proposal_id, project_id=project_id, is_active=True).first()
    if proposal is None:
        return None, service_error(E.NOT_FOUND, "Proposal not found")
    return proposal.to_dict(), None


def create_proposal(project_id: int, principal, data):
    parsed = _parse_proposal(data)
    if Proposal.query.filter_by(project_id=project_id, code=parsed["code"]).first():
        return None, service_error(E.CONFLICT_DUPLICATE, f"Proposal code {parsed['code']} already exists")

    proposal = Proposal(project_id=project_id, created_by_id=principal.id, status="DRAFT", **parsed)
    try:
        db.session.add(proposal)
        db.session.flush()
        record_audit(
            action="PROPOSAL_CREATE", actor_id=principal.id, target_type="PROPOSAL",
            target_id=proposal.id, project_id=project_id,
            metadata={"code": proposal.code, "totalValue": str(proposal.total_value or 0)},
        )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    logger.info("Proposal %s created", proposal.code,
                extra={"project_id": project_id, "actor_id": principal.id,
                       "entity_type": "PROPOSAL", "entity_id": proposal.id})
    return proposal.to_dict(), None


def _notify_members(proposal):
    NotificationService.notify_project_members(
        proposal.project_id,
        type="PROPOSAL_STATUS",
        title=f"Proposal {proposal.code} approved",
        message=f"{proposal.title} was approved.",
        link=f"/projects/{proposal.project_id}/proposals",
        metadata={"proposalId": proposal.id, "status": proposal.status},
        commit=False,
    )


def transition_proposal(project_id: int, proposal_id: int, action: str, principal):
    return apply_transition(
        Proposal,
        entity_id=proposal_id,
        project_id=project_id,
        action=action,
        actor_id=principal.id,
        transitions=PROPOSAL_TRANSITIONS,
        audit_action="PROPOSAL_STATUS_CHANGE",
        target_type="PROPOSAL",
        label="Proposal",
        on_applied=_notify_members if action == "approve" else None,
    )
