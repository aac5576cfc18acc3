"""
Cost Service: project cost entries and their approval workflow.

PENDING → APPROVED (approve, stamps approver) → PAID (pay)
PENDING → REJECTED (reject)
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

from sqlalchemy.exc import SQLAlchemyError

from projecthub.core.exceptions import ValidationError
from projecthub.models import db
from projecthub.models.workflow import COST_CATEGORIES, COST_STATUSES, COST_TRANSITIONS, CostEntry
from projecthub.services.audit_service import record_audit
from projecthub.services.notification_service import NotificationService
from projecthub.services.transition_guard import apply_transition
from projecthub.utils.errors import E, service_error

logger = logging.getLogger(__name__)


def parse_amount(value, field: str = "amount") -> Decimal:
    """Positive decimal with at most two places; raises ValidationError."""
    if isinstance(value, bool):
        raise ValidationError("Invalid amount", details={field: "must be a number"})
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError("Invalid amount", details={field: "must be a number"})
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("Invalid amount", details={field: "must be greater than zero"})
    if amount.as_tuple().exponent < -2:
        raise ValidationError("Invalid amount", details={field: "at most two decimal places"})
    return amount


def _parse_cost(data) -> dict:
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    errors = {}
    description = data.get("description")
    if not isinstance(description, str) or not description.strip():
        errors["description"] = "required"
    category = data.get("category", "OTHER")
    if category not in COST_CATEGORIES:
        errors["category"] = f"must be one of {sorted(COST_CATEGORIES)}"
    if "amount" not in data:
        errors["amount"] = "required"
    if errors:
        raise ValidationError("Invalid cost entry", details=errors)
    return {
        "description": description.strip(),
        "amount": parse_amount(data["amount"]),
        "category": category,
    }


def list_costs(project_id: int, status: str | None = None) -> list[dict]:
    q = CostEntry.query.filter_by(project_id=project_id, is_active=True)
    if status:
        if status not in COST_STATUSES:
            raise ValidationError("Invalid filter", details={"status": f"must be one of {sorted(COST_STATUSES)}"})
        q = q.filter_by(status=status)
    return [c.to_dict() for c in q.order_by(CostEntry.created_at.desc(), CostEntry.id.desc()).all()]


def get_cost(project_id: int, cost_id: int):
    cost = CostEntry.query.filter_by(id=cost_id, project_id=project_id, is_active=True).first()
    if cost is None:
        return None, service_error(E.NOT_FOUND, "Cost entry not found")
    return cost.to_dict(), None


def create_cost(project_id: int, principal, data):
    parsed = _parse_cost(data)
    cost = CostEntry(project_id=project_id, created_by_id=principal.id, status="PENDING", **parsed)
    try:
        db.session.add(cost)
        db.session.flush()
        record_audit(
            action="COST_CREATE", actor_id=principal.id, target_type="COST_ENTRY",
            target_id=cost.id, project_id=project_id,
            metadata={"amount": str(cost.amount), "category": cost.category},
        )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    logger.info("Cost entry created", extra={"project_id": project_id, "actor_id": principal.id,
                                              "entity_type": "COST_ENTRY", "entity_id": cost.id})
    return cost.to_dict(), None


def _notify_creator(actor_id: int):
    def hook(cost):
        if cost.created_by_id and cost.created_by_id != actor_id:
            NotificationService.create(
                user_id=cost.created_by_id,
                type="COST_STATUS",
                title=f"Cost entry {cost.status.lower()}: {cost.description}",
                message=f"Amount {cost.amount} is now {cost.status}.",
                link=f"/projects/{cost.project_id}/costs",
                metadata={"costId": cost.id, "status": cost.status},
                commit=False,
            )
    return hook


def transition_cost(project_id: int, cost_id: int, action: str, principal):
    return apply_transition(
        CostEntry,
        entity_id=cost_id,
        project_id=project_id,
        action=action,
        actor_id=principal.id,
        transitions=COST_TRANSITIONS,
        audit_action="COST_STATUS_CHANGE",
        target_type="COST_ENTRY",
        label="Cost entry",
        on_applied=_notify_creator(principal.id),
    )
