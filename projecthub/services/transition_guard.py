"""
Status Transition Guard: table-driven status changes for workflow entities.

``apply_transition`` loads the entity, checks the requested action against
its transition table and either:
  - returns a 409 conflict outcome carrying ``current_status`` and
    ``attempted_status`` without writing anything, or
  - sets the new status and stamps, appends exactly one audit entry and runs
    the optional ``on_applied`` hook (notifications), all in one commit.

The status change is a compare-and-set on the old status, so of two
concurrent requests for the same transition only one succeeds; the other
gets the conflict outcome.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from projecthub.core.exceptions import ValidationError
from projecthub.models import db
from projecthub.services.audit_service import record_audit
from projecthub.utils.errors import E, service_error

logger = logging.getLogger(__name__)


def _conflict(label: str, action: str, current: str, attempted: str):
    return service_error(
        E.CONFLICT_STATE,
        f"Cannot {action} a {label.lower()} in status {current}",
        current_status=current,
        attempted_status=attempted,
    )


def is_transition_allowed(transitions: dict, status: str, action: str) -> bool:
    """True if *action* exists in *transitions* and may start from *status*."""
    rule = transitions.get(action)
    return rule is not None and status in rule["from"]


def apply_transition(
    model,
    *,
    entity_id: int,
    project_id: int,
    action: str,
    actor_id: int,
    transitions: dict,
    audit_action: str,
    target_type: str,
    label: str,
    on_applied=None,
):
    """
    Move one entity along its transition table.

    Args:
        model: Mapped class with ``status``, ``project_id`` and ``is_active``.
        transitions: ``{action: {"from": set, "to": str, "stamp_actor"?: col, "stamp_time"?: col}}``.
        audit_action: Audit action written on success (``*_STATUS_CHANGE``).
        on_applied: Optional ``callable(entity)`` run inside the transaction.

    Returns:
        (entity_dict, None) on success
        (None, error) when the entity is missing or the transition is not allowed
    """
    rule = transitions.get(action)
    if rule is None:
        raise ValidationError(
            "Unknown transition",
            details={"action": f"must be one of {sorted(transitions)}"},
        )

    entity = model.query.filter_by(id=entity_id, project_id=project_id, is_active=True).first()
    if entity is None:
        return None, service_error(E.NOT_FOUND, f"{label} not found")

    old_status = entity.status
    new_status = rule["to"]
    if not is_transition_allowed(transitions, old_status, action):
        logger.info(
            "%s %d: %s rejected from %s", label, entity.id, action, old_status,
            extra={"project_id": project_id, "actor_id": actor_id, "action": action},
        )
        return None, _conflict(label, action, old_status, new_status)

    now = datetime.now(timezone.utc)
    values = {"status": new_status}
    if "stamp_actor" in rule:
        values[rule["stamp_actor"]] = actor_id
    if "stamp_time" in rule:
        values[rule["stamp_time"]] = now

    try:
        updated = (
            db.session.query(model)
            .filter(model.id == entity.id, model.status == old_status)
            .update(values, synchronize_session="fetch")
        )
        if updated != 1:
            db.session.rollback()
            current = db.session.get(model, entity_id)
            current_status = current.status if current is not None else old_status
            return None, _conflict(label, action, current_status, new_status)

        record_audit(
            action=audit_action,
            actor_id=actor_id,
            target_type=target_type,
            target_id=entity.id,
            project_id=project_id,
            metadata={"oldStatus": old_status, "newStatus": new_status, "transition": action},
        )
        if on_applied is not None:
            on_applied(entity)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    logger.info(
        "%s %d: %s -> %s", label, entity.id, old_status, new_status,
        extra={"project_id": project_id, "actor_id": actor_id, "action": action},
    )
    return entity.to_dict(), None
