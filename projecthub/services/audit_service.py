"""
Audit Service: recording and querying the audit trail.

Recording goes through ``record_audit`` (a thin wrapper over
``models.audit.write_audit``) so every mutating service writes its entry in
the same transaction as the change it describes.

Querying is restricted to SUPER_ADMIN and ADMIN.  An ADMIN only sees entries
with no project, or whose project they own or hold an active membership in.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from flask import current_app
from sqlalchemy import or_

from projecthub.core.exceptions import ValidationError
from projecthub.models.audit import AUDIT_ACTIONS, AUDIT_SORT_COLUMNS, AuditLog, write_audit
from projecthub.models.auth import ADMIN, SUPER_ADMIN
from projecthub.services.project_access import get_administered_project_ids
from projecthub.utils.errors import E, service_error

logger = logging.getLogger(__name__)

FILTER_KEYS = ("project_id", "user_id", "action", "entity_type", "from", "to")


def record_audit(*, action, actor_id, target_type, target_id, project_id=None, metadata=None):
    log = write_audit(
        action=action,
        actor_id=actor_id,
        target_type=target_type,
        target_id=target_id,
        project_id=project_id,
        metadata=metadata,
    )
    logger.debug(
        "Audit %s recorded",
        action,
        extra={"actor_id": actor_id, "project_id": project_id,
               "entity_type": target_type, "entity_id": str(target_id)},
    )
    return log


# ── Query parsing ────────────────────────────────────────────────────────────


def _parse_datetime(value: str, field: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        raise ValidationError("Invalid date filter", details={field: "must be an ISO-8601 date"})
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    # Stored timestamps are UTC; SQLite compares them as naive wall-clock text.
    return parsed.astimezone(timezone.utc)


def _parse_int(value, field: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError("Invalid filter", details={field: "must be an integer"})


def parse_audit_filters(args) -> dict:
    """Turn raw query-string values into typed filters; raises ValidationError."""
    filters = {}
    for key in ("project_id", "user_id"):
        if args.get(key) not in (None, ""):
            filters[key] = _parse_int(args.get(key), key)
    action = args.get("action")
    if action:
        if action not in AUDIT_ACTIONS:
            raise ValidationError("Invalid filter", details={"action": f"unknown action {action!r}"})
        filters["action"] = action
    if args.get("entity_type"):
        filters["entity_type"] = args.get("entity_type")
    for key in ("from", "to"):
        if args.get(key):
            filters[key] = _parse_datetime(args.get(key), key)
    if "from" in filters and "to" in filters and filters["from"] > filters["to"]:
        raise ValidationError("Invalid date range", details={"from": "must not be after 'to'"})
    return filters


# ── Query ────────────────────────────────────────────────────────────────────


def _visible_query(principal):
    q = AuditLog.query
    if principal.role == ADMIN:
        project_ids = get_administered_project_ids(principal.id)
        q = q.filter(or_(AuditLog.project_id.is_(None), AuditLog.project_id.in_(project_ids)))
    return q


def _forbidden():
    return service_error(E.FORBIDDEN, "Only administrators can view the audit log")


def query_audit_logs(
    principal,
    filters: dict | None = None,
    page: int = 1,
    page_size: int | None = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
):
    """
    Paginated, filtered audit entries visible to *principal*.

    Returns:
        (payload, None) with ``items``, ``total``, ``page``, ``page_size``, ``pages``
        (None, error) for non-administrators
    """
    if principal.role not in (SUPER_ADMIN, ADMIN):
        return None, _forbidden()

    if sort_by not in AUDIT_SORT_COLUMNS:
        raise ValidationError("Invalid sort field", details={"sort_by": f"must be one of {sorted(AUDIT_SORT_COLUMNS)}"})
    if sort_order not in ("asc", "desc"):
        raise ValidationError("Invalid sort order", details={"sort_order": "must be 'asc' or 'desc'"})

    filters = filters or {}
    q = _visible_query(principal)
    if "project_id" in filters:
        q = q.filter(AuditLog.project_id == filters["project_id"])
    if "user_id" in filters:
        q = q.filter(AuditLog.actor_id == filters["user_id"])
    if "action" in filters:
        q = q.filter(AuditLog.action == filters["action"])
    if "entity_type" in filters:
        q = q.filter(AuditLog.target_type == filters["entity_type"])
    if "from" in filters:
        q = q.filter(AuditLog.created_at >= filters["from"])
    if "to" in filters:
        q = q.filter(AuditLog.created_at <= filters["to"])

    column = getattr(AuditLog, sort_by)
    if sort_order == "desc":
        q = q.order_by(column.desc(), AuditLog.id.desc())
    else:
        q = q.order_by(column.asc(), AuditLog.id.asc())

    max_size = current_app.config.get("AUDIT_MAX_PAGE_SIZE", 100)
    default_size = current_app.config.get("AUDIT_DEFAULT_PAGE_SIZE", 20)
    page = max(1, page or 1)
    page_size = min(max_size, max(1, page_size or default_size))

    paginated = q.paginate(page=page, per_page=page_size, error_out=False)
    return {
        "items": [log.to_dict() for log in paginated.items],
        "total": paginated.total,
        "page": paginated.page,
        "page_size": paginated.per_page,
        "pages": paginated.pages,
    }, None


def get_audit_log(principal, log_id: int):
    if principal.role not in (SUPER_ADMIN, ADMIN):
        return None, _forbidden()
    log = _visible_query(principal).filter(AuditLog.id == log_id).first()
    if log is None:
        return None, service_error(E.NOT_FOUND, "Audit log not found")
    return log.to_dict(), None

