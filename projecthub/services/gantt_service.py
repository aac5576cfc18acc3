"""
Gantt Service: project timeline items and all-or-nothing bulk updates.

``bulk_update`` validates every item before touching any row: each id must
name an active item of the project, every field must be well formed and the
resulting start/end dates must be ordered, and the parent links must not
form a cycle.  Any failure raises ValidationError and nothing changes;
otherwise all items and one GANTT_BULK_UPDATE audit entry commit together.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from projecthub.core.exceptions import ValidationError
from projecthub.models import db
from projecthub.models.gantt import GanttItem
from projecthub.services.audit_service import record_audit

logger = logging.getLogger(__name__)

BULK_FIELDS = ("start_date", "end_date", "order", "parent_id", "progress")


def parse_datetime(value, field: str) -> datetime:
    if not isinstance(value, str):
        raise ValueError(f"{field} must be an ISO-8601 datetime")
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ValueError(f"{field} must be an ISO-8601 datetime")
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _parse_item_fields(raw: dict) -> dict:
    parsed = {}
    for field in ("start_date", "end_date"):
        if raw.get(field) is not None:
            parsed[field] = parse_datetime(raw[field], field)
    if "order" in raw:
        if not _is_int(raw["order"]):
            raise ValueError("order must be an integer")
        parsed["order"] = raw["order"]
    if "progress" in raw:
        if not _is_int(raw["progress"]) or not 0 <= raw["progress"] <= 100:
            raise ValueError("progress must be an integer between 0 and 100")
        parsed["progress"] = raw["progress"]
    if "parent_id" in raw:
        if raw["parent_id"] is not None and not _is_int(raw["parent_id"]):
            raise ValueError("parent_id must be an integer or null")
        parsed["parent_id"] = raw["parent_id"]
    return parsed


def _parent_of(item_id: int, changes: dict, by_id: dict):
    fields = changes.get(item_id, {})
    if "parent_id" in fields:
        return fields["parent_id"]
    row = by_id.get(item_id) or db.session.get(GanttItem, item_id)
    return row.parent_id if row is not None else None


def _creates_cycle(item_id: int, changes: dict, by_id: dict) -> bool:
    """Walk the parent chain as it would stand after *changes* are applied."""
    seen = {item_id}
    current = _parent_of(item_id, changes, by_id)
    while current is not None:
        if current in seen:
            return current == item_id
        seen.add(current)
        current = _parent_of(current, changes, by_id)
    return False


# ── Queries ──────────────────────────────────────────────────────────────────


def list_items(project_id: int) -> list[dict]:
    rows = (
        GanttItem.query
        .filter_by(project_id=project_id, is_active=True)
        .order_by(GanttItem.order, GanttItem.id)
        .all()
    )
    return [r.to_dict() for r in rows]


# ── Mutations ────────────────────────────────────────────────────────────────


def create_item(project_id: int, principal, data):
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    errors = {}
    title = data.get("title")
    if not isinstance(title, str) or not title.strip():
        errors["title"] = "required"
    for field in ("start_date", "end_date"):
        if data.get(field) is None:
            errors[field] = "required"
    try:
        fields = _parse_item_fields(data)
    except ValueError as exc:
        raise ValidationError("Invalid gantt item", details={"item": str(exc)})
    if errors:
        raise ValidationError("Invalid gantt item", details=errors)
    if fields["start_date"] > fields["end_date"]:
        raise ValidationError("Invalid gantt item", details={"end_date": "must not be before start_date"})
    if fields.get("parent_id") is not None and not GanttItem.query.filter_by(
        id=fields["parent_id"], project_id=project_id, is_active=True
    ).first():
        raise ValidationError("Invalid gantt item", details={"parent_id": "not an item of this project"})

    item = GanttItem(project_id=project_id, title=title.strip(), **fields)
    try:
        db.session.add(item)
        db.session.flush()
        record_audit(
            action="GANTT_ITEM_CREATE", actor_id=principal.id, target_type="GANTT_ITEM",
            target_id=item.id, project_id=project_id, metadata={"title": item.title},
        )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    return item.to_dict(), None


def bulk_update(project_id: int, principal, items):
    """
    Apply timeline edits to several items atomically.

    Args:
        items: ``[{"id": int, "start_date"?, "end_date"?, "order"?, "parent_id"?, "progress"?}, ...]``

    Raises:
        ValidationError: malformed payload, foreign/inactive ids (listed in
            ``details["invalid_ids"]``), inverted date ranges or parent cycles.
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list", details={"items": "required"})

    changes: dict[int, dict] = {}
    errors = {}
    for index, raw in enumerate(items):
        if not isinstance(raw, dict) or not _is_int(raw.get("id")):
            errors[f"items[{index}]"] = "id must be an integer"
            continue
        if raw["id"] in changes:
            errors[f"items[{index}]"] = f"duplicate id {raw['id']}"
            continue
        try:
            changes[raw["id"]] = _parse_item_fields(raw)
        except ValueError as exc:
            errors[f"items[{index}]"] = str(exc)
    if errors:
        raise ValidationError("Invalid bulk update payload", details=errors)

    item_ids = list(changes)
    parent_ids = {c["parent_id"] for c in changes.values() if c.get("parent_id") is not None}
    rows = (
        GanttItem.query
        .filter(
            GanttItem.id.in_(set(item_ids) | parent_ids),
            GanttItem.project_id == project_id,
            GanttItem.is_active.is_(True),
        )
        .all()
    )
    by_id = {row.id: row for row in rows}

    invalid_ids = [i for i in item_ids if i not in by_id]
    if invalid_ids:
        logger.info("Gantt bulk update rejected: foreign ids %s", invalid_ids,
                    extra={"project_id": project_id, "actor_id": principal.id})
        raise ValidationError(
            "Some items do not belong to this project",
            details={"items": f"invalid ids: {', '.join(map(str, invalid_ids))}",
                     "invalid_ids": invalid_ids},
        )

    for item_id, fields in changes.items():
        parent_id = fields.get("parent_id")
        if parent_id is not None and (parent_id == item_id or parent_id not in by_id):
            errors[f"item {item_id}"] = "parent_id must be another item of this project"
            continue
        if "parent_id" in fields and _creates_cycle(item_id, changes, by_id):
            errors[f"item {item_id}"] = "parent_id would create a cycle"
            continue
        row = by_id[item_id]
        start = _as_utc(fields.get("start_date", row.start_date))
        end = _as_utc(fields.get("end_date", row.end_date))
        if start > end:
            errors[f"item {item_id}"] = "end_date must not be before start_date"
    if errors:
        raise ValidationError("Invalid bulk update payload", details=errors)

    try:
        for item_id, fields in changes.items():
            row = by_id[item_id]
            for field, value in fields.items():
                setattr(row, field, value)
        record_audit(
            action="GANTT_BULK_UPDATE", actor_id=principal.id, target_type="PROJECT",
            target_id=project_id, project_id=project_id,
            metadata={"itemsUpdated": len(item_ids), "itemIds": item_ids},
        )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    logger.info("Gantt bulk update: %d items", len(item_ids),
                extra={"project_id": project_id, "actor_id": principal.id})
    return [by_id[i].to_dict() for i in item_ids], None
