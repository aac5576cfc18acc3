"""
ProjectHub
Audit domain model.

Models:
    - AuditLog: immutable, append-only audit trail for every mutating action.
"""

from datetime import datetime, timezone

from sqlalchemy import event

from projecthub.models import db

# ── Constants ────────────────────────────────────────────────────────────────

AUDIT_TARGET_TYPES = {
    "PROJECT", "MEMBER", "NOTE", "COST_ENTRY",
    "PROPOSAL", "GANTT_ITEM", "SETTINGS",
}

# Required metadata keys per action. Extra keys are allowed.
AUDIT_METADATA_SCHEMAS = {
    # Projects & membership
    "PROJECT_CREATE": frozenset({"name"}),
    "PROJECT_UPDATE": frozenset({"updatedFields"}),
    "PROJECT_ARCHIVE": frozenset({"name"}),
    "MEMBER_ADD": frozenset({"userId", "memberRole"}),
    "MEMBER_REACTIVATE": frozenset({"userId"}),
    "MEMBER_UPDATE": frozenset({"userId", "updatedFields"}),
    "MEMBER_REMOVE": frozenset({"userId"}),
    # Notes
    "NOTE_CREATE": frozenset({"title"}),
    "NOTE_UPDATE": frozenset({"updatedFields", "newVersion"}),
    "NOTE_RESTORE": frozenset({"restoredFromVersion", "newVersion"}),
    "NOTE_DELETE": frozenset({"title"}),
    # Workflow entities
    "COST_CREATE": frozenset({"amount"}),
    "COST_STATUS_CHANGE": frozenset({"oldStatus", "newStatus"}),
    "PROPOSAL_CREATE": frozenset({"code"}),
    "PROPOSAL_STATUS_CHANGE": frozenset({"oldStatus", "newStatus"}),
    # Gantt
    "GANTT_ITEM_CREATE": frozenset({"title"}),
    "GANTT_BULK_UPDATE": frozenset({"itemsUpdated", "itemIds"}),
    # Platform settings
    "SETTINGS_UPDATE": frozenset({"updatedKeys"}),
}

AUDIT_ACTIONS = frozenset(AUDIT_METADATA_SCHEMAS)

AUDIT_SORT_COLUMNS = {"created_at"}


class AuditLog(db.Model):
    """
    Immutable audit trail for every mutating action.

    One row per action.  ``meta`` (column ``metadata``) carries the
    action-specific payload validated against ``AUDIT_METADATA_SCHEMAS``.
    """

    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("idx_audit_target", "target_type", "target_id"),
        db.Index("idx_audit_project", "project_id"),
        db.Index("idx_audit_actor", "actor_id"),
        db.Index("idx_audit_action", "action"),
        db.Index("idx_audit_created", "created_at"),
        db.Index("idx_audit_project_created", "project_id", "created_at"),
    )

    id = db.Column(db.Integer, primary_key=True)
    actor_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="FK to users table (nullable for system entries)",
    )
    action = db.Column(
        db.String(60), nullable=False,
        comment="NOTE_RESTORE | COST_STATUS_CHANGE | …",
    )

    # Polymorphic target reference
    target_type = db.Column(db.String(30), nullable=False)
    target_id = db.Column(
        db.String(36), nullable=False,
        comment="PK of the referenced entity (int-as-string)",
    )
    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="SET NULL"),
        nullable=True,
    )

    meta = db.Column("metadata", db.JSON, nullable=False, default=dict)

    # Timestamp (immutable)
    created_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "actor_id": self.actor_id,
            "action": self.action,
            "target_type": self.target_type,
            "target_id": self.target_id,
            "project_id": self.project_id,
            "metadata": self.meta or {},
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<AuditLog {self.id}: {self.action} on {self.target_type}/{self.target_id}>"


@event.listens_for(AuditLog, "before_update")
def _reject_audit_update(mapper, connection, target):
    raise RuntimeError("audit_logs is append-only; updates are not allowed")


@event.listens_for(AuditLog, "before_delete")
def _reject_audit_delete(mapper, connection, target):
    raise RuntimeError("audit_logs is append-only; deletes are not allowed")


# ── Convenience writer ───────────────────────────────────────────────────────

def validate_audit_metadata(action: str, metadata: dict | None) -> dict:
    """Check *action* is known and *metadata* carries its required keys."""
    if action not in AUDIT_ACTIONS:
        raise ValueError(f"Unknown audit action {action!r}")
    metadata = dict(metadata or {})
    missing = AUDIT_METADATA_SCHEMAS[action] - metadata.keys()
    if missing:
        raise ValueError(
            f"Audit metadata for {action} is missing: {', '.join(sorted(missing))}"
        )
    return metadata


def write_audit(
    *,
    action: str,
    actor_id: int | None,
    target_type: str,
    target_id,
    project_id: int | None = None,
    metadata: dict | None = None,
) -> AuditLog:
    """
    Append a single audit row.  Uses ``flush`` so callers keep
    transaction control: the row commits (or rolls back) together with
    the mutation it describes.  Errors propagate to the caller.

    Returns the (flushed) AuditLog instance.
    """
    if target_type not in AUDIT_TARGET_TYPES:
        raise ValueError(f"Unknown audit target type {target_type!r}")
    metadata = validate_audit_metadata(action, metadata)

    log = AuditLog(
        actor_id=actor_id,
        action=action,
        target_type=target_type,
        target_id=str(target_id),
        project_id=project_id,
        meta=metadata,
    )
    db.session.add(log)
    db.session.flush()
    return log
