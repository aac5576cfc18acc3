"""
ProjectHub
Workflow entities: cost entries and proposals.

Both carry an explicit ``status`` governed by a transition table.  Each table
maps an action to the set of statuses it may start from, the status it leads
to, and the timestamp/actor columns stamped together with the change.
"""

from datetime import datetime, timezone

from projecthub.models import db

# ── Cost entries ─────────────────────────────────────────────────────────────

COST_STATUSES = {"PENDING", "APPROVED", "REJECTED", "PAID"}
COST_CATEGORIES = {"LABOR", "MATERIAL", "SOFTWARE", "TRAVEL", "SERVICE", "OTHER"}

COST_TRANSITIONS = {
    "approve": {
        "from": frozenset({"PENDING"}),
        "to": "APPROVED",
        "stamp_actor": "approved_by_id",
        "stamp_time": "approved_at",
    },
    "reject": {
        "from": frozenset({"PENDING"}),
        "to": "REJECTED",
    },
    "pay": {
        "from": frozenset({"APPROVED"}),
        "to": "PAID",
        "stamp_time": "paid_at",
    },
}

# ── Proposals ────────────────────────────────────────────────────────────────

PROPOSAL_STATUSES = {"DRAFT", "SENT", "NEGOTIATING", "APPROVED", "REJECTED"}

PROPOSAL_TRANSITIONS = {
    "send": {
        "from": frozenset({"DRAFT"}),
        "to": "SENT",
    },
    "negotiate": {
        "from": frozenset({"SENT"}),
        "to": "NEGOTIATING",
    },
    "approve": {
        "from": frozenset({"SENT", "NEGOTIATING"}),
        "to": "APPROVED",
        "stamp_actor": "approved_by_id",
        "stamp_time": "approved_at",
    },
    "reject": {
        "from": frozenset({"SENT", "NEGOTIATING"}),
        "to": "REJECTED",
    },
}


def _iso(value):
    return value.isoformat() if value else None


class CostEntry(db.Model):
    __tablename__ = "cost_entries"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    description = db.Column(db.String(300), nullable=False)
    amount = db.Column(db.Numeric(14, 2), nullable=False)
    category = db.Column(db.String(20), nullable=False, default="OTHER")
    status = db.Column(db.String(20), nullable=False, default="PENDING")
    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "description": self.description,
            "amount": str(self.amount) if self.amount is not None else None,
            "category": self.category,
            "status": self.status,
            "created_by_id": self.created_by_id,
            "approved_by_id": self.approved_by_id,
            "approved_at": _iso(self.approved_at),
            "paid_at": _iso(self.paid_at),
            "created_at": _iso(self.created_at),
        }

    def __repr__(self):
        return f"<CostEntry {self.id}: {self.status}>"


class Proposal(db.Model):
    __tablename__ = "proposals"
    __table_args__ = (
        db.UniqueConstraint("project_id", "code", name="uq_proposal_project_code"),
    )

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    code = db.Column(db.String(30), nullable=False)
    title = db.Column(db.String(300), nullable=False)
    total_value = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    status = db.Column(db.String(20), nullable=False, default="DRAFT")
    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "code": self.code,
            "title": self.title,
            "total_value": str(self.total_value) if self.total_value is not None else None,
            "status": self.status,
            "created_by_id": self.created_by_id,
            "approved_by_id": self.approved_by_id,
            "approved_at": _iso(self.approved_at),
            "created_at": _iso(self.created_at),
        }

    def __repr__(self):
        return f"<Proposal {self.id}: {self.code} {self.status}>"
