"""
ProjectHub
In-app notifications.

One row per recipient per event.  Rows are written in the same transaction
as the change they announce, so a rolled-back transition leaves no inbox
entry behind.
"""

from datetime import datetime, timezone

from projecthub.models import db


NOTIFICATION_TYPES = frozenset({
    "PROPOSAL_STATUS",
    "COST_STATUS",
    "PROJECT_INVITE",
    "NOTE_RESTORED",
    "SYSTEM",
})


def _iso(value):
    return value.isoformat() if value else None


class Notification(db.Model):
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_inbox", "user_id", "is_read"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    type = db.Column(db.String(30), nullable=False, default="SYSTEM")
    title = db.Column(db.String(300), nullable=False)
    message = db.Column(db.Text, default="")
    link = db.Column(db.String(500), nullable=True, comment="Client route of the subject, e.g. /projects/4/costs/9")
    meta = db.Column("metadata", db.JSON, default=dict)
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    read_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def mark_read(self):
        """Idempotent: a second call keeps the first ``read_at``."""
        if not self.is_read:
            self.is_read = True
            self.read_at = datetime.now(timezone.utc)

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type,
            "title": self.title,
            "message": self.message or "",
            "link": self.link,
            "metadata": self.meta or {},
            "is_read": bool(self.is_read),
            "read_at": _iso(self.read_at),
            "created_at": _iso(self.created_at),
        }

    def __repr__(self):
        return f"<Notification {self.id} {self.type} user={self.user_id}>"
