"""
ProjectHub
Notes domain model.

Models:
    - Note: rich-text project note with a monotonically increasing version.
    - NoteHistory: snapshot of a note's title/content taken before each change.
"""

from datetime import datetime, timezone

from projecthub.models import db

NOTE_VISIBILITIES = {"INTERNAL", "SHARED"}
NOTE_STATUSES = {"DRAFT", "PUBLISHED"}


class Note(db.Model):
    __tablename__ = "notes"

    # Fields captured by a history snapshot.
    history_fields = ("title", "content")

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    author_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
    )
    title = db.Column(db.String(300), nullable=False)
    content = db.Column(db.JSON, nullable=False, default=dict, comment="Rich-text document")
    visibility = db.Column(db.String(20), nullable=False, default="SHARED")
    status = db.Column(db.String(20), nullable=False, default="DRAFT")
    version = db.Column(db.Integer, nullable=False, default=1)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc))

    history = db.relationship(
        "NoteHistory", back_populates="note", lazy="dynamic",
        order_by="NoteHistory.version.desc()",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "author_id": self.author_id,
            "title": self.title,
            "content": self.content or {},
            "visibility": self.visibility,
            "status": self.status,
            "version": self.version,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Note {self.id} v{self.version}: {self.title[:40]}>"


class NoteHistory(db.Model):
    """Pre-mutation snapshot; ``version`` is the note's version before the change."""

    __tablename__ = "note_history"
    __table_args__ = (
        db.UniqueConstraint("note_id", "version", name="uq_note_history_version"),
    )

    id = db.Column(db.Integer, primary_key=True)
    note_id = db.Column(
        db.Integer, db.ForeignKey("notes.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    version = db.Column(db.Integer, nullable=False)
    title = db.Column(db.String(300), nullable=False)
    content = db.Column(db.JSON, nullable=False, default=dict)
    saved_by_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
    )
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    note = db.relationship("Note", back_populates="history")

    @classmethod
    def from_entity(cls, note, saved_by_id):
        return cls(
            note_id=note.id,
            version=note.version,
            title=note.title,
            content=note.content,
            saved_by_id=saved_by_id,
        )

    def to_dict(self):
        return {
            "id": self.id,
            "note_id": self.note_id,
            "version": self.version,
            "title": self.title,
            "content": self.content or {},
            "saved_by_id": self.saved_by_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
