"""
Note Service: project notes with version history and restore.

Every update and restore snapshots the note's current title/content into
``note_history`` at the current version, applies the change and bumps the
version by one, all in a single commit together with the audit entry.

Read rules:
  - COLLABORATOR cannot read INTERNAL notes
  - CLIENT can only read PUBLISHED notes
Write rules:
  - COLLABORATOR may only edit, restore or delete notes they authored
  - only SUPER_ADMIN / ADMIN may mark a note INTERNAL
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from projecthub.core.exceptions import ValidationError
from projecthub.models import db
from projecthub.models.auth import CLIENT, COLLABORATOR
from projecthub.models.note import NOTE_STATUSES, NOTE_VISIBILITIES, Note, NoteHistory
from projecthub.services.audit_service import record_audit
from projecthub.services.notification_service import NotificationService
from projecthub.services.role_policy import is_privileged
from projecthub.services.versioning import snapshot_and_apply
from projecthub.utils.errors import E, service_error

logger = logging.getLogger(__name__)

TITLE_MAX = 300


# ── Private helpers ────────────────────────────────────────────────────────────


def _parse_payload(data, *, partial: bool) -> dict:
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    errors = {}
    parsed = {}

    if "title" in data or not partial:
        title = data.get("title")
        if not isinstance(title, str) or not title.strip():
            errors["title"] = "required"
        elif len(title) > TITLE_MAX:
            errors["title"] = f"must be at most {TITLE_MAX} characters"
        else:
            parsed["title"] = title.strip()

    if "content" in data:
        if not isinstance(data["content"], dict):
            errors["content"] = "must be a rich-text document object"
        else:
            parsed["content"] = data["content"]
    elif not partial:
        parsed["content"] = {}

    if "visibility" in data:
        if data["visibility"] not in NOTE_VISIBILITIES:
            errors["visibility"] = f"must be one of {sorted(NOTE_VISIBILITIES)}"
        else:
            parsed["visibility"] = data["visibility"]

    if "status" in data:
        if data["status"] not in NOTE_STATUSES:
            errors["status"] = f"must be one of {sorted(NOTE_STATUSES)}"
        else:
            parsed["status"] = data["status"]

    if errors:
        raise ValidationError("Invalid note payload", details=errors)
    if partial and not parsed:
        raise ValidationError("Nothing to update", details={"body": "no updatable fields"})
    return parsed


def _get_active_note(project_id: int, note_id: int) -> Note | None:
    return Note.query.filter_by(id=note_id, project_id=project_id, is_active=True).first()


def _not_found():
    return service_error(E.NOT_FOUND, "Note not found")


def can_read_note(note: Note, principal) -> bool:
    if principal.role == COLLABORATOR and note.visibility == "INTERNAL":
        return False
    if principal.role == CLIENT and note.status != "PUBLISHED":
        return False
    return True


def can_edit_note(note: Note, principal) -> bool:
    if principal.role == COLLABORATOR:
        return note.author_id == principal.id
    return True


def _log_extra(note: Note, principal) -> dict:
    return {"project_id": note.project_id, "actor_id": principal.id,
            "entity_type": "NOTE", "entity_id": note.id}


# ── Public API ─────────────────────────────────────────────────────────────────


def list_notes(project_id: int, principal) -> list[dict]:
    q = Note.query.filter_by(project_id=project_id, is_active=True)
    if principal.role == COLLABORATOR:
        q = q.filter(Note.visibility != "INTERNAL")
    elif principal.role == CLIENT:
        q = q.filter(Note.status == "PUBLISHED")
    return [n.to_dict() for n in q.order_by(Note.updated_at.desc(), Note.id.desc()).all()]


def create_note(project_id: int, principal, data):
    parsed = _parse_payload(data, partial=False)
    if parsed.get("visibility") == "INTERNAL" and not is_privileged(principal.role):
        return None, service_error(E.FORBIDDEN, "Only administrators can create internal notes")

    note = Note(project_id=project_id, author_id=principal.id, version=1, **parsed)
    try:
        db.session.add(note)
        db.session.flush()
        record_audit(
            action="NOTE_CREATE", actor_id=principal.id, target_type="NOTE",
            target_id=note.id, project_id=project_id,
            metadata={"title": note.title, "visibility": note.visibility},
        )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    logger.info("Note created", extra=_log_extra(note, principal))
    return note.to_dict(), None


def get_note(project_id: int, note_id: int, principal):
    note = _get_active_note(project_id, note_id)
    if note is None:
        return None, _not_found()
    if not can_read_note(note, principal):
        return None, service_error(E.FORBIDDEN, "You cannot view this note")
    return note.to_dict(), None


def update_note(project_id: int, note_id: int, principal, data):
    """
    Apply a partial update as a new version.

    Returns:
        (note_dict, None) on success
        (None, error) when the note is missing or the principal may not edit it
    """
    parsed = _parse_payload(data, partial=True)

    note = _get_active_note(project_id, note_id)
    if note is None:
        return None, _not_found()
    if not can_edit_note(note, principal):
        return None, service_error(E.FORBIDDEN, "You can only edit your own notes")
    if parsed.get("visibility") == "INTERNAL" and not is_privileged(principal.role):
        return None, service_error(E.FORBIDDEN, "Only administrators can make a note internal")

    try:
        snapshot_and_apply(note, NoteHistory, parsed, principal.id)
        record_audit(
            action="NOTE_UPDATE", actor_id=principal.id, target_type="NOTE",
            target_id=note.id, project_id=project_id,
            metadata={"updatedFields": sorted(parsed), "newVersion": note.version},
        )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    logger.info("Note updated to v%d", note.version, extra=_log_extra(note, principal))
    return note.to_dict(), None


def list_history(project_id: int, note_id: int, principal):
    """Snapshots of a readable note, newest version first."""
    note = _get_active_note(project_id, note_id)
    if note is None:
        return None, _not_found()
    if not can_read_note(note, principal):
        return None, service_error(E.FORBIDDEN, "You cannot view this note")
    entries = note.history.order_by(NoteHistory.version.desc()).all()
    return {
        "note_id": note.id,
        "current_version": note.version,
        "history": [h.to_dict() for h in entries],
    }, None


def get_history_entry(project_id: int, note_id: int, history_id: int, principal):
    note = _get_active_note(project_id, note_id)
    if note is None:
        return None, _not_found()
    entry = NoteHistory.query.filter_by(id=history_id, note_id=note.id).first()
    if entry is None:
        return None, service_error(E.NOT_FOUND, "Version not found")
    if not can_read_note(note, principal):
        return None, service_error(E.FORBIDDEN, "You cannot view this note")
    return entry.to_dict(), None


def restore_note(project_id: int, note_id: int, principal, *, version=None, history_id=None):
    """
    Restore the note's title/content from an earlier version.

    Exactly one of *version* / *history_id* selects the target.  Asking for
    the current version number restores the current state.  The result is a
    new version; existing history is never rewritten.
    """
    if (version is None) == (history_id is None):
        raise ValidationError(
            "Specify exactly one restore target",
            details={"version": "or history_id is required"},
        )

    note = _get_active_note(project_id, note_id)
    if note is None:
        return None, _not_found()

    if history_id is not None:
        target = NoteHistory.query.filter_by(id=history_id, note_id=note.id).first()
    elif version == note.version:
        target = note
    else:
        target = NoteHistory.query.filter_by(note_id=note.id, version=version).first()
    if target is None:
        return None, service_error(E.NOT_FOUND, "Version not found")

    if not can_edit_note(note, principal):
        return None, service_error(E.FORBIDDEN, "You can only restore your own notes")

    restored_from = target.version
    changes = {field: getattr(target, field) for field in Note.history_fields}

    try:
        snapshot_and_apply(note, NoteHistory, changes, principal.id)
        record_audit(
            action="NOTE_RESTORE", actor_id=principal.id, target_type="NOTE",
            target_id=note.id, project_id=project_id,
            metadata={"restoredFromVersion": restored_from, "newVersion": note.version},
        )
        if note.author_id and note.author_id != principal.id:
            NotificationService.create(
                user_id=note.author_id,
                type="NOTE_RESTORED",
                title=f"Note restored: {note.title}",
                message=f"Version {restored_from} was restored as version {note.version}.",
                link=f"/projects/{project_id}/notes/{note.id}",
                metadata={"noteId": note.id, "restoredFromVersion": restored_from},
                commit=False,
            )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    logger.info(
        "Note restored from v%d to v%d", restored_from, note.version,
        extra=_log_extra(note, principal),
    )
    return note.to_dict(), None


def delete_note(project_id: int, note_id: int, principal):
    """Soft delete: the note disappears from reads, its history is kept."""
    note = _get_active_note(project_id, note_id)
    if note is None:
        return None, _not_found()
    if not can_edit_note(note, principal):
        return None, service_error(E.FORBIDDEN, "You can only delete your own notes")

    try:
        note.is_active = False
        record_audit(
            action="NOTE_DELETE", actor_id=principal.id, target_type="NOTE",
            target_id=note.id, project_id=project_id,
            metadata={"title": note.title, "version": note.version},
        )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    logger.info("Note deleted", extra=_log_extra(note, principal))
    return {"id": note.id, "deleted": True}, None
