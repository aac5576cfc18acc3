"""
ProjectHub
Notes blueprint: versioned project notes.

Endpoints:
    GET    /api/v1/projects/<pid>/notes
    POST   /api/v1/projects/<pid>/notes
    GET    /api/v1/projects/<pid>/notes/<note_id>
    PATCH  /api/v1/projects/<pid>/notes/<note_id>
    DELETE /api/v1/projects/<pid>/notes/<note_id>
    GET    /api/v1/projects/<pid>/notes/<note_id>/history
    GET    /api/v1/projects/<pid>/notes/<note_id>/history/<history_id>
    POST   /api/v1/projects/<pid>/notes/<note_id>/restore   body: {"version": n} | {"history_id": n}
"""

from flask import Blueprint, jsonify

from projecthub.auth import current_principal
from projecthub.blueprints import json_body, register_domain_error_handlers
from projecthub.core.exceptions import ValidationError
from projecthub.middleware.project_access import require_project_access
from projecthub.services import note_service
from projecthub.utils.errors import outcome_response

notes_bp = Blueprint("notes", __name__, url_prefix="/api/v1/projects/<int:project_id>/notes")
register_domain_error_handlers(notes_bp)

CREATE_PERMISSIONS = ("note:create", "note:manage")
EDIT_PERMISSIONS = ("note:edit", "note:manage")


def _respond(outcome, status=200):
    payload, err = outcome
    if err:
        return outcome_response(err)
    return jsonify(payload), status


@notes_bp.route("", methods=["GET"])
@require_project_access()
def list_notes(project_id):
    return jsonify({"notes": note_service.list_notes(project_id, current_principal())})


@notes_bp.route("", methods=["POST"])
@require_project_access(permission=CREATE_PERMISSIONS)
def create_note(project_id):
    return _respond(note_service.create_note(project_id, current_principal(), json_body()), 201)


@notes_bp.route("/<int:note_id>", methods=["GET"])
@require_project_access()
def get_note(project_id, note_id):
    return _respond(note_service.get_note(project_id, note_id, current_principal()))


@notes_bp.route("/<int:note_id>", methods=["PATCH", "PUT"])
@require_project_access(permission=EDIT_PERMISSIONS)
def update_note(project_id, note_id):
    return _respond(note_service.update_note(project_id, note_id, current_principal(), json_body()))


@notes_bp.route("/<int:note_id>", methods=["DELETE"])
@require_project_access(permission=EDIT_PERMISSIONS)
def delete_note(project_id, note_id):
    return _respond(note_service.delete_note(project_id, note_id, current_principal()))


@notes_bp.route("/<int:note_id>/history", methods=["GET"])
@require_project_access()
def list_history(project_id, note_id):
    return _respond(note_service.list_history(project_id, note_id, current_principal()))


@notes_bp.route("/<int:note_id>/history/<int:history_id>", methods=["GET"])
@require_project_access()
def get_history_entry(project_id, note_id, history_id):
    return _respond(note_service.get_history_entry(project_id, note_id, history_id, current_principal()))


@notes_bp.route("/<int:note_id>/restore", methods=["POST"])
@require_project_access(permission=EDIT_PERMISSIONS)
def restore_note(project_id, note_id):
    data = json_body()
    target = {}
    for key in ("version", "history_id"):
        value = data.get(key)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ValidationError("Invalid restore target", details={key: "must be a positive integer"})
        target[key] = value
    return _respond(note_service.restore_note(project_id, note_id, current_principal(), **target))
