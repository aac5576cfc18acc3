"""
Project Service: project lifecycle.

The creator becomes owner and the first MANAGER member.  Archiving is a soft
delete (status ARCHIVED, ``is_active=False``); an archived project resolves to
no access for everyone except SUPER_ADMIN.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from projecthub.core.exceptions import ValidationError
from projecthub.models import db
from projecthub.models.auth import ProjectMember
from projecthub.models.project import PROJECT_STATUSES, Client, Project
from projecthub.services.audit_service import record_audit
from projecthub.services.project_access import get_accessible_project_ids
from projecthub.services.role_policy import can_archive_project, can_manage_projects
from projecthub.utils.errors import E, service_error

logger = logging.getLogger(__name__)

NAME_MAX = 200
UPDATABLE_FIELDS = ("name", "description", "status", "is_public", "client_id")


def _parse_project(data, *, partial: bool) -> dict:
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    errors = {}
    parsed = {}

    if "name" in data or not partial:
        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            errors["name"] = "required"
        elif len(name.strip()) > NAME_MAX:
            errors["name"] = f"must be at most {NAME_MAX} characters"
        else:
            parsed["name"] = name.strip()
    if "description" in data:
        if data["description"] is not None and not isinstance(data["description"], str):
            errors["description"] = "must be a string"
        else:
            parsed["description"] = data["description"]
    if "status" in data:
        if data["status"] not in PROJECT_STATUSES - {"ARCHIVED"}:
            errors["status"] = f"must be one of {sorted(PROJECT_STATUSES - {'ARCHIVED'})}"
        else:
            parsed["status"] = data["status"]
    if "is_public" in data:
        if not isinstance(data["is_public"], bool):
            errors["is_public"] = "must be a boolean"
        else:
            parsed["is_public"] = data["is_public"]
    if "client_id" in data:
        client_id = data["client_id"]
        if client_id is not None and (
            isinstance(client_id, bool) or not isinstance(client_id, int)
            or not Client.query.filter_by(id=client_id, is_active=True).first()
        ):
            errors["client_id"] = "unknown client"
        else:
            parsed["client_id"] = client_id

    if errors:
        raise ValidationError("Invalid project payload", details=errors)
    if partial and not parsed:
        raise ValidationError("Nothing to update", details={"body": "no updatable fields"})
    return parsed


def list_projects(principal) -> list[dict]:
    q = Project.query.filter_by(is_active=True)
    ids = get_accessible_project_ids(principal.id, principal.role)
    if ids is not None:
        q = q.filter(Project.id.in_(ids))
    return [p.to_dict() for p in q.order_by(Project.name, Project.id).all()]


def get_project(project_id: int):
    project = db.session.get(Project, project_id)
    if project is None or not project.is_active:
        return None, service_error(E.NOT_FOUND, "Project not found")
    payload = project.to_dict()
    payload["member_count"] = project.members.filter_by(is_active=True).count()
    return payload, None


def create_project(principal, data):
    if not can_manage_projects(principal.role):
        return None, service_error(E.FORBIDDEN, "Only administrators can create projects")
    parsed = _parse_project(data, partial=False)

    project = Project(owner_id=principal.id, **parsed)
    try:
        db.session.add(project)
        db.session.flush()
        db.session.add(ProjectMember(
            project_id=project.id, user_id=principal.id, member_role="MANAGER",
        ))
        record_audit(
            action="PROJECT_CREATE", actor_id=principal.id, target_type="PROJECT",
            target_id=project.id, project_id=project.id,
            metadata={"name": project.name, "isPublic": bool(project.is_public)},
        )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    logger.info("Project created", extra={"project_id": project.id, "actor_id": principal.id})
    return project.to_dict(), None


def update_project(project_id: int, principal, data):
    parsed = _parse_project(data, partial=True)
    project = db.session.get(Project, project_id)
    if project is None or not project.is_active:
        return None, service_error(E.NOT_FOUND, "Project not found")

    updated = sorted(k for k, v in parsed.items() if getattr(project, k) != v)
    if not updated:
        return project.to_dict(), None

    try:
        for field in updated:
            setattr(project, field, parsed[field])
        record_audit(
            action="PROJECT_UPDATE", actor_id=principal.id, target_type="PROJECT",
            target_id=project.id, project_id=project.id,
            metadata={"updatedFields": updated},
        )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    logger.info("Project updated: %s", ", ".join(updated),
                extra={"project_id": project.id, "actor_id": principal.id})
    return project.to_dict(), None


def archive_project(project_id: int, principal):
    if not can_archive_project(principal.role):
        return None, service_error(E.FORBIDDEN, "Only administrators can archive projects")
    project = db.session.get(Project, project_id)
    if project is None or not project.is_active:
        return None, service_error(E.NOT_FOUND, "Project not found")

    try:
        project.status = "ARCHIVED"
        project.is_active = False
        record_audit(
            action="PROJECT_ARCHIVE", actor_id=principal.id, target_type="PROJECT",
            target_id=project.id, project_id=project.id, metadata={"name": project.name},
        )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    logger.info("Project archived", extra={"project_id": project.id, "actor_id": principal.id})
    return project.to_dict(), None
