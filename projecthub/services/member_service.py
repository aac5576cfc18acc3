"""
Member Service: project membership management.

Memberships are never hard-deleted: removal sets ``is_active=False`` and
adding the same user again reactivates the row.

Rules:
  - a user cannot change or remove their own membership
  - the project owner cannot be removed
  - a project always keeps at least one active MANAGER
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from projecthub.core.exceptions import ValidationError
from projecthub.models import db
from projecthub.models.auth import MEMBER_ROLES, ProjectMember, User
from projecthub.models.project import Project
from projecthub.services.audit_service import record_audit
from projecthub.services.notification_service import NotificationService
from projecthub.utils.errors import E, service_error

logger = logging.getLogger(__name__)


def _parse_custom_permissions(value, errors: dict):
    if not isinstance(value, dict) or not all(
        isinstance(k, str) and isinstance(v, bool) for k, v in value.items()
    ):
        errors["custom_permissions"] = "must map permission names to true/false"
        return None
    return dict(value)


def _parse_member(data, *, partial: bool) -> dict:
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    errors = {}
    parsed = {}
    if not partial:
        user_id = data.get("user_id")
        if isinstance(user_id, bool) or not isinstance(user_id, int):
            errors["user_id"] = "required"
        else:
            parsed["user_id"] = user_id
    if "member_role" in data or not partial:
        role = data.get("member_role", "MEMBER")
        if role not in MEMBER_ROLES:
            errors["member_role"] = f"must be one of {sorted(MEMBER_ROLES)}"
        else:
            parsed["member_role"] = role
    if "custom_permissions" in data:
        perms = _parse_custom_permissions(data["custom_permissions"], errors)
        if perms is not None:
            parsed["custom_permissions"] = perms
    if errors:
        raise ValidationError("Invalid member payload", details=errors)
    if partial and not parsed:
        raise ValidationError("Nothing to update", details={"body": "no updatable fields"})
    return parsed


def _active_member(project_id: int, member_id: int) -> ProjectMember | None:
    return ProjectMember.query.filter_by(id=member_id, project_id=project_id, is_active=True).first()


def _is_last_manager(member: ProjectMember) -> bool:
    if member.member_role != "MANAGER":
        return False
    managers = ProjectMember.query.filter_by(
        project_id=member.project_id, member_role="MANAGER", is_active=True,
    ).count()
    return managers <= 1


def list_members(project_id: int, include_inactive: bool = False) -> list[dict]:
    q = ProjectMember.query.filter_by(project_id=project_id)
    if not include_inactive:
        q = q.filter_by(is_active=True)
    return [m.to_dict() for m in q.order_by(ProjectMember.joined_at, ProjectMember.id).all()]


def add_member(project_id: int, principal, data):
    """
    Add a user to the project, or reactivate their former membership.

    Returns:
        ({"member": ..., "reactivated": bool}, None) on success
        (None, error) for unknown users or users who are already active members
    """
    parsed = _parse_member(data, partial=False)
    user = User.query.filter_by(id=parsed["user_id"], is_active=True).first()
    if user is None:
        return None, service_error(E.NOT_FOUND, "User not found")

    existing = ProjectMember.query.filter_by(project_id=project_id, user_id=user.id).first()
    if existing is not None and existing.is_active:
        return None, service_error(E.CONFLICT_DUPLICATE, "User is already a member of this project")

    project = db.session.get(Project, project_id)
    try:
        if existing is not None:
            existing.is_active = True
            existing.member_role = parsed["member_role"]
            existing.custom_permissions = parsed.get("custom_permissions", existing.custom_permissions or {})
            existing.joined_at = datetime.now(timezone.utc)
            member, action = existing, "MEMBER_REACTIVATE"
        else:
            member = ProjectMember(
                project_id=project_id,
                user_id=user.id,
                member_role=parsed["member_role"],
                custom_permissions=parsed.get("custom_permissions", {}),
            )
            db.session.add(member)
            action = "MEMBER_ADD"
        db.session.flush()

        record_audit(
            action=action, actor_id=principal.id, target_type="MEMBER",
            target_id=member.id, project_id=project_id,
            metadata={"userId": user.id, "memberRole": member.member_role},
        )
        NotificationService.create(
            user_id=user.id,
            type="PROJECT_INVITE",
            title=f"You were added to {project.name}",
            message=f"Role: {member.member_role}",
            link=f"/projects/{project_id}",
            metadata={"projectId": project_id},
            commit=False,
        )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    logger.info("Member %s: user %d", action, user.id,
                extra={"project_id": project_id, "actor_id": principal.id})
    return {"member": member.to_dict(), "reactivated": action == "MEMBER_REACTIVATE"}, None


def update_member(project_id: int, member_id: int, principal, data):
    parsed = _parse_member(data, partial=True)
    member = _active_member(project_id, member_id)
    if member is None:
        return None, service_error(E.NOT_FOUND, "Member not found")
    if member.user_id == principal.id:
        return None, service_error(E.VALIDATION_INVALID, "You cannot change your own membership")
    if parsed.get("member_role", "MANAGER") != "MANAGER" and _is_last_manager(member):
        return None, service_error(E.VALIDATION_INVALID, "A project needs at least one manager")

    updated = sorted(k for k, v in parsed.items() if getattr(member, k) != v)
    if not updated:
        return member.to_dict(), None

    try:
        for field in updated:
            setattr(member, field, parsed[field])
        record_audit(
            action="MEMBER_UPDATE", actor_id=principal.id, target_type="MEMBER",
            target_id=member.id, project_id=project_id,
            metadata={"userId": member.user_id, "updatedFields": updated},
        )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    logger.info("Member %d updated: %s", member.id, ", ".join(updated),
                extra={"project_id": project_id, "actor_id": principal.id})
    return member.to_dict(), None


def remove_member(project_id: int, member_id: int, principal):
    member = _active_member(project_id, member_id)
    if member is None:
        return None, service_error(E.NOT_FOUND, "Member not found")
    if member.user_id == principal.id:
        return None, service_error(E.VALIDATION_INVALID, "You cannot remove yourself from the project")
    project = db.session.get(Project, project_id)
    if project is not None and project.owner_id == member.user_id:
        return None, service_error(E.VALIDATION_INVALID, "The project owner cannot be removed")
    if _is_last_manager(member):
        return None, service_error(E.VALIDATION_INVALID, "Cannot remove the only manager of the project")

    try:
        member.is_active = False
        record_audit(
            action="MEMBER_REMOVE", actor_id=principal.id, target_type="MEMBER",
            target_id=member.id, project_id=project_id,
            metadata={"userId": member.user_id, "memberRole": member.member_role},
        )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    logger.info("Member %d removed", member.id,
                extra={"project_id": project_id, "actor_id": principal.id})
    return {"id": member.id, "is_active": False}, None
