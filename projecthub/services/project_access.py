"""
Project Access Resolver: per-request view/manage decision for one project.

Combines the principal's global role with ownership, active membership and
the project's public flag:

  can_view   = SUPER_ADMIN or owner or active member or project.is_public
  can_manage = SUPER_ADMIN or owner or (ADMIN and active member)

Global role alone never grants view on a private project; a COLLABORATOR or
CLIENT who is neither owner nor active member sees only public projects.
A missing or inactive (archived) project resolves to (False, False) for
every role, SUPER_ADMIN included.

Nothing here is cached: membership and ownership may change between requests.
"""

from typing import NamedTuple, Optional

from sqlalchemy import or_

from projecthub.models import db
from projecthub.models.auth import ADMIN, SUPER_ADMIN, ProjectMember
from projecthub.models.project import Project


class ProjectAccess(NamedTuple):
    can_view: bool
    can_manage: bool


NO_ACCESS = ProjectAccess(False, False)
FULL_ACCESS = ProjectAccess(True, True)


def get_active_membership(project_id: int, user_id: int) -> Optional[ProjectMember]:
    return (
        ProjectMember.query
        .filter_by(project_id=project_id, user_id=user_id, is_active=True)
        .first()
    )


def can_access_project(project_id: int, user_id: int, global_role: str) -> ProjectAccess:
    project = db.session.get(Project, project_id) if project_id is not None else None
    if project is None or not project.is_active:
        return NO_ACCESS
    if global_role == SUPER_ADMIN:
        return FULL_ACCESS

    is_owner = user_id is not None and project.owner_id == user_id
    is_member = get_active_membership(project_id, user_id) is not None

    can_view = is_owner or is_member or bool(project.is_public)
    can_manage = is_owner or (global_role == ADMIN and is_member)
    return ProjectAccess(can_view, can_manage)


def get_accessible_project_ids(user_id: int, global_role: str) -> Optional[list[int]]:
    """
    Project ids the user may view, sorted.

    Returns None for SUPER_ADMIN, meaning "every project".
    """
    if global_role == SUPER_ADMIN:
        return None

    member_subq = (
        db.session.query(ProjectMember.project_id)
        .filter(ProjectMember.user_id == user_id, ProjectMember.is_active.is_(True))
    )
    rows = (
        db.session.query(Project.id)
        .filter(
            Project.is_active.is_(True),
            or_(
                Project.owner_id == user_id,
                Project.is_public.is_(True),
                Project.id.in_(member_subq),
            ),
        )
        .all()
    )
    return sorted({r[0] for r in rows})


def get_administered_project_ids(user_id: int) -> list[int]:
    """Projects the user owns or holds an active membership in."""
    member_subq = (
        db.session.query(ProjectMember.project_id)
        .filter(ProjectMember.user_id == user_id, ProjectMember.is_active.is_(True))
    )
    rows = (
        db.session.query(Project.id)
        .filter(or_(Project.owner_id == user_id, Project.id.in_(member_subq)))
        .all()
    )
    return sorted({r[0] for r in rows})
