"""
Role Policy: global-role permission table.

Pure functions, no I/O.  Evaluation is deterministic, total and
deny-by-default:
  - SUPER_ADMIN is granted everything
  - ADMIN / COLLABORATOR / CLIENT are granted exactly their fixed sets
  - anything else (unknown role, unknown permission, wrong type) is denied

Membership custom permissions are NOT read by ``has_permission``; they are
consulted only through ``has_member_permission``.
"""

from projecthub.models.auth import ADMIN, CLIENT, COLLABORATOR, SUPER_ADMIN

ADMIN_PERMISSIONS = frozenset({
    "project:edit",
    "project:delete",
    "member:manage",
    "section:manage",
    "task:manage",
    "meeting:manage",
    "proposal:manage",
    "cost:manage",
    "note:manage",
})

COLLABORATOR_PERMISSIONS = frozenset({
    "project:view",
    "task:view",
    "task:create",
    "task:edit",
    "meeting:view",
    "note:view",
    "note:create",
    "note:edit",
})

CLIENT_PERMISSIONS = frozenset({
    "project:view",
    "task:view",
    "meeting:view",
})

ROLE_PERMISSIONS = {
    ADMIN: ADMIN_PERMISSIONS,
    COLLABORATOR: COLLABORATOR_PERMISSIONS,
    CLIENT: CLIENT_PERMISSIONS,
}

PRIVILEGED_ROLES = frozenset({SUPER_ADMIN, ADMIN})


def has_permission(global_role, permission) -> bool:
    """Return True if *global_role* grants *permission*."""
    if not isinstance(global_role, str) or not isinstance(permission, str):
        return False
    if global_role == SUPER_ADMIN:
        return True
    return permission in ROLE_PERMISSIONS.get(global_role, frozenset())


def has_member_permission(global_role, membership, permission) -> bool:
    """Global grant, or an explicit ``True`` override on an active membership."""
    if has_permission(global_role, permission):
        return True
    if membership is None or not membership.is_active:
        return False
    overrides = membership.custom_permissions or {}
    return overrides.get(permission) is True


def is_privileged(global_role) -> bool:
    return isinstance(global_role, str) and global_role in PRIVILEGED_ROLES


# ── Coarse role checks ───────────────────────────────────────────────────────

def can_manage_projects(global_role) -> bool:
    return isinstance(global_role, str) and global_role in PRIVILEGED_ROLES


def can_archive_project(global_role) -> bool:
    return isinstance(global_role, str) and global_role in PRIVILEGED_ROLES
