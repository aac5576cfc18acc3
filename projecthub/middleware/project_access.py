"""
Project Access Middleware: gates project-scoped routes.

Provides the `@require_project_access` decorator.  For the project named by
the route parameter it runs, in order:

  1. principal present?                     no  → 401
  2. may the principal view the project?     no  → 404 (same answer as a
                                                   project that does not exist)
  3. manage=True and cannot manage?          yes → 403
  4. permission(s) given and none granted?   yes → 403

Entity lookups inside the handler therefore only happen for principals who
can already see the project; they return 404 for a missing entity before any
entity-level 403 (e.g. author-only edits).

The resolved ``ProjectAccess`` and active membership are left on
``g.project_access`` / ``g.project_membership`` for the handler.

Usage:
    @bp.route("/api/v1/projects/<int:project_id>/costs/<int:cost_id>/approve", methods=["POST"])
    @require_project_access(permission="cost:manage")
    def approve_cost(project_id, cost_id):
        ...
"""

import functools
import logging

from flask import g, request

from projecthub.auth import current_principal
from projecthub.services.project_access import can_access_project, get_active_membership
from projecthub.services.role_policy import has_member_permission
from projecthub.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def require_project_access(
    manage: bool = False,
    permission: str | tuple[str, ...] | None = None,
    param_name: str = "project_id",
):
    """
    Decorator: require view (and optionally manage / a permission) on the
    project identified by the given route parameter.

    Args:
        manage: Require ``can_manage`` on the project.
        permission: Permission codename, or a tuple of which any one suffices.
                    Membership custom permissions are honoured here.
        param_name: Name of the Flask route parameter containing the project ID.
    """
    required = (permission,) if isinstance(permission, str) else tuple(permission or ())

    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            principal = current_principal()
            if principal is None:
                return api_error(E.UNAUTHORIZED, "Authentication required")

            project_id = kwargs.get(param_name)
            if project_id is None:
                project_id = (request.view_args or {}).get(param_name)

            access = can_access_project(project_id, principal.id, principal.role)
            if not access.can_view:
                logger.info(
                    "User %d cannot see project %s on %s",
                    principal.id, project_id, f.__name__,
                )
                return api_error(E.NOT_FOUND, "Project not found")

            if manage and not access.can_manage:
                logger.warning(
                    "User %d denied manage on project %s (%s)",
                    principal.id, project_id, f.__name__,
                )
                return api_error(E.FORBIDDEN, "You cannot manage this project")

            membership = get_active_membership(project_id, principal.id)
            if required and not any(
                has_member_permission(principal.role, membership, p) for p in required
            ):
                logger.warning(
                    "User %d denied on project %s: missing any of %s (%s)",
                    principal.id, project_id, required, f.__name__,
                )
                return api_error(
                    E.FORBIDDEN, "Permission denied",
                    details={"required_any": list(required)},
                )

            g.project_access = access
            g.project_membership = membership
            return f(*args, **kwargs)
        return decorated
    return decorator
