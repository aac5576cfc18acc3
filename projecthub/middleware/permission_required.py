"""
Permission Decorators: global-role checks for route protection.

Usage:
    @bp.route("/api/v1/admin/settings", methods=["PUT"])
    @require_role("SUPER_ADMIN")
    def update_settings():
        ...

Answers 401 when no principal was resolved and 403 when the principal's
global role is not one of the allowed roles.  Project-scoped routes use
``require_project_access`` instead.
"""

import functools
import logging

from projecthub.auth import current_principal
from projecthub.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def require_role(*roles: str):
    """Decorator: require the principal's global role to be one of *roles*."""
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            principal = current_principal()
            if principal is None:
                return api_error(E.UNAUTHORIZED, "Authentication required")

            if principal.role not in roles:
                logger.warning(
                    "User %d (%s) denied: role not in %s on %s",
                    principal.id, principal.role, roles, f.__name__,
                )
                return api_error(E.FORBIDDEN, "Permission denied")

            return f(*args, **kwargs)
        return decorated
    return decorator
