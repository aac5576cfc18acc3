"""
ProjectHub
Request principal.

The identity provider authenticates the caller; the JWT middleware turns its
token into a ``Principal`` stored on ``g.principal`` (or ``None``).  Handlers
read it through ``current_principal()``; ``require_auth`` turns a missing
principal into a 401 instead of treating the caller as anonymous.
"""

import functools
import logging
from typing import NamedTuple, Optional

from flask import g

from projecthub.utils.errors import E, api_error

logger = logging.getLogger(__name__)


class Principal(NamedTuple):
    id: int
    role: str


def current_principal() -> Optional[Principal]:
    return getattr(g, "principal", None)


def require_auth(f):
    """Decorator: reject the request with 401 when no principal was resolved."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        if current_principal() is None:
            return api_error(E.UNAUTHORIZED, "Authentication required")
        return f(*args, **kwargs)
    return decorated
