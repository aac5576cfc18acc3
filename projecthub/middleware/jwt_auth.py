"""
Bearer-token middleware.

Every request starts with ``g.principal = None``; a verified token replaces
it.  Rejected tokens are logged and otherwise ignored, so protected endpoints
answer 401 through ``require_auth`` rather than here.
"""

import logging

import jwt as pyjwt
from flask import g, request

from projecthub.services.jwt_service import principal_from_token

logger = logging.getLogger(__name__)

_BEARER = "Bearer "


def init_jwt_middleware(app):
    """Register the principal resolver as a before_request hook."""

    @app.before_request
    def _resolve_principal():
        g.principal = None

        header = request.headers.get("Authorization", "")
        if not header.startswith(_BEARER):
            return

        try:
            g.principal = principal_from_token(header[len(_BEARER):])
        except pyjwt.ExpiredSignatureError:
            logger.info("Expired access token on %s %s", request.method, request.path)
        except pyjwt.InvalidTokenError as exc:
            logger.warning("Rejected access token on %s %s: %s",
                           request.method, request.path, exc)
