"""
ProjectHub HTTP blueprints.

``register_domain_error_handlers`` maps every ``ProjectHubError`` raised
inside a blueprint onto the standard error body, using the status and code
the exception class declares (400 for ValidationError, 404 for NotFoundError).
"""

import logging

from flask import request

from projecthub.core.exceptions import ProjectHubError, ValidationError
from projecthub.utils.errors import api_error

logger = logging.getLogger(__name__)


def register_domain_error_handlers(bp):
    @bp.errorhandler(ProjectHubError)
    def _handle_domain_error(error: ProjectHubError):
        logger.debug("%s on %s %s: %s", type(error).__name__, request.method, request.path, error)
        return api_error(error.code, error.public_message, status=error.status,
                         details=error.details or None)

    return bp


def json_body() -> dict:
    """Parsed JSON body; anything else is a ValidationError."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data
