"""
Exceptions raised before a service can produce a structured outcome.

Authorization and workflow denials are *returned* as ``(None, error)``.
What is raised instead is input that never reaches a guard (a malformed body
or filter) and lookups with nothing sensible to return.  Each class carries
the error code and HTTP status the blueprint handler answers with.
"""

from projecthub.utils.errors import E


class ProjectHubError(Exception):
    code = E.INTERNAL
    status = 500

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)

    @property
    def public_message(self) -> str:
        return str(self)


class ValidationError(ProjectHubError):
    """Malformed input; ``details`` maps field names to what is wrong with them."""

    code = E.VALIDATION_INVALID
    status = 400


class NotFoundError(ProjectHubError):
    """Missing or inactive resource.

    The id goes into the log message only; clients see "<resource> not found".
    """

    code = E.NOT_FOUND
    status = 404

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        suffix = f" id={resource_id}" if resource_id is not None else ""
        super().__init__(f"{resource}{suffix} not found")

    @property
    def public_message(self) -> str:
        return f"{self.resource} not found"
