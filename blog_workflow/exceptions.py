"""
Workflow errors. Each carries the HTTP status the JSON views answer with.
"""


class WorkflowError(Exception):
    status_code = 400
    default_message = "Request failed"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthenticationRequired(WorkflowError):
    status_code = 401
    default_message = "Authentication required"


class PermissionDenied(WorkflowError):
    status_code = 403
    default_message = "Unauthorized"


class NotFound(WorkflowError):
    status_code = 404
    default_message = "Not found"


class InvalidTransition(WorkflowError):
    """The post is not in a status the requested operation starts from."""


class WorkflowValidationError(WorkflowError):
    """A required input is missing or malformed."""


class TransitionConflict(WorkflowError):
    """The post changed between the status check and the write."""

    status_code = 409
    default_message = "Post was modified by another request, reload and retry"
