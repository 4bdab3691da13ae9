"""
Post action request variants.

The JSON body of an action request is validated here, at the boundary, into
one of the action classes below. The workflow never branches on raw strings.
"""
from dataclasses import dataclass

from .exceptions import WorkflowValidationError


@dataclass(frozen=True)
class Submit:
    name = "submit"


@dataclass(frozen=True)
class Approve:
    name = "approve"


@dataclass(frozen=True)
class Reject:
    reason: str
    name = "reject"


@dataclass(frozen=True)
class Like:
    name = "like"


@dataclass(frozen=True)
class Unlike:
    name = "unlike"


@dataclass(frozen=True)
class Feature:
    name = "feature"


@dataclass(frozen=True)
class ToggleComments:
    name = "toggle_comments"


ACTIONS = {
    cls.name: cls
    for cls in (Submit, Approve, Reject, Like, Unlike, Feature, ToggleComments)
}


def parse_action(data):
    """
    Turn an ``{action, reason?}`` mapping into an action instance.

    Raises WorkflowValidationError for a missing or unknown action and for a
    rejection without a reason.
    """
    if not isinstance(data, dict):
        raise WorkflowValidationError("Invalid request body")

    name = data.get("action")
    if not name:
        raise WorkflowValidationError("Action is required")

    cls = ACTIONS.get(name)
    if cls is None:
        raise WorkflowValidationError("Invalid action")

    if cls is Reject:
        reason = data.get("reason")
        if not isinstance(reason, str) or not reason.strip():
            raise WorkflowValidationError("Rejection reason is required")
        return Reject(reason=reason.strip())

    return cls()
