"""Errors raised by the lifecycle engine and its collaborators.

Every error carries a stable ``code`` so a transport layer can map it to a
response without inspecting the message.
"""

from __future__ import annotations

from pydantic import ValidationError

from homeserve.persistence.errors import NotFoundError


class LifecycleError(RuntimeError):
    """Raised when a lifecycle operation fails validation."""

    code = "lifecycle_error"


class RequestValidationError(LifecycleError):
    """A required field is missing or malformed."""

    code = "validation_error"


class RequestNotFoundError(LifecycleError, NotFoundError):
    """The referenced request or actor does not exist."""

    code = "not_found"


class ForbiddenError(LifecycleError):
    """The caller is not the actor authorized for this operation."""

    code = "forbidden"


class InvalidAssignmentError(LifecycleError):
    """The assignment target is not a professional or lacks the required skill."""

    code = "invalid_assignment"


class InvalidTransitionError(LifecycleError):
    """The requested status is not reachable from the current one."""

    code = "illegal_transition"


class ConflictError(LifecycleError):
    """A concurrent transition committed first."""

    code = "conflict"


def describe_validation_error(exc: ValidationError) -> str:
    """Flatten a pydantic error into ``field: message`` pairs."""

    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error["loc"]) or "value"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)
