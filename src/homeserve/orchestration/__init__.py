"""Orchestration layer exports."""

from .directory import IdentityDirectory
from .exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidAssignmentError,
    InvalidTransitionError,
    LifecycleError,
    RequestNotFoundError,
    RequestValidationError,
)
from .lifecycle import PROFESSIONAL_EVENTS, TRANSITIONS, LifecycleEngine, event_for_target
from .views import RequestViews

__all__ = [
    "PROFESSIONAL_EVENTS",
    "TRANSITIONS",
    "ConflictError",
    "ForbiddenError",
    "IdentityDirectory",
    "InvalidAssignmentError",
    "InvalidTransitionError",
    "LifecycleEngine",
    "LifecycleError",
    "RequestNotFoundError",
    "RequestValidationError",
    "RequestViews",
    "event_for_target",
]
