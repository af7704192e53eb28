"""Domain models and enumerations."""

from .actor import Actor, normalize_skills
from .base import DomainModel
from .enums import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    RequestEvent,
    RequestStatus,
    Role,
    SkillTag,
    Urgency,
)
from .request import Budget, Location, RequestLogEntry, ServiceRequest
from .types import ActorId, RequestId

__all__ = [
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
    "Actor",
    "ActorId",
    "Budget",
    "DomainModel",
    "Location",
    "RequestEvent",
    "RequestId",
    "RequestLogEntry",
    "RequestStatus",
    "Role",
    "ServiceRequest",
    "SkillTag",
    "Urgency",
    "normalize_skills",
]
