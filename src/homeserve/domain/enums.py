"""Enumerations used across the homeserve domain layer.

Values are part of the wire contract with callers and must not change.
"""

from __future__ import annotations

from enum import StrEnum


class SkillTag(StrEnum):
    """Trades a professional can offer; also the category of a request."""

    PLUMBING = "plumbing"
    ELECTRICAL = "electrical"
    CARPENTRY = "carpentry"
    PAINTING = "painting"
    CLEANING = "cleaning"


class Role(StrEnum):
    """Role of an authenticated actor."""

    CLIENT = "client"
    PROFESSIONAL = "professional"
    ADMIN = "admin"


class RequestStatus(StrEnum):
    """State machine for service requests."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({RequestStatus.COMPLETED, RequestStatus.CANCELLED})
ACTIVE_STATUSES = frozenset(
    {RequestStatus.PENDING, RequestStatus.ACCEPTED, RequestStatus.IN_PROGRESS}
)


class Urgency(StrEnum):
    """Informational urgency attached to a request."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EMERGENCY = "emergency"


class RequestEvent(StrEnum):
    """Named events driving request transitions."""

    CREATE = "create"
    ASSIGN = "assign"
    ACCEPT = "accept"
    DECLINE = "decline"
    START = "start"
    COMPLETE = "complete"
    CANCEL = "cancel"
