"""Service request domain models."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Annotated, Any

from pydantic import AliasChoices, Field, StringConstraints, field_validator, model_validator

from homeserve.utils.time import parse_utc, utc_now

from .base import DomainModel
from .enums import RequestEvent, RequestStatus, SkillTag, Urgency
from .types import ActorId, RequestId

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

# Statuses that imply a professional has taken on the work.
_WORKING_STATUSES = frozenset(
    {RequestStatus.ACCEPTED, RequestStatus.IN_PROGRESS, RequestStatus.COMPLETED}
)


class Location(DomainModel):
    """Where the work takes place. Every part is required."""

    address: NonEmptyStr
    city: NonEmptyStr
    state: NonEmptyStr
    zip_code: NonEmptyStr = Field(validation_alias=AliasChoices("zip_code", "zipCode"))


class Budget(DomainModel):
    """Optional price bounds offered by the homeowner."""

    min: Annotated[float | None, Field(ge=0.0)] = None
    max: Annotated[float | None, Field(ge=0.0)] = None

    @model_validator(mode="after")
    def check_bounds(self) -> Budget:
        if self.min is not None and self.max is not None and self.min > self.max:
            msg = f"Budget minimum {self.min} exceeds maximum {self.max}"
            raise ValueError(msg)
        return self


class ServiceRequest(DomainModel):
    """A homeowner's request for work, tracked through its lifecycle."""

    id: RequestId
    title: NonEmptyStr
    description: NonEmptyStr
    category: SkillTag
    status: RequestStatus = RequestStatus.PENDING
    homeowner_id: ActorId
    professional_id: ActorId | None = None
    location: Location
    urgency: Urgency = Urgency.MEDIUM
    budget: Budget | None = None
    scheduled_date: datetime | None = None
    completed_date: datetime | None = None
    version: Annotated[int, Field(ge=1)] = 1
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator(
        "scheduled_date", "completed_date", "created_at", "updated_at", mode="before"
    )
    @classmethod
    def ensure_timezone(cls, value: datetime | str | None) -> datetime | None:
        return parse_utc(value)

    @model_validator(mode="after")
    def check_lifecycle_invariants(self) -> ServiceRequest:
        if (self.completed_date is not None) != (self.status is RequestStatus.COMPLETED):
            msg = "completed_date must be set exactly when status is completed"
            raise ValueError(msg)
        if self.status in _WORKING_STATUSES and self.professional_id is None:
            msg = f"Status {self.status.value} requires an assigned professional"
            raise ValueError(msg)
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def is_party(self, actor_id: ActorId) -> bool:
        """Return True when the actor is the homeowner or the assigned professional."""

        return actor_id == self.homeowner_id or (
            self.professional_id is not None and actor_id == self.professional_id
        )

    def with_changes(self, **changes: Any) -> ServiceRequest:
        """Return a re-validated copy with ``changes`` applied."""

        return type(self).model_validate({**self.model_dump(), **changes})


class RequestLogEntry(DomainModel):
    """Audit log entry for a committed request transition."""

    request_id: RequestId
    actor_id: ActorId
    event: RequestEvent
    previous_status: RequestStatus | None = None
    next_status: RequestStatus
    created_at: datetime = Field(default_factory=utc_now)
    attributes: Mapping[str, str] = Field(default_factory=dict)

    @field_validator("created_at", mode="before")
    @classmethod
    def ensure_timezone(cls, value: datetime | str) -> datetime | None:
        return parse_utc(value)


__all__ = ["Budget", "Location", "RequestLogEntry", "ServiceRequest"]
