"""Lifecycle engine handling service request state transitions."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import datetime
from types import MappingProxyType
from typing import Any
from uuid import uuid4

from pydantic import ValidationError

from homeserve.domain import (
    Actor,
    ActorId,
    Budget,
    Location,
    RequestEvent,
    RequestId,
    RequestLogEntry,
    RequestStatus,
    Role,
    ServiceRequest,
    SkillTag,
    Urgency,
)
from homeserve.persistence import ConcurrencyError, UnitOfWork
from homeserve.utils import utc_now

from .directory import IdentityDirectory
from .exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidAssignmentError,
    InvalidTransitionError,
    LifecycleError,
    RequestNotFoundError,
    RequestValidationError,
    describe_validation_error,
)

UnitOfWorkFactory = Callable[[], UnitOfWork]

logger = logging.getLogger(__name__)

S = RequestStatus
E = RequestEvent

TRANSITIONS: Mapping[tuple[RequestStatus, RequestEvent], RequestStatus] = MappingProxyType(
    {
        (S.PENDING, E.ASSIGN): S.PENDING,
        (S.PENDING, E.ACCEPT): S.ACCEPTED,
        (S.PENDING, E.DECLINE): S.CANCELLED,
        (S.ACCEPTED, E.START): S.IN_PROGRESS,
        (S.ACCEPTED, E.CANCEL): S.CANCELLED,
        (S.IN_PROGRESS, E.COMPLETE): S.COMPLETED,
    }
)

# Events only the assigned professional may fire.
PROFESSIONAL_EVENTS = frozenset({E.ACCEPT, E.DECLINE, E.START, E.CANCEL, E.COMPLETE})


def event_for_target(current: RequestStatus, target: RequestStatus) -> RequestEvent | None:
    """Return the professional event leading from ``current`` to ``target``, if any."""

    for (source, event), destination in TRANSITIONS.items():
        if source is current and destination is target and event in PROFESSIONAL_EVENTS:
            return event
    return None


class LifecycleEngine:
    """Validates and applies every service request transition.

    Each operation is a single read-validate-write against one request inside
    its own unit of work. Writes carry the version that was read; if another
    transition committed first the store refuses the write and the caller
    gets a ``ConflictError``.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        directory: IdentityDirectory | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._directory = directory or IdentityDirectory(uow_factory)

    async def create_request(
        self,
        caller: Actor,
        *,
        title: str,
        description: str,
        category: SkillTag | str,
        location: Location | Mapping[str, Any],
        urgency: Urgency | str | None = None,
        budget: Budget | Mapping[str, Any] | None = None,
        scheduled_date: datetime | str | None = None,
    ) -> ServiceRequest:
        if caller.role is not Role.CLIENT:
            raise self._rejected(
                ForbiddenError(f"Only clients may create requests (role={caller.role.value})"),
                caller=caller,
            )

        now = utc_now()
        try:
            request = ServiceRequest.model_validate(
                {
                    "id": RequestId(uuid4()),
                    "title": title,
                    "description": description,
                    "category": category,
                    "status": RequestStatus.PENDING,
                    "homeowner_id": caller.id,
                    "professional_id": None,
                    "location": location,
                    "urgency": urgency or Urgency.MEDIUM,
                    "budget": budget,
                    "scheduled_date": scheduled_date,
                    "created_at": now,
                    "updated_at": now,
                }
            )
        except ValidationError as exc:
            raise self._rejected(
                RequestValidationError(describe_validation_error(exc)), caller=caller
            ) from exc

        async with self._uow_factory() as uow:
            await uow.request_repository.add(request)
            await uow.log_repository.add(
                RequestLogEntry(
                    request_id=request.id,
                    actor_id=caller.id,
                    event=E.CREATE,
                    previous_status=None,
                    next_status=request.status,
                    created_at=now,
                )
            )
            await uow.commit()
        logger.info("Request %s created by %s (%s)", request.id, caller.id, request.category)
        return request

    async def assign_professional(
        self,
        caller: Actor,
        request_id: RequestId,
        professional_id: ActorId,
    ) -> ServiceRequest:
        """Route a pending request to a professional holding its category skill.

        The skill is checked only here; losing it later does not undo the
        assignment.
        """

        try:
            async with self._uow_factory() as uow:
                request = await self._load(uow, request_id)
                if caller.id != request.homeowner_id:
                    raise ForbiddenError(
                        f"Actor {caller.id} is not the homeowner of request {request_id}"
                    )
                if (request.status, E.ASSIGN) not in TRANSITIONS:
                    raise InvalidTransitionError(
                        f"Cannot assign request {request_id} in status {request.status.value}"
                    )

                role = await self._directory.role_of(professional_id)
                if role is not Role.PROFESSIONAL:
                    raise InvalidAssignmentError(
                        f"Actor {professional_id} is not a professional (role={role.value})"
                    )
                skills = await self._directory.skills_of(professional_id)
                if request.category not in skills:
                    raise InvalidAssignmentError(
                        f"Professional {professional_id} lacks skill {request.category.value}"
                    )

                now = utc_now()
                updated = request.with_changes(
                    professional_id=professional_id,
                    version=request.version + 1,
                    updated_at=now,
                )
                await self._write(
                    uow,
                    request,
                    updated,
                    caller=caller,
                    event=E.ASSIGN,
                    at=now,
                    attributes={"professional_id": str(professional_id)},
                )
        except ConcurrencyError as exc:
            raise self._rejected(
                ConflictError(str(exc)), caller=caller, request_id=request_id
            ) from exc
        except LifecycleError as exc:
            raise self._rejected(exc, caller=caller, request_id=request_id)

        logger.info(
            "Request %s assigned to %s by %s", request_id, professional_id, caller.id
        )
        return updated

    async def advance_status(
        self,
        caller: Actor,
        request_id: RequestId,
        target_status: RequestStatus | str,
    ) -> ServiceRequest:
        """Move a request to ``target_status`` if a table edge exists for the caller.

        The implied event is re-derived from the current stored status, so the
        same target can never be applied twice.
        """

        try:
            target = RequestStatus(target_status)
        except ValueError as exc:
            raise self._rejected(
                RequestValidationError(f"Invalid status: {target_status}"),
                caller=caller,
                request_id=request_id,
            ) from exc
        return await self._transition(caller, request_id, target=target)

    async def apply_event(
        self,
        caller: Actor,
        request_id: RequestId,
        event: RequestEvent | str,
    ) -> ServiceRequest:
        try:
            resolved = RequestEvent(event)
        except ValueError as exc:
            raise self._rejected(
                RequestValidationError(f"Invalid event: {event}"),
                caller=caller,
                request_id=request_id,
            ) from exc
        if resolved not in PROFESSIONAL_EVENTS:
            raise self._rejected(
                RequestValidationError(f"Event {resolved.value} is not a status advance"),
                caller=caller,
                request_id=request_id,
            )
        return await self._transition(caller, request_id, event=resolved)

    async def accept(self, caller: Actor, request_id: RequestId) -> ServiceRequest:
        return await self.apply_event(caller, request_id, E.ACCEPT)

    async def decline(self, caller: Actor, request_id: RequestId) -> ServiceRequest:
        return await self.apply_event(caller, request_id, E.DECLINE)

    async def start(self, caller: Actor, request_id: RequestId) -> ServiceRequest:
        return await self.apply_event(caller, request_id, E.START)

    async def complete(self, caller: Actor, request_id: RequestId) -> ServiceRequest:
        return await self.apply_event(caller, request_id, E.COMPLETE)

    async def cancel(self, caller: Actor, request_id: RequestId) -> ServiceRequest:
        return await self.apply_event(caller, request_id, E.CANCEL)

    async def get_request(self, caller: Actor, request_id: RequestId) -> ServiceRequest:
        """Return a request visible to its homeowner or assigned professional."""

        try:
            async with self._uow_factory() as uow:
                request = await self._load(uow, request_id)
        except LifecycleError as exc:
            raise self._rejected(exc, caller=caller, request_id=request_id)
        if not request.is_party(caller.id):
            raise self._rejected(
                ForbiddenError(f"Actor {caller.id} may not view request {request_id}"),
                caller=caller,
                request_id=request_id,
            )
        return request

    async def history(self, caller: Actor, request_id: RequestId) -> list[RequestLogEntry]:
        """Return the committed transitions of a request, oldest first."""

        await self.get_request(caller, request_id)
        async with self._uow_factory() as uow:
            return list(await uow.log_repository.list_for_request(request_id))

    async def _transition(
        self,
        caller: Actor,
        request_id: RequestId,
        *,
        event: RequestEvent | None = None,
        target: RequestStatus | None = None,
    ) -> ServiceRequest:
        try:
            async with self._uow_factory() as uow:
                request = await self._load(uow, request_id)
                if request.professional_id is None or caller.id != request.professional_id:
                    raise ForbiddenError(
                        f"Actor {caller.id} is not the professional assigned to {request_id}"
                    )

                if event is None:
                    event = event_for_target(request.status, target) if target else None
                    if event is None:
                        raise InvalidTransitionError(
                            f"Cannot move request {request_id} from "
                            f"{request.status.value} to {target}"
                        )
                next_status = TRANSITIONS.get((request.status, event))
                if next_status is None:
                    raise InvalidTransitionError(
                        f"Cannot {event.value} request {request_id} "
                        f"in status {request.status.value}"
                    )

                now = utc_now()
                changes: dict[str, Any] = {
                    "status": next_status,
                    "version": request.version + 1,
                    "updated_at": now,
                }
                if next_status is RequestStatus.COMPLETED:
                    changes["completed_date"] = now
                updated = request.with_changes(**changes)
                await self._write(uow, request, updated, caller=caller, event=event, at=now)
        except ConcurrencyError as exc:
            raise self._rejected(
                ConflictError(str(exc)), caller=caller, request_id=request_id
            ) from exc
        except LifecycleError as exc:
            raise self._rejected(exc, caller=caller, request_id=request_id)

        logger.info(
            "Request %s %s -> %s (%s by %s)",
            request_id,
            request.status.value,
            updated.status.value,
            event.value,
            caller.id,
        )
        return updated

    async def _load(self, uow: UnitOfWork, request_id: RequestId) -> ServiceRequest:
        request = await uow.request_repository.get(request_id)
        if request is None:
            raise RequestNotFoundError(f"Request {request_id} not found")
        return request

    async def _write(
        self,
        uow: UnitOfWork,
        previous: ServiceRequest,
        updated: ServiceRequest,
        *,
        caller: Actor,
        event: RequestEvent,
        at: datetime,
        attributes: Mapping[str, str] | None = None,
    ) -> None:
        await uow.request_repository.update(updated, expected_version=previous.version)
        await uow.log_repository.add(
            RequestLogEntry(
                request_id=updated.id,
                actor_id=caller.id,
                event=event,
                previous_status=previous.status,
                next_status=updated.status,
                created_at=at,
                attributes=dict(attributes or {}),
            )
        )
        await uow.commit()

    @staticmethod
    def _rejected(
        exc: LifecycleError,
        *,
        caller: Actor,
        request_id: RequestId | None = None,
    ) -> LifecycleError:
        logger.warning(
            "Rejected %s for actor %s on request %s: %s",
            exc.code,
            caller.id,
            request_id if request_id is not None else "-",
            exc,
        )
        return exc


__all__ = [
    "PROFESSIONAL_EVENTS",
    "TRANSITIONS",
    "LifecycleEngine",
    "UnitOfWorkFactory",
    "event_for_target",
]
