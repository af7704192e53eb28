"""In-memory repository implementations for unit testing and local runs.

Writes are staged on the unit of work and applied atomically on commit.
Request updates carry the version they were read at; commit refuses to
apply an update whose record moved on in the meantime.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from collections.abc import Callable, Collection, Sequence
from copy import deepcopy
from dataclasses import dataclass, field
from types import TracebackType
from typing import TypeVar

from homeserve.domain import (
    Actor,
    ActorId,
    RequestId,
    RequestLogEntry,
    RequestStatus,
    Role,
    ServiceRequest,
    SkillTag,
)
from homeserve.persistence.errors import ConcurrencyError, DuplicateEntityError, NotFoundError
from homeserve.persistence.interfaces import (
    ActorRepository,
    RequestLogRepository,
    ServiceRequestRepository,
    UnitOfWork,
)

T = TypeVar("T")


def _copy(value: T) -> T:
    return deepcopy(value)


def _newest_first(requests: list[ServiceRequest]) -> list[ServiceRequest]:
    return sorted(requests, key=lambda req: (req.created_at, str(req.id)), reverse=True)


@dataclass
class InMemoryStore:
    """Committed state shared by every unit of work created from one factory."""

    actors: dict[ActorId, Actor] = field(default_factory=dict)
    requests: dict[RequestId, ServiceRequest] = field(default_factory=dict)
    logs: dict[RequestId, list[RequestLogEntry]] = field(
        default_factory=lambda: defaultdict(list)
    )
    lock: threading.Lock = field(default_factory=threading.Lock)


@dataclass
class _PendingChanges:
    actors: dict[ActorId, Actor] = field(default_factory=dict)
    new_actor_ids: set[ActorId] = field(default_factory=set)
    new_requests: dict[RequestId, ServiceRequest] = field(default_factory=dict)
    request_updates: dict[RequestId, tuple[ServiceRequest, int]] = field(default_factory=dict)
    logs: list[RequestLogEntry] = field(default_factory=list)

    def clear(self) -> None:
        self.actors.clear()
        self.new_actor_ids.clear()
        self.new_requests.clear()
        self.request_updates.clear()
        self.logs.clear()

    def is_empty(self) -> bool:
        return not (self.actors or self.new_requests or self.request_updates or self.logs)


@dataclass
class InMemoryActorRepository(ActorRepository):
    _store: InMemoryStore
    _pending: _PendingChanges

    def _visible(self) -> dict[ActorId, Actor]:
        return {**self._store.actors, **self._pending.actors}

    async def get(self, actor_id: ActorId) -> Actor | None:
        return _copy(self._visible().get(actor_id))

    async def find_by_email(self, email: str) -> Actor | None:
        target = email.strip().lower()
        for actor in self._visible().values():
            if actor.email == target:
                return _copy(actor)
        return None

    async def add(self, actor: Actor) -> None:
        if actor.id in self._visible():
            msg = f"Actor {actor.id} already exists"
            raise DuplicateEntityError(msg)
        self._pending.actors[actor.id] = actor
        self._pending.new_actor_ids.add(actor.id)

    async def update(self, actor: Actor) -> None:
        if actor.id not in self._visible():
            msg = f"Actor {actor.id} not found"
            raise NotFoundError(msg)
        self._pending.actors[actor.id] = actor

    async def list_professionals(self, skill: SkillTag | None = None) -> Sequence[Actor]:
        professionals = [
            actor
            for actor in self._visible().values()
            if actor.role is Role.PROFESSIONAL and (skill is None or skill in actor.skills)
        ]
        ordered = sorted(professionals, key=lambda actor: (actor.name.lower(), str(actor.id)))
        return [_copy(actor) for actor in ordered]


@dataclass
class InMemoryServiceRequestRepository(ServiceRequestRepository):
    _store: InMemoryStore
    _pending: _PendingChanges

    def _visible(self) -> dict[RequestId, ServiceRequest]:
        visible = {**self._store.requests, **self._pending.new_requests}
        for request_id, (request, _) in self._pending.request_updates.items():
            visible[request_id] = request
        return visible

    async def get(self, request_id: RequestId) -> ServiceRequest | None:
        return _copy(self._visible().get(request_id))

    async def add(self, request: ServiceRequest) -> None:
        if request.id in self._visible():
            msg = f"Request {request.id} already exists"
            raise DuplicateEntityError(msg)
        self._pending.new_requests[request.id] = request

    async def update(self, request: ServiceRequest, *, expected_version: int) -> None:
        if request.id in self._pending.new_requests:
            self._pending.new_requests[request.id] = request
            return
        committed = self._store.requests.get(request.id)
        if committed is None:
            msg = f"Request {request.id} not found"
            raise NotFoundError(msg)
        staged = self._pending.request_updates.get(request.id)
        if staged is not None:
            # Keep the version this unit of work originally read.
            expected_version = staged[1]
        elif committed.version != expected_version:
            msg = (
                f"Request {request.id} is at version {committed.version}, "
                f"expected {expected_version}"
            )
            raise ConcurrencyError(msg)
        self._pending.request_updates[request.id] = (request, expected_version)

    async def list_for_homeowner(self, homeowner_id: ActorId) -> Sequence[ServiceRequest]:
        matches = [req for req in self._visible().values() if req.homeowner_id == homeowner_id]
        return [_copy(req) for req in _newest_first(matches)]

    async def list_for_professional(
        self,
        professional_id: ActorId,
        statuses: Collection[RequestStatus],
    ) -> Sequence[ServiceRequest]:
        matches = [
            req
            for req in self._visible().values()
            if req.professional_id == professional_id and req.status in statuses
        ]
        return [_copy(req) for req in _newest_first(matches)]


@dataclass
class InMemoryRequestLogRepository(RequestLogRepository):
    _store: InMemoryStore
    _pending: _PendingChanges

    async def add(self, entry: RequestLogEntry) -> None:
        self._pending.logs.append(entry)

    async def list_for_request(self, request_id: RequestId) -> Sequence[RequestLogEntry]:
        committed = list(self._store.logs.get(request_id, []))
        staged = [entry for entry in self._pending.logs if entry.request_id == request_id]
        return [_copy(entry) for entry in committed + staged]


class InMemoryUnitOfWork(UnitOfWork):
    """Unit of work staging writes against a shared ``InMemoryStore``."""

    def __init__(self, store: InMemoryStore | None = None) -> None:
        self.store = store or InMemoryStore()
        self._pending = _PendingChanges()
        self.actor_repository = InMemoryActorRepository(self.store, self._pending)
        self.request_repository = InMemoryServiceRequestRepository(self.store, self._pending)
        self.log_repository = InMemoryRequestLogRepository(self.store, self._pending)

    async def __aenter__(self) -> InMemoryUnitOfWork:
        self._pending.clear()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            await self.rollback()
        else:
            await self.commit()

    async def commit(self) -> None:
        if self._pending.is_empty():
            return
        pending = self._pending
        store = self.store
        try:
            with store.lock:
                for request_id in pending.new_requests:
                    if request_id in store.requests:
                        msg = f"Request {request_id} already exists"
                        raise DuplicateEntityError(msg)
                for actor_id in pending.new_actor_ids:
                    if actor_id in store.actors:
                        msg = f"Actor {actor_id} already exists"
                        raise DuplicateEntityError(msg)
                    email = pending.actors[actor_id].email
                    if any(actor.email == email for actor in store.actors.values()):
                        msg = f"Email {email} is already registered"
                        raise DuplicateEntityError(msg)
                for request_id, (_, expected_version) in pending.request_updates.items():
                    current = store.requests[request_id]
                    if current.version != expected_version:
                        msg = (
                            f"Request {request_id} is at version {current.version}, "
                            f"expected {expected_version}"
                        )
                        raise ConcurrencyError(msg)

                store.actors.update(pending.actors)
                store.requests.update(pending.new_requests)
                for request_id, (request, _) in pending.request_updates.items():
                    store.requests[request_id] = request
                for entry in pending.logs:
                    store.logs[entry.request_id].append(entry)
        finally:
            pending.clear()

    async def rollback(self) -> None:
        self._pending.clear()


def create_in_memory_unit_of_work_factory(
    store: InMemoryStore | None = None,
) -> Callable[[], InMemoryUnitOfWork]:
    """Return a factory whose units of work share one in-memory store."""

    shared = store or InMemoryStore()

    def factory() -> InMemoryUnitOfWork:
        return InMemoryUnitOfWork(shared)

    return factory


__all__ = [
    "InMemoryActorRepository",
    "InMemoryRequestLogRepository",
    "InMemoryServiceRequestRepository",
    "InMemoryStore",
    "InMemoryUnitOfWork",
    "create_in_memory_unit_of_work_factory",
]
