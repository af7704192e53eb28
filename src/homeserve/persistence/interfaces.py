"""Persistence layer abstractions for repositories and unit of work."""

from __future__ import annotations

from collections.abc import Collection, Sequence
from types import TracebackType
from typing import Protocol

from homeserve.domain import (
    Actor,
    ActorId,
    RequestId,
    RequestLogEntry,
    RequestStatus,
    ServiceRequest,
    SkillTag,
)


class ActorRepository(Protocol):
    """Identity directory storage."""

    async def get(self, actor_id: ActorId) -> Actor | None: ...

    async def find_by_email(self, email: str) -> Actor | None: ...

    async def add(self, actor: Actor) -> None: ...

    async def update(self, actor: Actor) -> None: ...

    async def list_professionals(self, skill: SkillTag | None = None) -> Sequence[Actor]: ...


class ServiceRequestRepository(Protocol):
    """Lifecycle storage for service requests."""

    async def get(self, request_id: RequestId) -> ServiceRequest | None: ...

    async def add(self, request: ServiceRequest) -> None: ...

    async def update(self, request: ServiceRequest, *, expected_version: int) -> None:
        """Replace the stored request if its version still equals ``expected_version``.

        Raises ``ConcurrencyError`` (at write or commit time) otherwise.
        """
        ...

    async def list_for_homeowner(self, homeowner_id: ActorId) -> Sequence[ServiceRequest]: ...

    async def list_for_professional(
        self,
        professional_id: ActorId,
        statuses: Collection[RequestStatus],
    ) -> Sequence[ServiceRequest]: ...


class RequestLogRepository(Protocol):
    """Storage for request transition log entries."""

    async def add(self, entry: RequestLogEntry) -> None: ...

    async def list_for_request(self, request_id: RequestId) -> Sequence[RequestLogEntry]: ...


class UnitOfWork(Protocol):
    """Transactional boundary for repository operations."""

    actor_repository: ActorRepository
    request_repository: ServiceRequestRepository
    log_repository: RequestLogRepository

    async def __aenter__(self) -> UnitOfWork: ...

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...
