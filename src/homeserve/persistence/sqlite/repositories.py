"""SQLite repository implementations."""

from __future__ import annotations

from collections.abc import Collection, Sequence

from sqlalchemy import Select, select, update
from sqlalchemy.ext.asyncio import AsyncSession

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
)

from .models import ActorRecord, RequestLogRecord, ServiceRequestRecord


class SQLiteActorRepository(ActorRepository):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, actor_id: ActorId) -> Actor | None:
        record = await self._session.get(ActorRecord, str(actor_id))
        if record is None:
            return None
        return Actor.model_validate(record.payload)

    async def find_by_email(self, email: str) -> Actor | None:
        stmt = select(ActorRecord).where(ActorRecord.email == email.strip().lower())
        result = await self._session.execute(stmt)
        record = result.scalars().first()
        return Actor.model_validate(record.payload) if record else None

    async def add(self, actor: Actor) -> None:
        if await self._session.get(ActorRecord, str(actor.id)) is not None:
            raise DuplicateEntityError(f"Actor {actor.id} already exists")
        record = ActorRecord(
            id=str(actor.id),
            email=actor.email,
            role=actor.role.value,
            payload=actor.model_dump(mode="json"),
        )
        self._session.add(record)

    async def update(self, actor: Actor) -> None:
        record = await self._session.get(ActorRecord, str(actor.id))
        if record is None:
            raise NotFoundError(f"Actor {actor.id} not found")
        record.email = actor.email
        record.role = actor.role.value
        record.payload = actor.model_dump(mode="json")

    async def list_professionals(self, skill: SkillTag | None = None) -> Sequence[Actor]:
        stmt: Select[tuple[ActorRecord]] = select(ActorRecord).where(
            ActorRecord.role == Role.PROFESSIONAL.value
        )
        result = await self._session.execute(stmt)
        actors = [Actor.model_validate(r.payload) for r in result.scalars().all()]
        if skill is not None:
            actors = [actor for actor in actors if skill in actor.skills]
        return sorted(actors, key=lambda actor: (actor.name.lower(), str(actor.id)))


class SQLiteServiceRequestRepository(ServiceRequestRepository):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, request_id: RequestId) -> ServiceRequest | None:
        record = await self._session.get(ServiceRequestRecord, str(request_id))
        if record is None:
            return None
        return ServiceRequest.model_validate(record.payload)

    async def add(self, request: ServiceRequest) -> None:
        if await self._session.get(ServiceRequestRecord, str(request.id)) is not None:
            raise DuplicateEntityError(f"Request {request.id} already exists")
        record = ServiceRequestRecord(
            id=str(request.id),
            homeowner_id=str(request.homeowner_id),
            professional_id=_optional_str(request.professional_id),
            category=request.category.value,
            status=request.status.value,
            version=request.version,
            created_at=request.created_at,
            updated_at=request.updated_at,
            payload=request.model_dump(mode="json"),
        )
        self._session.add(record)

    async def update(self, request: ServiceRequest, *, expected_version: int) -> None:
        # Flush pending inserts so a request created in this session is visible.
        await self._session.flush()
        stmt = (
            update(ServiceRequestRecord)
            .where(
                ServiceRequestRecord.id == str(request.id),
                ServiceRequestRecord.version == expected_version,
            )
            .values(
                professional_id=_optional_str(request.professional_id),
                status=request.status.value,
                version=request.version,
                updated_at=request.updated_at,
                payload=request.model_dump(mode="json"),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 1:
            # Loaded instances still hold the old columns.
            self._session.expire_all()
            return
        exists = await self._session.execute(
            select(ServiceRequestRecord.version).where(ServiceRequestRecord.id == str(request.id))
        )
        current = exists.scalar()
        if current is None:
            raise NotFoundError(f"Request {request.id} not found")
        raise ConcurrencyError(
            f"Request {request.id} is at version {current}, expected {expected_version}"
        )

    async def list_for_homeowner(self, homeowner_id: ActorId) -> Sequence[ServiceRequest]:
        stmt = (
            select(ServiceRequestRecord)
            .where(ServiceRequestRecord.homeowner_id == str(homeowner_id))
            .order_by(ServiceRequestRecord.created_at.desc(), ServiceRequestRecord.id.desc())
        )
        result = await self._session.execute(stmt)
        return [ServiceRequest.model_validate(r.payload) for r in result.scalars().all()]

    async def list_for_professional(
        self,
        professional_id: ActorId,
        statuses: Collection[RequestStatus],
    ) -> Sequence[ServiceRequest]:
        stmt = (
            select(ServiceRequestRecord)
            .where(
                ServiceRequestRecord.professional_id == str(professional_id),
                ServiceRequestRecord.status.in_([status.value for status in statuses]),
            )
            .order_by(ServiceRequestRecord.created_at.desc(), ServiceRequestRecord.id.desc())
        )
        result = await self._session.execute(stmt)
        return [ServiceRequest.model_validate(r.payload) for r in result.scalars().all()]


class SQLiteRequestLogRepository(RequestLogRepository):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, entry: RequestLogEntry) -> None:
        record = RequestLogRecord(
            request_id=str(entry.request_id),
            actor_id=str(entry.actor_id),
            event=entry.event.value,
            previous_status=entry.previous_status.value if entry.previous_status else None,
            next_status=entry.next_status.value,
            created_at=entry.created_at,
            attributes=dict(entry.attributes),
        )
        self._session.add(record)

    async def list_for_request(self, request_id: RequestId) -> Sequence[RequestLogEntry]:
        stmt = (
            select(RequestLogRecord)
            .where(RequestLogRecord.request_id == str(request_id))
            .order_by(RequestLogRecord.id)
        )
        result = await self._session.execute(stmt)
        return [
            RequestLogEntry.model_validate(
                {
                    "request_id": record.request_id,
                    "actor_id": record.actor_id,
                    "event": record.event,
                    "previous_status": record.previous_status,
                    "next_status": record.next_status,
                    "created_at": record.created_at,
                    "attributes": record.attributes,
                }
            )
            for record in result.scalars().all()
        ]


def _optional_str(value: object | None) -> str | None:
    return None if value is None else str(value)


__all__ = [
    "SQLiteActorRepository",
    "SQLiteRequestLogRepository",
    "SQLiteServiceRequestRepository",
]
