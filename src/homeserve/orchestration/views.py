"""Read-only projections over the request store."""

from __future__ import annotations

from collections.abc import Callable

from homeserve.domain import ACTIVE_STATUSES, Actor, ActorId, ServiceRequest
from homeserve.persistence import UnitOfWork

from .exceptions import ForbiddenError

UnitOfWorkFactory = Callable[[], UnitOfWork]


class RequestViews:
    """Client-scoped and professional-scoped request listings.

    Both are newest first and read committed state on every call.
    """

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def requests_for_client(self, client_id: ActorId) -> list[ServiceRequest]:
        async with self._uow_factory() as uow:
            return list(await uow.request_repository.list_for_homeowner(client_id))

    async def incoming_for_professional(self, professional_id: ActorId) -> list[ServiceRequest]:
        # Completed and cancelled requests are history, not work to act on.
        async with self._uow_factory() as uow:
            return list(
                await uow.request_repository.list_for_professional(
                    professional_id, ACTIVE_STATUSES
                )
            )

    async def list_mine(self, caller: Actor) -> list[ServiceRequest]:
        return await self.requests_for_client(caller.id)

    async def list_incoming(self, caller: Actor) -> list[ServiceRequest]:
        if not caller.is_professional:
            msg = "Only professionals can access incoming requests"
            raise ForbiddenError(msg)
        return await self.incoming_for_professional(caller.id)


__all__ = ["RequestViews"]
