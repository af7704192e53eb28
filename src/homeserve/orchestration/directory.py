"""Identity directory: actor registration, profile updates and skill lookups."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from uuid import uuid4

from pydantic import ValidationError

from homeserve.domain import Actor, ActorId, Role, SkillTag, normalize_skills
from homeserve.persistence import DuplicateEntityError, UnitOfWork
from homeserve.utils import utc_now

from .exceptions import (
    ForbiddenError,
    RequestNotFoundError,
    RequestValidationError,
    describe_validation_error,
)

UnitOfWorkFactory = Callable[[], UnitOfWork]

logger = logging.getLogger(__name__)


class IdentityDirectory:
    """Read/write access to actors.

    The lifecycle engine only consumes ``role_of`` and ``skills_of``; the
    remaining operations back the profile screens of the outer application.
    """

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def register(
        self,
        *,
        name: str,
        email: str,
        role: Role | str = Role.CLIENT,
        skills: Iterable[str] = (),
    ) -> Actor:
        try:
            actor = Actor(
                id=ActorId(uuid4()),
                name=name,
                email=email,
                role=role,
                skills=normalize_skills(skills),
            )
        except ValidationError as exc:
            raise RequestValidationError(describe_validation_error(exc)) from exc
        except ValueError as exc:
            raise RequestValidationError(str(exc)) from exc

        async with self._uow_factory() as uow:
            if await uow.actor_repository.find_by_email(actor.email) is not None:
                msg = f"Email {actor.email} is already registered"
                raise RequestValidationError(msg)
            try:
                await uow.actor_repository.add(actor)
                await uow.commit()
            except DuplicateEntityError as exc:
                raise RequestValidationError(str(exc)) from exc
        logger.info("Registered %s %s", actor.role.value, actor.id)
        return actor

    async def get(self, actor_id: ActorId) -> Actor:
        async with self._uow_factory() as uow:
            actor = await uow.actor_repository.get(actor_id)
        if actor is None:
            msg = f"Actor {actor_id} not found"
            raise RequestNotFoundError(msg)
        return actor

    async def role_of(self, actor_id: ActorId) -> Role:
        return (await self.get(actor_id)).role

    async def skills_of(self, actor_id: ActorId) -> frozenset[SkillTag]:
        return (await self.get(actor_id)).skills

    async def list_professionals(self, skill: SkillTag | str | None = None) -> list[Actor]:
        tag: SkillTag | None = None
        if skill is not None:
            try:
                tag = SkillTag(skill)
            except ValueError as exc:
                msg = f"Invalid skill: {skill}"
                raise RequestValidationError(msg) from exc
        async with self._uow_factory() as uow:
            return list(await uow.actor_repository.list_professionals(tag))

    async def update_profile(
        self,
        caller: Actor,
        actor_id: ActorId,
        *,
        name: str | None = None,
        role: Role | str | None = None,
        skills: Iterable[str] | None = None,
    ) -> Actor:
        """Update the caller's own profile.

        Professionals must end up with at least one valid skill; any other
        role has its skills cleared.
        """

        if caller.id != actor_id:
            msg = f"Actor {caller.id} may not modify profile {actor_id}"
            raise ForbiddenError(msg)

        async with self._uow_factory() as uow:
            current = await uow.actor_repository.get(actor_id)
            if current is None:
                msg = f"Actor {actor_id} not found"
                raise RequestNotFoundError(msg)

            changes: dict[str, object] = {"updated_at": utc_now()}
            if name is not None and name.strip():
                changes["name"] = name.strip()
            next_role = current.role
            if role is not None:
                try:
                    next_role = Role(role)
                except ValueError as exc:
                    msg = f"Invalid role: {role}"
                    raise RequestValidationError(msg) from exc
                changes["role"] = next_role

            if next_role is Role.PROFESSIONAL:
                requested = list(skills) if skills is not None else list(current.skills)
                if not requested:
                    msg = "Professionals must select at least one skill"
                    raise RequestValidationError(msg)
                try:
                    changes["skills"] = normalize_skills(requested)
                except ValueError as exc:
                    raise RequestValidationError(str(exc)) from exc
            else:
                changes["skills"] = frozenset()

            try:
                updated = Actor.model_validate({**current.model_dump(), **changes})
            except ValidationError as exc:
                raise RequestValidationError(describe_validation_error(exc)) from exc
            await uow.actor_repository.update(updated)
            await uow.commit()
        logger.info("Updated profile for %s", actor_id)
        return updated


__all__ = ["IdentityDirectory", "UnitOfWorkFactory"]
