from __future__ import annotations

import asyncio
from pathlib import Path
from uuid import uuid4

import pytest
from conftest import LOCATION, build_world, create_plumbing_request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from homeserve.domain import (
    Actor,
    ActorId,
    RequestEvent,
    RequestId,
    RequestLogEntry,
    RequestStatus,
    ServiceRequest,
    SkillTag,
)
from homeserve.orchestration import (
    ConflictError,
    IdentityDirectory,
    InvalidAssignmentError,
    InvalidTransitionError,
    RequestValidationError,
)
from homeserve.persistence import ConcurrencyError, DuplicateEntityError, NotFoundError
from homeserve.persistence.sqlite import create_sqlite_unit_of_work_factory
from homeserve.persistence.sqlite.migrations import apply_migrations


def _db_url(tmp_path: Path) -> str:
    db_file = tmp_path / "homeserve.db"
    return f"sqlite+aiosqlite:///{db_file}"


def test_sqlite_request_round_trip(tmp_path: Path) -> None:
    factory = create_sqlite_unit_of_work_factory(_db_url(tmp_path))
    homeowner = ActorId(uuid4())
    request = ServiceRequest(
        id=RequestId(uuid4()),
        title="Rewire the garage",
        description="Two new outlets",
        category=SkillTag.ELECTRICAL,
        homeowner_id=homeowner,
        location=LOCATION,
        budget={"min": 100, "max": 400},
        scheduled_date="2026-12-01T08:30:00Z",
    )

    async def _store() -> None:
        async with factory() as uow:
            await uow.request_repository.add(request)
            await uow.log_repository.add(
                RequestLogEntry(
                    request_id=request.id,
                    actor_id=homeowner,
                    event=RequestEvent.CREATE,
                    next_status=RequestStatus.PENDING,
                    attributes={"note": "initial"},
                )
            )
            await uow.commit()

    asyncio.run(_store())

    async def _load() -> tuple[ServiceRequest | None, list[RequestLogEntry], int]:
        async with factory() as uow:
            loaded = await uow.request_repository.get(request.id)
            logs = await uow.log_repository.list_for_request(request.id)
            mine = await uow.request_repository.list_for_homeowner(homeowner)
            return loaded, list(logs), len(mine)

    loaded, logs, mine_count = asyncio.run(_load())
    assert loaded is not None
    assert loaded.model_dump() == request.model_dump()
    assert mine_count == 1
    assert logs[0].event is RequestEvent.CREATE
    assert logs[0].attributes == {"note": "initial"}


def test_sqlite_version_check(tmp_path: Path) -> None:
    factory = create_sqlite_unit_of_work_factory(_db_url(tmp_path))
    request = ServiceRequest(
        id=RequestId(uuid4()),
        title="Deep clean",
        description="Whole flat",
        category=SkillTag.CLEANING,
        homeowner_id=ActorId(uuid4()),
        location=LOCATION,
    )

    async def _scenario() -> ServiceRequest | None:
        async with factory() as uow:
            await uow.request_repository.add(request)
            await uow.commit()

        cancelled = request.with_changes(status=RequestStatus.CANCELLED, version=2)
        async with factory() as uow:
            await uow.request_repository.update(cancelled, expected_version=1)
            await uow.commit()

        with pytest.raises(ConcurrencyError):
            async with factory() as uow:
                await uow.request_repository.update(
                    request.with_changes(title="Stale edit", version=2), expected_version=1
                )

        ghost = request.with_changes(id=RequestId(uuid4()), version=2)
        with pytest.raises(NotFoundError):
            async with factory() as uow:
                await uow.request_repository.update(ghost, expected_version=1)

        async with factory() as uow:
            return await uow.request_repository.get(request.id)

    stored = asyncio.run(_scenario())
    assert stored is not None
    assert stored.status is RequestStatus.CANCELLED
    assert stored.title == "Deep clean"
    assert stored.version == 2


def test_sqlite_engine_lifecycle(tmp_path: Path) -> None:
    world = build_world(create_sqlite_unit_of_work_factory(_db_url(tmp_path)))
    engine = world.engine

    request = create_plumbing_request(world)
    with pytest.raises(InvalidAssignmentError):
        asyncio.run(
            engine.assign_professional(world.homeowner, request.id, world.electrician.id)
        )
    asyncio.run(engine.assign_professional(world.homeowner, request.id, world.plumber.id))
    asyncio.run(engine.accept(world.plumber, request.id))
    incoming = asyncio.run(world.views.list_incoming(world.plumber))
    assert [req.id for req in incoming] == [request.id]

    asyncio.run(engine.start(world.plumber, request.id))
    done = asyncio.run(engine.complete(world.plumber, request.id))
    assert done.completed_date is not None

    with pytest.raises(InvalidTransitionError):
        asyncio.run(engine.decline(world.plumber, request.id))

    assert asyncio.run(world.views.list_incoming(world.plumber)) == []
    history = asyncio.run(engine.history(world.homeowner, request.id))
    assert [entry.next_status for entry in history] == [
        RequestStatus.PENDING,
        RequestStatus.PENDING,
        RequestStatus.ACCEPTED,
        RequestStatus.IN_PROGRESS,
        RequestStatus.COMPLETED,
    ]
    plumbers = asyncio.run(world.directory.list_professionals("plumbing"))
    assert [actor.id for actor in plumbers] == [world.plumber.id]


def test_sqlite_concurrent_accepts(tmp_path: Path) -> None:
    world = build_world(create_sqlite_unit_of_work_factory(_db_url(tmp_path)))
    request = create_plumbing_request(world)
    asyncio.run(
        world.engine.assign_professional(world.homeowner, request.id, world.plumber.id)
    )

    async def _race() -> list[ServiceRequest | BaseException]:
        return await asyncio.gather(
            world.engine.accept(world.plumber, request.id),
            world.engine.accept(world.plumber, request.id),
            return_exceptions=True,
        )

    results = asyncio.run(_race())

    successes = [r for r in results if isinstance(r, ServiceRequest)]
    failures = [r for r in results if isinstance(r, BaseException)]
    assert len(successes) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], (ConflictError, InvalidTransitionError))


def test_migrations_are_recorded_once(tmp_path: Path) -> None:
    engine = create_async_engine(_db_url(tmp_path), poolclass=NullPool)

    async def _migrate_twice() -> tuple[int, int, list[int]]:
        first = await apply_migrations(engine)
        second = await apply_migrations(engine)
        async with engine.connect() as conn:
            rows = await conn.execute(
                text("SELECT version FROM homeserve_schema_migrations ORDER BY version")
            )
            versions = [row[0] for row in rows]
        await engine.dispose()
        return first, second, versions

    first, second, versions = asyncio.run(_migrate_twice())
    assert first == second == 2
    assert versions == [1, 2]


def _actor(email: str) -> Actor:
    return Actor(id=ActorId(uuid4()), name="Dana Duplicate", email=email)


def test_sqlite_duplicate_email_fails_at_commit(tmp_path: Path) -> None:
    factory = create_sqlite_unit_of_work_factory(_db_url(tmp_path))

    async def _scenario() -> Actor | None:
        first = factory()
        second = factory()
        async with first, second:
            await first.actor_repository.add(_actor("dup@example.com"))
            await second.actor_repository.add(_actor("dup@example.com"))
            await first.commit()
            with pytest.raises(DuplicateEntityError):
                await second.commit()

        async with factory() as uow:
            return await uow.actor_repository.find_by_email("dup@example.com")

    stored = asyncio.run(_scenario())
    assert stored is not None


def test_sqlite_concurrent_registrations_share_one_email(tmp_path: Path) -> None:
    directory = IdentityDirectory(create_sqlite_unit_of_work_factory(_db_url(tmp_path)))

    async def _race() -> list[Actor | BaseException]:
        return await asyncio.gather(
            directory.register(name="Dana One", email="dup@example.com"),
            directory.register(name="Dana Two", email="DUP@example.com"),
            return_exceptions=True,
        )

    results = asyncio.run(_race())

    assert sum(isinstance(result, Actor) for result in results) == 1
    failures = [result for result in results if isinstance(result, BaseException)]
    assert len(failures) == 1
    assert isinstance(failures[0], RequestValidationError)
    assert failures[0].code == "validation_error"
