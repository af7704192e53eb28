from __future__ import annotations

import asyncio
import sys
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest

# Ensure the src/ directory is importable when tests run without an install.
sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from homeserve.domain import Actor, Role, ServiceRequest  # noqa: E402
from homeserve.orchestration import IdentityDirectory, LifecycleEngine, RequestViews  # noqa: E402
from homeserve.persistence import InMemoryStore, create_in_memory_unit_of_work_factory  # noqa: E402

LOCATION = {
    "address": "12 Elm Street",
    "city": "Springfield",
    "state": "IL",
    "zip_code": "62701",
}


@dataclass
class World:
    store: InMemoryStore | None
    uow_factory: Callable[[], Any]
    directory: IdentityDirectory
    engine: LifecycleEngine
    views: RequestViews
    homeowner: Actor
    other_client: Actor
    plumber: Actor
    electrician: Actor


def build_world(uow_factory: Callable[[], Any], store: InMemoryStore | None = None) -> World:
    directory = IdentityDirectory(uow_factory)

    async def _seed() -> tuple[Actor, Actor, Actor, Actor]:
        homeowner = await directory.register(name="Hana Owner", email="hana@example.com")
        other = await directory.register(name="Omar Other", email="omar@example.com")
        plumber = await directory.register(
            name="Pat Plumber",
            email="pat@example.com",
            role=Role.PROFESSIONAL,
            skills=["plumbing"],
        )
        electrician = await directory.register(
            name="Eli Sparks",
            email="eli@example.com",
            role=Role.PROFESSIONAL,
            skills=["electrical"],
        )
        return homeowner, other, plumber, electrician

    homeowner, other, plumber, electrician = asyncio.run(_seed())
    return World(
        store=store,
        uow_factory=uow_factory,
        directory=directory,
        engine=LifecycleEngine(uow_factory, directory),
        views=RequestViews(uow_factory),
        homeowner=homeowner,
        other_client=other,
        plumber=plumber,
        electrician=electrician,
    )


@pytest.fixture()
def world() -> World:
    store = InMemoryStore()
    return build_world(create_in_memory_unit_of_work_factory(store), store)


def create_plumbing_request(world: World, **overrides: Any) -> ServiceRequest:
    params: dict[str, Any] = {
        "title": "Leaking kitchen tap",
        "description": "The tap drips constantly",
        "category": "plumbing",
        "location": LOCATION,
    }
    params.update(overrides)
    return asyncio.run(world.engine.create_request(world.homeowner, **params))
