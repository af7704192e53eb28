"""Service container wiring application components."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from homeserve.config import AppSettings
from homeserve.orchestration import IdentityDirectory, LifecycleEngine, RequestViews
from homeserve.persistence import UnitOfWork, create_in_memory_unit_of_work_factory
from homeserve.persistence.sqlite import create_sqlite_unit_of_work_factory

UnitOfWorkFactory = Callable[[], UnitOfWork]


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ServiceContainer:
    """Aggregates services sharing one unit-of-work factory."""

    settings: AppSettings
    unit_of_work_factory: UnitOfWorkFactory
    directory: IdentityDirectory
    lifecycle_engine: LifecycleEngine
    views: RequestViews


def _ensure_sqlite_directory(database_url: str) -> None:
    if not database_url.startswith("sqlite"):
        return
    try:
        _, path = database_url.split(":///", maxsplit=1)
    except ValueError:
        return
    if not path or path == ":memory:":
        return
    db_path = Path(path).expanduser()
    db_path.parent.mkdir(parents=True, exist_ok=True)


def build_container(settings: AppSettings | None = None) -> ServiceContainer:
    """Construct the primary service container."""

    resolved_settings = settings or AppSettings.from_env()

    unit_of_work_factory: UnitOfWorkFactory
    if resolved_settings.uses_memory_store:
        logger.info("Using in-memory request store")
        unit_of_work_factory = create_in_memory_unit_of_work_factory()
    else:
        _ensure_sqlite_directory(resolved_settings.database_url)
        unit_of_work_factory = create_sqlite_unit_of_work_factory(resolved_settings.database_url)

    directory = IdentityDirectory(unit_of_work_factory)
    lifecycle_engine = LifecycleEngine(unit_of_work_factory, directory)
    views = RequestViews(unit_of_work_factory)

    return ServiceContainer(
        settings=resolved_settings,
        unit_of_work_factory=unit_of_work_factory,
        directory=directory,
        lifecycle_engine=lifecycle_engine,
        views=views,
    )


__all__ = ["ServiceContainer", "build_container"]
