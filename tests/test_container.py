from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from homeserve.config import AppSettings
from homeserve.container import build_container
from homeserve.persistence import InMemoryUnitOfWork


def test_build_container_with_sqlite(tmp_path: Path) -> None:
    db_url = f"sqlite+aiosqlite:///{tmp_path/'nested'/'container.db'}"
    settings = AppSettings(environment="test", database_url=db_url)

    container = build_container(settings)

    assert (tmp_path / "nested").exists()
    assert container.settings.environment == "test"

    async def _round_trip() -> int:
        actor = await container.directory.register(name="Cara", email="cara@example.com")
        return len(await container.views.list_mine(actor))

    assert asyncio.run(_round_trip()) == 0


def test_build_container_with_memory_store() -> None:
    container = build_container(AppSettings(environment="test", store="memory"))

    assert isinstance(container.unit_of_work_factory(), InMemoryUnitOfWork)


def test_settings_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HOMESERVE_ENV", "staging")
    monkeypatch.setenv("HOMESERVE_LOG_LEVEL", "debug")
    monkeypatch.setenv("HOMESERVE_STORE", " Memory ")
    monkeypatch.delenv("HOMESERVE_DATABASE_URL", raising=False)

    settings = AppSettings.from_env()

    assert settings.environment == "staging"
    assert settings.log_level == "DEBUG"
    assert settings.uses_memory_store
    assert settings.database_url == AppSettings.database_url
