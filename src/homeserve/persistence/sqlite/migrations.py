"""Versioned schema migrations for the homeserve SQLite store."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from .models import Base

Migration = Callable[[AsyncConnection], Awaitable[None]]

_VERSION_TABLE = "homeserve_schema_migrations"


async def _create_tables(conn: AsyncConnection) -> None:
    await conn.run_sync(Base.metadata.create_all)


async def _index_log_timestamps(conn: AsyncConnection) -> None:
    await conn.execute(
        text(
            "CREATE INDEX IF NOT EXISTS ix_request_logs_request_created "
            "ON request_logs (request_id, created_at)"
        )
    )


MIGRATIONS: Sequence[tuple[int, Migration]] = (
    (1, _create_tables),
    (2, _index_log_timestamps),
)


async def apply_migrations(engine: AsyncEngine) -> int:
    """Run every migration newer than the recorded schema version.

    Returns the schema version after the run.
    """

    async with engine.begin() as conn:
        await conn.execute(
            text(f"CREATE TABLE IF NOT EXISTS {_VERSION_TABLE} (version INTEGER PRIMARY KEY)")
        )
        result = await conn.execute(text(f"SELECT MAX(version) FROM {_VERSION_TABLE}"))
        current = result.scalar() or 0
        for version, migration in MIGRATIONS:
            if version <= current:
                continue
            await migration(conn)
            await conn.execute(
                text(f"INSERT INTO {_VERSION_TABLE} (version) VALUES (:version)"),
                {"version": version},
            )
            current = version
    return current


__all__ = ["MIGRATIONS", "apply_migrations"]
