"""Lightweight application configuration loader."""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class AppSettings:
    """Immutable configuration sourced from environment variables."""

    environment: str = "development"
    database_url: str = "sqlite+aiosqlite:///homeserve.db"
    log_level: str = "INFO"
    store: str = "sqlite"

    @classmethod
    def from_env(cls) -> AppSettings:
        return cls(
            environment=os.getenv("HOMESERVE_ENV", cls.environment),
            database_url=os.getenv("HOMESERVE_DATABASE_URL", cls.database_url),
            log_level=os.getenv("HOMESERVE_LOG_LEVEL", cls.log_level).upper(),
            store=os.getenv("HOMESERVE_STORE", cls.store).strip().lower(),
        )

    @property
    def uses_memory_store(self) -> bool:
        return self.store == "memory"


__all__ = ["AppSettings"]
