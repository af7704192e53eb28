"""Persistence layer exports."""

from .errors import ConcurrencyError, DuplicateEntityError, NotFoundError, RepositoryError
from .interfaces import (
    ActorRepository,
    RequestLogRepository,
    ServiceRequestRepository,
    UnitOfWork,
)
from .memory import InMemoryStore, InMemoryUnitOfWork, create_in_memory_unit_of_work_factory

__all__ = [
    "ActorRepository",
    "ConcurrencyError",
    "DuplicateEntityError",
    "InMemoryStore",
    "InMemoryUnitOfWork",
    "NotFoundError",
    "RepositoryError",
    "RequestLogRepository",
    "ServiceRequestRepository",
    "UnitOfWork",
    "create_in_memory_unit_of_work_factory",
]
