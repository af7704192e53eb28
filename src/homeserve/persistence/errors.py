"""Errors raised by homeserve repositories and units of work."""

from __future__ import annotations


class RepositoryError(RuntimeError):
    """Base class for storage failures."""


class NotFoundError(RepositoryError):
    """The actor or request being written does not exist."""


class DuplicateEntityError(RepositoryError):
    """An actor or request with the same id (or actor email) is already stored."""


class ConcurrencyError(RepositoryError):
    """A request write was based on a version that is no longer current."""
