"""Shared type aliases for the domain layer."""

from __future__ import annotations

from typing import NewType
from uuid import UUID

ActorId = NewType("ActorId", UUID)
RequestId = NewType("RequestId", UUID)

__all__ = [
    "ActorId",
    "RequestId",
]
