"""Actors known to the identity directory."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Annotated

from pydantic import Field, StringConstraints, field_validator, model_validator

from homeserve.utils.time import parse_utc, utc_now

from .base import DomainModel
from .enums import Role, SkillTag
from .types import ActorId

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class Actor(DomainModel):
    """Authenticated identity with a role and, for professionals, skill tags."""

    id: ActorId
    name: NonEmptyStr
    email: Annotated[str, StringConstraints(strip_whitespace=True, to_lower=True, min_length=3)]
    role: Role = Role.CLIENT
    skills: frozenset[SkillTag] = Field(default_factory=frozenset)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def ensure_timezone(cls, value: datetime | str) -> datetime | None:
        return parse_utc(value)

    @field_validator("email")
    @classmethod
    def ensure_email(cls, value: str) -> str:
        local, sep, domain = value.partition("@")
        if not sep or not local or not domain:
            msg = f"Invalid email address: {value!r}"
            raise ValueError(msg)
        return value

    @model_validator(mode="after")
    def check_skills_match_role(self) -> Actor:
        if self.role is Role.PROFESSIONAL and not self.skills:
            msg = "Professionals must select at least one skill"
            raise ValueError(msg)
        if self.role is not Role.PROFESSIONAL and self.skills:
            msg = f"Only professionals may carry skills (role={self.role.value})"
            raise ValueError(msg)
        return self

    @property
    def is_professional(self) -> bool:
        return self.role is Role.PROFESSIONAL

    def has_skill(self, skill: SkillTag) -> bool:
        return skill in self.skills


def normalize_skills(values: Iterable[str]) -> frozenset[SkillTag]:
    """Map raw skill strings to tags, rejecting anything outside the vocabulary."""

    values = list(values)
    allowed = {tag.value for tag in SkillTag}
    invalid = sorted({value for value in values if value not in allowed})
    if invalid:
        msg = f"Invalid skills: {', '.join(invalid)}"
        raise ValueError(msg)
    return frozenset(SkillTag(value) for value in values)


__all__ = ["Actor", "normalize_skills"]
