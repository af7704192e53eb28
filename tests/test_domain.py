from __future__ import annotations

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest
from pydantic import ValidationError

from homeserve.domain import (
    Actor,
    ActorId,
    Budget,
    Location,
    RequestId,
    RequestStatus,
    Role,
    ServiceRequest,
    SkillTag,
    normalize_skills,
)

LOCATION = Location(address="1 Main St", city="Springfield", state="IL", zip_code="62701")


def _request(**overrides: object) -> ServiceRequest:
    params: dict[str, object] = {
        "id": RequestId(uuid4()),
        "title": "Paint the fence",
        "description": "White, two coats",
        "category": SkillTag.PAINTING,
        "homeowner_id": ActorId(uuid4()),
        "location": LOCATION,
    }
    params.update(overrides)
    return ServiceRequest(**params)


def test_enumerations_match_wire_vocabulary() -> None:
    assert {tag.value for tag in SkillTag} == {
        "plumbing",
        "electrical",
        "carpentry",
        "painting",
        "cleaning",
    }
    assert [status.value for status in RequestStatus] == [
        "pending",
        "accepted",
        "in_progress",
        "completed",
        "cancelled",
    ]
    assert RequestStatus.COMPLETED.is_terminal
    assert RequestStatus.CANCELLED.is_terminal
    assert not RequestStatus.IN_PROGRESS.is_terminal


def test_professional_requires_skills_and_others_have_none() -> None:
    with pytest.raises(ValidationError):
        Actor(id=ActorId(uuid4()), name="Pro", email="pro@example.com", role=Role.PROFESSIONAL)
    with pytest.raises(ValidationError):
        Actor(
            id=ActorId(uuid4()),
            name="Client",
            email="client@example.com",
            skills=frozenset({SkillTag.CLEANING}),
        )
    with pytest.raises(ValidationError):
        Actor(id=ActorId(uuid4()), name="No at", email="example.com")

    pro = Actor(
        id=ActorId(uuid4()),
        name="Pro",
        email="PRO@example.com",
        role=Role.PROFESSIONAL,
        skills=frozenset({SkillTag.CARPENTRY}),
    )
    assert pro.email == "pro@example.com"
    assert pro.has_skill(SkillTag.CARPENTRY)
    assert not pro.has_skill(SkillTag.PLUMBING)


def test_normalize_skills_rejects_unknown_tags() -> None:
    assert normalize_skills(["plumbing", "plumbing"]) == {SkillTag.PLUMBING}
    with pytest.raises(ValueError, match="roofing"):
        normalize_skills(["plumbing", "roofing"])


def test_completed_date_iff_completed() -> None:
    professional = ActorId(uuid4())
    now = datetime.now(UTC)
    with pytest.raises(ValidationError):
        _request(status=RequestStatus.COMPLETED, professional_id=professional)
    with pytest.raises(ValidationError):
        _request(completed_date=now)

    done = _request(
        status=RequestStatus.COMPLETED, professional_id=professional, completed_date=now
    )
    assert done.is_terminal


def test_working_statuses_need_a_professional() -> None:
    for status in (RequestStatus.ACCEPTED, RequestStatus.IN_PROGRESS):
        with pytest.raises(ValidationError):
            _request(status=status)
    assert _request(status=RequestStatus.CANCELLED).professional_id is None


def test_with_changes_revalidates() -> None:
    request = _request()
    with pytest.raises(ValidationError):
        request.with_changes(status=RequestStatus.ACCEPTED)

    professional = ActorId(uuid4())
    assigned = request.with_changes(professional_id=professional, version=2)
    assert assigned.professional_id == professional
    assert request.professional_id is None
    assert assigned.homeowner_id == request.homeowner_id


def test_budget_bounds() -> None:
    assert Budget(min=10, max=10).max == 10
    assert Budget(max=99).min is None
    with pytest.raises(ValidationError):
        Budget(min=100, max=10)


def test_timestamps_are_normalized_to_utc() -> None:
    request = _request(scheduled_date="2026-03-01T10:00:00Z")
    assert request.scheduled_date == datetime(2026, 3, 1, 10, tzinfo=UTC)

    naive = _request(scheduled_date=datetime(2026, 3, 1, 10))
    assert naive.scheduled_date is not None
    assert naive.scheduled_date.utcoffset() == timedelta(0)


def test_location_accepts_camel_case_zip() -> None:
    location = Location.model_validate(
        {"address": "2 Side St", "city": "Shelbyville", "state": "IL", "zipCode": "62565"}
    )
    assert location.zip_code == "62565"
    with pytest.raises(ValidationError):
        Location(address=" ", city="x", state="y", zip_code="z")
