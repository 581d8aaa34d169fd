from datetime import datetime, timedelta, timezone

import pytest

from bikelane_sentinel.core.exceptions import ViolationNotFoundError
from bikelane_sentinel.db.seed import DEMO_VIOLATIONS, seed_demo_violations
from bikelane_sentinel.db.store import InMemoryViolationStore
from bikelane_sentinel.schemas.common import GeoLocation
from bikelane_sentinel.schemas.violation import Violation, ViolationStatus


def make_violation(violation_id="v-1", minutes_ago=0):
    return Violation(
        id=violation_id,
        camera_id="user-submitted",
        image_url="data:image/jpeg;base64,AAAA",
        vehicle_type="Taxi",
        location=GeoLocation(lat=40.7128, lng=-74.0060),
        timestamp=datetime.now(timezone.utc) - timedelta(minutes=minutes_ago),
        confidence=0.85,
    )


def test_add_and_get():
    store = InMemoryViolationStore()
    store.add(make_violation())

    assert len(store) == 1
    assert store.get("v-1").vehicle_type == "Taxi"
    assert store.get("missing") is None


def test_list_is_newest_first():
    store = InMemoryViolationStore()
    store.add(make_violation("old", minutes_ago=10))
    store.add(make_violation("new", minutes_ago=1))

    assert [v.id for v in store.list()] == ["new", "old"]


def test_update_status_is_idempotent():
    store = InMemoryViolationStore()
    store.add(make_violation())

    first = store.update_status("v-1", ViolationStatus.CONFIRMED)
    second = store.update_status("v-1", ViolationStatus.CONFIRMED)

    assert first == second
    assert store.get("v-1").status == ViolationStatus.CONFIRMED


def test_update_status_unknown_id():
    store = InMemoryViolationStore()
    with pytest.raises(ViolationNotFoundError) as exc_info:
        store.update_status("nope", ViolationStatus.REJECTED)
    assert "nope" in exc_info.value.message


def test_seed_is_repeatable():
    store = InMemoryViolationStore()

    assert seed_demo_violations(store) == len(DEMO_VIOLATIONS)
    assert seed_demo_violations(store) == 0
    assert {v.status for v in store.list()} == {
        ViolationStatus.REPORTED,
        ViolationStatus.PENDING,
        ViolationStatus.UNDER_REVIEW,
    }
