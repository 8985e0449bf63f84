from datetime import datetime, timedelta, timezone

import pytest

from app.core.exceptions import InvalidInputError, NotFoundError, ScopeViolationError
from app.models.gate_event import GateEvent as GateEventModel
from app.schemas.gate_event import GateEventCreate
from app.services.gate_event_service import GateEventService, derive_shift
from tests.conftest import DAY, FACILITY_ID, OTHER_FACILITY_ID

service = GateEventService()


def issue_kinds(event):
    return sorted(issue.kind.value for issue in event.ge_validation_issues)


def test_entry_then_short_exit_is_flagged(record):
    entry = record("R1", "ENTRY", "09:00")
    exit_ = record("R1", "EXIT", "09:02")

    assert entry.ge_status == "present"
    assert exit_.ge_status == "present"
    assert issue_kinds(exit_) == ["SHORT_DURATION"]
    assert exit_.ge_version == 1


def test_exit_before_entry_is_unknown(record):
    record("R1", "ENTRY", "09:00")
    exit_ = record("R1", "EXIT", "08:00")

    assert exit_.ge_status == "unknown"
    assert "before" in exit_.ge_notes
    assert exit_.needs_reconciliation()


def test_first_exit_of_day_is_kept_and_flagged_missing_in(record):
    exit_ = record("R1", "EXIT", "09:00")

    assert exit_.ge_status == "present"
    assert exit_.ge_notes is None
    assert issue_kinds(exit_) == ["MISSING_IN"]
    assert exit_.has_validation_errors()


def test_exit_after_exit_never_touches_prior_record(db, record):
    first = record("R1", "EXIT", "09:00", ge_notes="gate 2")
    second = record("R1", "EXIT", "10:00")

    assert second.ge_status == "unknown"
    assert second.ge_notes == "Multiple EXIT events detected"

    db.expire_all()
    prior = db.get(GateEventModel, first.ge_id)
    assert prior.ge_status == "present"
    assert prior.ge_notes == "gate 2"
    assert prior.ge_version == 1


def test_repeated_entry_is_unknown_when_guarded(record):
    record("R1", "ENTRY", "09:00")
    second = record("R1", "ENTRY", "09:30")

    assert second.ge_status == "unknown"
    assert second.ge_notes == "Multiple ENTRY events detected"
    assert issue_kinds(second) == ["DUPLICATE_ENTRY", "MISSING_OUT"]


def test_repeated_entry_tolerated_when_guard_disabled(record, monkeypatch):
    from app.core.config import settings

    monkeypatch.setattr(settings, "GUARD_REPEATED_ENTRY", False)
    record("R1", "ENTRY", "09:00")
    second = record("R1", "ENTRY", "09:30")

    assert second.ge_status == "present"


def test_ingest_classification_can_be_disabled(record, monkeypatch):
    from app.core.config import settings

    monkeypatch.setattr(settings, "CLASSIFY_ON_INGEST", False)
    exit_ = record("R1", "EXIT", "09:00")

    assert exit_.ge_validation_issues == []


def test_aliases_and_derived_fields(record):
    event = record("R1", "in", "20:15")

    assert event.ge_kind.value == "ENTRY"
    assert event.ge_day == DAY
    assert event.ge_shift.value == "evening"
    assert event.ge_source.value == "manual"
    assert event.ge_created_by == "op-1"


def test_aware_timestamp_is_stored_as_facility_wall_clock(db, facilities):
    request = GateEventCreate(
        ge_resident_id="R1",
        ge_kind="ENTRY",
        ge_occurred_at=datetime(2025, 1, 5, 20, 0, tzinfo=timezone.utc)
    )
    event = service.record_event(db, FACILITY_ID, request)

    assert event.ge_occurred_at == datetime(2025, 1, 6, 1, 30)
    assert event.ge_day == "2025-01-06"
    assert "UNUSUAL_TIME" in issue_kinds(event)


def test_supplied_day_overrides_timestamp_day(record):
    event = record("R1", "EXIT", "00:30", ge_day="2025-01-05")
    assert event.ge_day == "2025-01-05"


def test_biometric_events_have_no_creator(record):
    event = record("R1", "ENTRY", "09:00", ge_source="biometric", ge_device_id="gate-1")
    assert event.ge_created_by is None
    assert event.ge_device_id == "gate-1"


@pytest.mark.parametrize("overrides", [
    {"ge_kind": "SIDEWAYS"},
    {"ge_status": "unknown"},
    {"ge_status": "asleep"},
    {"ge_source": "fax"},
    {"ge_shift": "brunch"},
    {"ge_day": "2025-13-01"},
    {"ge_day": "06/01/2025"},
    {"ge_day": "2025-W02-1"},
    {"ge_occurred_at": datetime(1999, 12, 31, 10, 0)},
    {"ge_occurred_at": datetime.now() + timedelta(days=2)},
])
def test_invalid_input_is_rejected(db, facilities, overrides):
    payload = {"ge_resident_id": "R1", "ge_kind": "ENTRY", "ge_occurred_at": datetime(2025, 1, 6, 9, 0)}
    payload.update(overrides)

    with pytest.raises(InvalidInputError):
        service.record_event(db, FACILITY_ID, GateEventCreate(**payload))


def test_unknown_facility_is_not_found(db, facilities):
    request = GateEventCreate(ge_resident_id="R1", ge_kind="ENTRY", ge_occurred_at=datetime(2025, 1, 6, 9, 0))
    with pytest.raises(NotFoundError):
        service.record_event(db, "no-such-hostel", request)


def test_reading_another_facility_event_is_a_scope_violation(db, record):
    event = record("R1", "ENTRY", "09:00")

    with pytest.raises(ScopeViolationError):
        service.get_event(db, OTHER_FACILITY_ID, event.ge_id)

    assert service.get_event(db, FACILITY_ID, event.ge_id).ge_id == event.ge_id


def test_missing_event_is_not_found(db, facilities):
    with pytest.raises(NotFoundError):
        service.get_event(db, FACILITY_ID, 999)


def test_canonical_order_does_not_depend_on_insertion_order(db, record):
    late = record("R1", "EXIT", "17:00")
    early = record("R1", "ENTRY", "08:00")

    events, total = service.list_events(db, FACILITY_ID, resident_id="R1")
    assert total == 2
    assert [e.ge_id for e in events] == [late.ge_id, early.ge_id]

    from app.repositories.gate_event_repository import GateEventRepository
    sequence = GateEventRepository().get_day_events(db, FACILITY_ID, "R1", DAY)
    assert [e.ge_id for e in sequence] == [early.ge_id, late.ge_id]


def test_list_events_filters(db, record):
    record("R1", "ENTRY", "09:00")
    record("R1", "EXIT", "17:00")
    record("R2", "ENTRY", "09:05", day="2025-01-07")

    entries, total = service.list_events(db, FACILITY_ID, kind="IN")
    assert total == 2
    assert all(e.ge_kind.value == "ENTRY" for e in entries)

    _, day_total = service.list_events(db, FACILITY_ID, date_from=DAY, date_to=DAY)
    assert day_total == 2

    with pytest.raises(InvalidInputError):
        service.list_events(db, FACILITY_ID, date_from="2025-01-08", date_to=DAY)


def test_presence_state(db, record):
    empty = service.get_presence_state(db, FACILITY_ID, "R1", DAY)
    assert empty.current_kind is None
    assert empty.next_action.value == "ENTRY"

    entry = record("R1", "ENTRY", "09:00")
    inside = service.get_presence_state(db, FACILITY_ID, "R1", DAY)
    assert inside.current_kind.value == "ENTRY"
    assert inside.next_action.value == "EXIT"
    assert inside.last_event_id == entry.ge_id


@pytest.mark.parametrize("hour,shift", [(6, "morning"), (13, "afternoon"), (21, "evening"), (22, "night"), (3, "night")])
def test_derive_shift(hour, shift):
    assert derive_shift(datetime(2025, 1, 6, hour, 0)) == shift
