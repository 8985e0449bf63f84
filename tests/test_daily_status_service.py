import pytest

from app.core.exceptions import InvalidInputError, NotFoundError
from app.services.daily_status_service import DailyStatusService, build_rollup
from app.services.reconciliation_service import ReconciliationService
from tests.conftest import FACILITY_ID, OTHER_FACILITY_ID

service = DailyStatusService()


def test_last_event_of_each_day_decides_status(db, record):
    record("R1", "ENTRY", "08:00", day="2025-01-06")
    record("R1", "EXIT", "17:00", day="2025-01-06")
    record("R1", "ENTRY", "09:30", day="2025-01-07", ge_status="late")
    last = record("R1", "EXIT", "12:00", day="2025-01-07", ge_status="half_day", ge_leave_id="LV-7")

    summaries = service.get_daily_status(db, FACILITY_ID, "R1", "2025-01-01", "2025-01-31")

    assert [s.day for s in summaries] == ["2025-01-07", "2025-01-06"]
    assert summaries[0].event_id == last.ge_id
    assert summaries[0].status.value == "half_day"
    assert summaries[0].linked_leave_id == "LV-7"
    assert summaries[1].status.value == "present"


def test_daily_status_never_crosses_facilities(db, record):
    own = record("R1", "ENTRY", "08:00", facility_id=FACILITY_ID)
    record("R1", "ENTRY", "08:05", facility_id=OTHER_FACILITY_ID)
    record("R1", "EXIT", "18:00", facility_id=OTHER_FACILITY_ID)

    summaries = service.get_daily_status(db, FACILITY_ID, "R1", "2025-01-06", "2025-01-06")

    assert len(summaries) == 1
    assert summaries[0].event_id == own.ge_id


def test_status_counts_and_percentage(db, record):
    record("R1", "ENTRY", "08:00", day="2025-01-06")
    record("R1", "EXIT", "17:00", day="2025-01-06")
    record("R1", "ENTRY", "10:00", day="2025-01-07", ge_status="late")
    record("R1", "ENTRY", "10:00", day="2025-01-08", ge_status="absent")

    counts = service.get_status_counts(db, FACILITY_ID, "R1", "2025-01-01", "2025-01-31")

    assert counts.present == 1
    assert counts.late == 1
    assert counts.absent == 1
    assert counts.unknown == 0
    assert counts.totalDays == 3
    assert counts.percentage == 66.67


def test_status_counts_with_no_events(db, facilities):
    counts = service.get_status_counts(db, FACILITY_ID, "R9", "2025-01-01", "2025-01-31")

    assert counts.totalDays == 0
    assert counts.percentage == 0


def test_soft_deleted_event_is_excluded_from_reads(db, record):
    record("R1", "ENTRY", "08:00")
    wrong = record("R1", "EXIT", "08:30", ge_status="left_early")
    ReconciliationService().soft_delete(db, FACILITY_ID, wrong.ge_id, "op-2")

    summaries = service.get_daily_status(db, FACILITY_ID, "R1", "2025-01-06", "2025-01-06")
    counts = service.get_status_counts(db, FACILITY_ID, "R1", "2025-01-06", "2025-01-06")

    assert summaries[0].kind.value == "ENTRY"
    assert counts.left_early == 0
    assert counts.present == 1


def test_facility_rollup_counts_resident_days(db, record):
    record("R1", "ENTRY", "08:00")
    record("R2", "ENTRY", "08:10", ge_status="late")
    record("R2", "ENTRY", "08:10", day="2025-01-07")
    record("R3", "ENTRY", "08:00", facility_id=OTHER_FACILITY_ID)

    rollup = service.get_facility_status_counts(db, FACILITY_ID, "2025-01-06", "2025-01-07")

    assert rollup.residents == 2
    assert rollup.totalDays == 3
    assert rollup.present == 2
    assert rollup.late == 1
    assert rollup.percentage == 100.0


def test_range_validation(db, facilities):
    with pytest.raises(InvalidInputError):
        service.get_daily_status(db, FACILITY_ID, "R1", "2025-02-01", "2025-01-01")
    with pytest.raises(InvalidInputError):
        service.get_status_counts(db, FACILITY_ID, "R1", "2025-1-1", "2025-01-31")
    with pytest.raises(NotFoundError):
        service.get_status_counts(db, "no-such-hostel", "R1", "2025-01-01", "2025-01-31")


def test_build_rollup_ignores_foreign_statuses():
    rollup = build_rollup({"present": 2, "half_day": 1, "excused": 1, "bogus": 5})

    assert rollup["totalDays"] == 4
    assert rollup["percentage"] == 75.0
