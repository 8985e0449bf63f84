import pytest

from app.core.exceptions import ScopeViolationError
from app.models.facility import Facility as FacilityModel
from app.services.classification_service import ClassificationService
from app.services.reconciliation_service import ReconciliationService
from tests.conftest import DAY, FACILITY_ID, OTHER_FACILITY_ID

service = ClassificationService()


def kinds(issues):
    return sorted(issue["kind"] if isinstance(issue, dict) else issue.kind.value for issue in issues)


def test_classify_stored_event_is_read_only(db, record, monkeypatch):
    from app.core.config import settings

    monkeypatch.setattr(settings, "CLASSIFY_ON_INGEST", False)
    record("R1", "ENTRY", "09:00")
    exit_ = record("R1", "EXIT", "09:02")

    result = service.classify(db, FACILITY_ID, exit_.ge_id)

    assert kinds(result.issues) == ["SHORT_DURATION"]
    assert result.has_issues is True
    assert result.has_errors is False
    assert service.event_service.get_event(db, FACILITY_ID, exit_.ge_id).ge_validation_issues == []


def test_classify_batch(db, record):
    first = record("R1", "EXIT", "09:00")
    second = record("R1", "ENTRY", "10:00")

    results = service.classify_batch(db, FACILITY_ID, [first.ge_id, second.ge_id])

    assert [r.event_id for r in results] == [first.ge_id, second.ge_id]
    assert results[0].has_errors is True
    assert results[1].has_issues is False


def test_classify_batch_respects_scope(db, record):
    event = record("R1", "EXIT", "09:00")
    with pytest.raises(ScopeViolationError):
        service.classify_batch(db, OTHER_FACILITY_ID, [event.ge_id])


def test_revalidation_appends_missing_kinds_once(db, record, monkeypatch):
    from app.core.config import settings

    monkeypatch.setattr(settings, "CLASSIFY_ON_INGEST", False)
    exit_ = record("R1", "EXIT", "09:00")
    entry = record("R1", "ENTRY", "10:00")

    result = service.revalidate_day(db, FACILITY_ID, "R1", DAY, close_day=True)

    assert result.events_checked == 2
    assert result.events_updated == 2
    assert result.issues_added == 2
    assert kinds(service.event_service.get_event(db, FACILITY_ID, exit_.ge_id).ge_validation_issues) == ["MISSING_IN"]
    assert kinds(service.event_service.get_event(db, FACILITY_ID, entry.ge_id).ge_validation_issues) == ["MISSING_OUT"]

    again = service.revalidate_day(db, FACILITY_ID, "R1", DAY, close_day=True)
    assert again.issues_added == 0
    assert again.events_updated == 0


def test_revalidation_keeps_ingest_issues_without_duplicates(db, record):
    exit_ = record("R1", "EXIT", "09:00")

    result = service.revalidate_day(db, FACILITY_ID, "R1", DAY, close_day=False)

    assert result.issues_added == 0
    assert kinds(service.event_service.get_event(db, FACILITY_ID, exit_.ge_id).ge_validation_issues) == ["MISSING_IN"]


def test_revalidation_skips_reconciled_and_deleted(db, record, monkeypatch):
    from app.core.config import settings

    monkeypatch.setattr(settings, "CLASSIFY_ON_INGEST", False)
    reconciled = record("R1", "EXIT", "09:00")
    deleted = record("R2", "EXIT", "09:00")
    ReconciliationService().reconcile(db, FACILITY_ID, reconciled.ge_id, "warden-1")
    ReconciliationService().soft_delete(db, FACILITY_ID, deleted.ge_id, "warden-1")

    result = service.revalidate_facility_day(db, FACILITY_ID, DAY, close_day=True)

    assert result.events_checked == 1
    assert result.issues_added == 0
    assert service.event_service.get_event(db, FACILITY_ID, reconciled.ge_id).ge_validation_issues == []


def test_revalidation_uses_facility_policy(db, record, monkeypatch):
    from app.core.config import settings

    monkeypatch.setattr(settings, "CLASSIFY_ON_INGEST", False)
    facility = db.get(FacilityModel, FACILITY_ID)
    facility.fa_gate_policy = {"short_duration_minutes": 30}
    db.commit()

    record("R1", "ENTRY", "09:00")
    exit_ = record("R1", "EXIT", "09:20")

    service.revalidate_facility_day(db, FACILITY_ID, DAY, close_day=True)

    assert kinds(service.event_service.get_event(db, FACILITY_ID, exit_.ge_id).ge_validation_issues) == ["SHORT_DURATION"]


def test_validation_stats(db, record):
    record("R1", "ENTRY", "08:00")
    record("R1", "EXIT", "08:02")
    record("R2", "EXIT", "09:00")
    unknown = record("R2", "EXIT", "10:00")
    ReconciliationService().reconcile(db, FACILITY_ID, unknown.ge_id, "warden-1")

    stats = service.get_validation_stats(db, FACILITY_ID, DAY)

    assert stats.total == 4
    assert stats.reconciled == 1
    assert stats.unreconciled == 3
    assert stats.with_issues == 3
    assert stats.unknown_status == 1
    assert stats.issue_kinds == {"SHORT_DURATION": 1, "MISSING_IN": 2, "DUPLICATE_ENTRY": 1}
    assert stats.severity_counts == {"info": 0, "warning": 2, "error": 2}
