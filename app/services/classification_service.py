"""
Classification Service - Validation issues on demand and full-day revalidation passes
"""
from typing import Dict, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.repositories.gate_event_repository import GateEventRepository
from app.services.facility_service import FacilityService
from app.services.gate_event_service import GateEventService, resident_day_locks
from app.services import issue_classifier
from app.models.gate_event import GateEvent as GateEventModel
from app.models.enums import AttendanceStatus, IssueSeverity
from app.schemas.facility import GatePolicy
from app.schemas.gate_event import ClassificationResult, RevalidationResult, ValidationStats
from app.core.exceptions import StateConflictError
from app.core.timeutils import local_now, parse_day
from atams.transaction import transaction
from atams.logging import get_logger

logger = get_logger(__name__)


class ClassificationService:
    def __init__(self) -> None:
        self.event_repo = GateEventRepository()
        self.facility_service = FacilityService()
        self.event_service = GateEventService()

    def classify(self, db: Session, facility_id: str, event_id: int) -> ClassificationResult:
        """
        Issues of one stored event against the events preceding it on its day

        Read-only: nothing is written back.

        Raises:
            NotFoundError: Unknown or deleted event
            ScopeViolationError: Event belongs to another facility
        """
        event = self.event_service.get_event_model(db, facility_id, event_id)
        facility = self.facility_service.get_facility_model(db, facility_id)
        policy = self.facility_service.resolve_policy(facility)

        sequence = self.event_repo.get_day_events(db, facility_id, event.ge_resident_id, event.ge_day)
        index = next(i for i, e in enumerate(sequence) if e.ge_id == event.ge_id)
        preceding = [issue_classifier.from_event(e) for e in sequence[:index]]
        issues = issue_classifier.classify_candidate(issue_classifier.from_event(event), preceding, policy)

        return ClassificationResult(
            event_id=event.ge_id,
            issues=issues,
            has_issues=bool(issues),
            has_errors=issue_classifier.has_errors(issues)
        )

    def classify_batch(self, db: Session, facility_id: str, event_ids: List[int]) -> List[ClassificationResult]:
        """Classify several stored events; every id must be visible to the caller's facility"""
        return [self.classify(db, facility_id, event_id) for event_id in event_ids]

    def _merge_issues(self, event: GateEventModel, computed) -> int:
        """Append issue kinds not yet on the event. Returns the number added."""
        existing = list(event.ge_validation_issues or [])
        present_kinds = {issue.get("kind") for issue in existing}
        additions = [
            issue.model_dump(mode="json")
            for issue in computed
            if issue.kind.value not in present_kinds
        ]
        if additions:
            # JSON column: assign a new list so the change is tracked
            event.ge_validation_issues = existing + additions
        return len(additions)

    def _revalidate_sequence(
        self,
        sequence: List[GateEventModel],
        policy: GatePolicy,
        close_day: bool
    ) -> Dict[str, int]:
        items = [issue_classifier.from_event(e) for e in sequence]
        computed = issue_classifier.classify_sequence(items, policy, close_day=close_day)

        updated = 0
        added = 0
        for event, issues in zip(sequence, computed):
            # reconciled records are owned by the operator
            if event.ge_reconciled or event.ge_deleted:
                continue
            count = self._merge_issues(event, issues)
            if count:
                updated += 1
                added += count
        return {"checked": len(sequence), "updated": updated, "added": added}

    def _resolve_close_day(self, facility, day: str, close_day: Optional[bool]) -> bool:
        if close_day is not None:
            return close_day
        today = local_now(self.facility_service.resolve_timezone(facility)).date().isoformat()
        return day < today

    def revalidate_day(
        self,
        db: Session,
        facility_id: str,
        resident_id: str,
        day: str,
        close_day: Optional[bool] = None
    ) -> RevalidationResult:
        """
        Recompute issues over one resident-day and append the missing ones

        Args:
            db: Database session
            facility_id: Caller's facility scope
            resident_id: Resident to revalidate
            day: YYYY-MM-DD
            close_day: Treat the day as finished (default: True for past days)

        Returns:
            RevalidationResult: Counters for the pass

        Raises:
            StateConflictError: A record changed concurrently during the pass
        """
        parse_day(day)
        facility = self.facility_service.get_facility_model(db, facility_id)
        policy = self.facility_service.resolve_policy(facility)
        close_day = self._resolve_close_day(facility, day, close_day)

        with resident_day_locks.hold((facility_id, resident_id, day)):
            try:
                with transaction(db):
                    sequence = self.event_repo.get_day_events(db, facility_id, resident_id, day)
                    counters = self._revalidate_sequence(sequence, policy, close_day)
            except StaleDataError:
                raise StateConflictError(
                    "Gate events changed during revalidation, retry the pass",
                    {"resident_id": resident_id, "day": day}
                )

        logger.info(
            "Resident day revalidated",
            extra={'extra_data': {"facility_id": facility_id, "resident_id": resident_id, "day": day, **counters}}
        )
        return RevalidationResult(
            day=day,
            events_checked=counters["checked"],
            events_updated=counters["updated"],
            issues_added=counters["added"]
        )

    def revalidate_facility_day(
        self,
        db: Session,
        facility_id: str,
        day: str,
        close_day: Optional[bool] = None
    ) -> RevalidationResult:
        """Run the revalidation pass for every resident with events on a facility day"""
        parse_day(day)
        facility = self.facility_service.get_facility_model(db, facility_id)
        close_day = self._resolve_close_day(facility, day, close_day)

        total = RevalidationResult(day=day, events_checked=0, events_updated=0, issues_added=0)
        for resident_id, _ in self.event_repo.get_day_keys(db, facility_id, day):
            result = self.revalidate_day(db, facility_id, resident_id, day, close_day=close_day)
            total.events_checked += result.events_checked
            total.events_updated += result.events_updated
            total.issues_added += result.issues_added

        logger.info(
            "Facility day revalidated",
            extra={'extra_data': {"facility_id": facility_id, "day": day, **total.model_dump()}}
        )
        return total

    def get_validation_stats(self, db: Session, facility_id: str, day: str) -> ValidationStats:
        """Totals, reconciliation progress and issue breakdown for a facility day"""
        parse_day(day)
        self.facility_service.get_facility_model(db, facility_id)

        stats = ValidationStats(day=day)
        for event in self.event_repo.get_facility_day_events(db, facility_id, day):
            stats.total += 1
            if event.ge_reconciled:
                stats.reconciled += 1
            else:
                stats.unreconciled += 1
            if event.ge_status == AttendanceStatus.UNKNOWN.value:
                stats.unknown_status += 1

            issues = event.ge_validation_issues or []
            if issues:
                stats.with_issues += 1
            for issue in issues:
                kind = issue.get("kind")
                stats.issue_kinds[kind] = stats.issue_kinds.get(kind, 0) + 1
                severity = issue.get("severity", IssueSeverity.INFO.value)
                stats.severity_counts[severity] = stats.severity_counts.get(severity, 0) + 1

        return stats
