"""
Reconciliation Service - Operator review queue, corrections and soft deletes
"""
from typing import Any, Dict, List, Optional, Tuple
from datetime import datetime, timezone
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.repositories.gate_event_repository import GateEventRepository
from app.repositories.reconciliation_log_repository import ReconciliationLogRepository
from app.services.facility_service import FacilityService
from app.services.gate_event_service import GateEventService, parse_enum
from app.models.gate_event import GateEvent as GateEventModel
from app.models.enums import AttendanceStatus, IssueSeverity, ReconciliationAction
from app.schemas.gate_event import GateEvent, ApproveAllResult, ReconciliationLogEntry
from app.core.exceptions import InvalidInputError, StateConflictError
from app.core.timeutils import parse_day, parse_range
from atams.transaction import transaction
from atams.logging import get_logger

logger = get_logger(__name__)


def _snapshot(event: GateEventModel) -> Dict[str, Any]:
    """Operator-owned fields of an event, JSON friendly"""
    def iso(value: Optional[datetime]) -> Optional[str]:
        return value.isoformat() if value else None

    return {
        "status": event.ge_status,
        "notes": event.ge_notes,
        "reconciled": bool(event.ge_reconciled),
        "reconciled_by": event.ge_reconciled_by,
        "reconciled_at": iso(event.ge_reconciled_at),
        "reconciliation_notes": event.ge_reconciliation_notes,
        "deleted": bool(event.ge_deleted),
        "deleted_by": event.ge_deleted_by,
        "deleted_at": iso(event.ge_deleted_at),
        "version": event.ge_version,
    }


def _has_error_issue(event: GateEventModel) -> bool:
    return any(
        issue.get("severity") == IssueSeverity.ERROR.value
        for issue in (event.ge_validation_issues or [])
    )


class ReconciliationService:
    def __init__(self) -> None:
        self.event_repo = GateEventRepository()
        self.log_repo = ReconciliationLogRepository()
        self.facility_service = FacilityService()
        self.event_service = GateEventService()

    def _check_version(self, event: GateEventModel, expected_version: Optional[int]) -> None:
        if expected_version is not None and event.ge_version != expected_version:
            raise StateConflictError(
                "Gate event was modified by another operator",
                {"event_id": event.ge_id, "expected_version": expected_version, "current_version": event.ge_version}
            )

    def get_unreconciled(
        self,
        db: Session,
        facility_id: str,
        date_from: str,
        date_to: str,
        severity: str = None,
        skip: int = 0,
        limit: int = 100
    ) -> Tuple[List[GateEvent], int]:
        """
        Active records needing review: not reconciled, not deleted, and either
        status unknown or carrying validation issues. Newest first.

        Args:
            severity: Keep only records with at least one issue of this severity
        """
        parse_range(date_from, date_to)
        self.facility_service.get_facility_model(db, facility_id)
        if severity:
            severity = parse_enum(IssueSeverity, severity, "severity")

        events = self.event_repo.get_unreconciled_events(db, facility_id, date_from, date_to)
        if severity:
            events = [
                e for e in events
                if any(issue.get("severity") == severity for issue in (e.ge_validation_issues or []))
            ]

        page = events[skip:skip + limit]
        return [GateEvent.model_validate(e) for e in page], len(events)

    def reconcile(
        self,
        db: Session,
        facility_id: str,
        event_id: int,
        operator_id: str,
        notes: Optional[str] = None,
        status: Optional[str] = None,
        expected_version: Optional[int] = None
    ) -> GateEvent:
        """
        Mark an event reviewed, optionally correcting its status

        Re-reconciling an already reconciled record overwrites the audit
        fields; the previous values stay in the reconciliation log.

        Args:
            db: Database session
            facility_id: Caller's facility scope
            event_id: Event to reconcile
            operator_id: Reviewing operator
            notes: Reconciliation notes
            status: Corrected status
            expected_version: Version the operator reviewed

        Returns:
            GateEvent: Updated event

        Raises:
            NotFoundError: Unknown event
            ScopeViolationError: Event belongs to another facility
            StateConflictError: Event deleted or modified concurrently
            InvalidInputError: Unsupported status
        """
        if status:
            status = parse_enum(AttendanceStatus, status, "status")
            if status == AttendanceStatus.UNKNOWN.value:
                raise InvalidInputError("Status 'unknown' is reserved for sequence anomalies")

        try:
            with transaction(db):
                event = self.event_service.get_event_model(
                    db, facility_id, event_id, include_deleted=True, for_update=True
                )
                if event.ge_deleted:
                    raise StateConflictError("Deleted gate events cannot be reconciled", {"event_id": event_id})
                self._check_version(event, expected_version)

                before = _snapshot(event)
                event.ge_reconciled = True
                event.ge_reconciled_by = operator_id
                event.ge_reconciled_at = datetime.now(timezone.utc)
                event.ge_reconciliation_notes = notes
                if status:
                    event.ge_status = status
                db.flush()

                self.log_repo.add_entry(db, {
                    "rl_event_id": event.ge_id,
                    "rl_facility_id": facility_id,
                    "rl_action": ReconciliationAction.RECONCILE.value,
                    "rl_operator_id": operator_id,
                    "rl_notes": notes,
                    "rl_before": before,
                    "rl_after": _snapshot(event),
                })
        except StaleDataError:
            raise StateConflictError("Gate event was modified by another operator", {"event_id": event_id})

        db.refresh(event)
        logger.info(
            "Gate event reconciled",
            extra={'extra_data': {
                "event_id": event_id,
                "facility_id": facility_id,
                "operator_id": operator_id,
                "status": event.ge_status,
                "re_reconciled": before["reconciled"],
            }}
        )
        return GateEvent.model_validate(event)

    def soft_delete(
        self,
        db: Session,
        facility_id: str,
        event_id: int,
        operator_id: str,
        expected_version: Optional[int] = None
    ) -> GateEvent:
        """
        Hide an event from every default read, keeping the row for audit

        Raises:
            NotFoundError: Unknown event
            ScopeViolationError: Event belongs to another facility
            StateConflictError: Already deleted or modified concurrently
        """
        try:
            with transaction(db):
                event = self.event_service.get_event_model(
                    db, facility_id, event_id, include_deleted=True, for_update=True
                )
                if event.ge_deleted:
                    raise StateConflictError("Gate event is already deleted", {"event_id": event_id})
                self._check_version(event, expected_version)

                before = _snapshot(event)
                event.ge_deleted = True
                event.ge_deleted_by = operator_id
                event.ge_deleted_at = datetime.now(timezone.utc)
                db.flush()

                self.log_repo.add_entry(db, {
                    "rl_event_id": event.ge_id,
                    "rl_facility_id": facility_id,
                    "rl_action": ReconciliationAction.DELETE.value,
                    "rl_operator_id": operator_id,
                    "rl_before": before,
                    "rl_after": _snapshot(event),
                })
        except StaleDataError:
            raise StateConflictError("Gate event was modified by another operator", {"event_id": event_id})

        db.refresh(event)
        logger.info(
            "Gate event soft-deleted",
            extra={'extra_data': {"event_id": event_id, "facility_id": facility_id, "operator_id": operator_id}}
        )
        return GateEvent.model_validate(event)

    def approve_all(
        self,
        db: Session,
        facility_id: str,
        day: str,
        operator_id: str,
        notes: Optional[str] = None
    ) -> ApproveAllResult:
        """
        Reconcile every unreconciled, non-deleted record of a facility day that
        carries no error-severity issue
        """
        parse_day(day)
        self.facility_service.get_facility_model(db, facility_id)
        notes = notes or "Bulk approved"

        approved: List[int] = []
        try:
            with transaction(db):
                for event in self.event_repo.get_facility_day_events(db, facility_id, day):
                    if event.ge_reconciled or _has_error_issue(event):
                        continue

                    before = _snapshot(event)
                    event.ge_reconciled = True
                    event.ge_reconciled_by = operator_id
                    event.ge_reconciled_at = datetime.now(timezone.utc)
                    event.ge_reconciliation_notes = notes
                    db.flush()

                    self.log_repo.add_entry(db, {
                        "rl_event_id": event.ge_id,
                        "rl_facility_id": facility_id,
                        "rl_action": ReconciliationAction.APPROVE_ALL.value,
                        "rl_operator_id": operator_id,
                        "rl_notes": notes,
                        "rl_before": before,
                        "rl_after": _snapshot(event),
                    })
                    approved.append(event.ge_id)
        except StaleDataError:
            raise StateConflictError("Gate events changed during bulk approval, retry", {"day": day})

        logger.info(
            "Gate events bulk approved",
            extra={'extra_data': {
                "facility_id": facility_id,
                "day": day,
                "operator_id": operator_id,
                "approved_count": len(approved),
            }}
        )
        return ApproveAllResult(day=day, approved_count=len(approved), event_ids=approved)

    def get_history(self, db: Session, facility_id: str, event_id: int) -> List[ReconciliationLogEntry]:
        """Every reconcile/delete action recorded against an event, oldest first"""
        self.event_service.get_event_model(db, facility_id, event_id, include_deleted=True)
        entries = self.log_repo.get_event_history(db, event_id)
        return [ReconciliationLogEntry.model_validate(e) for e in entries]
