"""
Gate Event Service - Recording gate events and scoped reads
"""
from typing import List, Optional, Tuple
from datetime import datetime
from sqlalchemy.orm import Session

from app.repositories.gate_event_repository import GateEventRepository
from app.services.facility_service import FacilityService
from app.services import sequence_detector, issue_classifier
from app.models.gate_event import GateEvent as GateEventModel
from app.models.enums import (
    AttendanceStatus,
    EventKind,
    EventSource,
    Shift,
    EVENT_KIND_ALIASES,
)
from app.schemas.gate_event import GateEvent, GateEventCreate, PresenceState
from app.core.config import settings
from app.core.exceptions import InvalidInputError, NotFoundError, ScopeViolationError
from app.core.locks import KeyedLock
from app.core.timeutils import check_bounds, local_now, parse_day, to_local
from atams.logging import get_logger

logger = get_logger(__name__)

# Serializes the read-prior/insert span of each (facility, resident, day) among
# threads of this process. Other processes are held off only by FOR UPDATE on
# the prior row, which does not exist for the first event of a day.
resident_day_locks = KeyedLock()


def normalize_kind(value: str) -> str:
    raw = (value or "").strip().upper()
    if raw in EVENT_KIND_ALIASES:
        return EVENT_KIND_ALIASES[raw].value
    try:
        return EventKind(raw).value
    except ValueError:
        raise InvalidInputError(f"Unsupported event kind: {value}", {"kind": value})


def parse_enum(enum_cls, value: str, field: str) -> str:
    try:
        return enum_cls((value or "").strip().lower()).value
    except ValueError:
        allowed = [member.value for member in enum_cls]
        raise InvalidInputError(f"Unsupported {field}: {value}", {field: value, "allowed": allowed})


def derive_shift(occurred_at: datetime) -> str:
    hour = occurred_at.hour
    if 6 <= hour < 12:
        return Shift.MORNING.value
    if 12 <= hour < 18:
        return Shift.AFTERNOON.value
    if 18 <= hour < 22:
        return Shift.EVENING.value
    return Shift.NIGHT.value


class GateEventService:
    def __init__(self) -> None:
        self.event_repo = GateEventRepository()
        self.facility_service = FacilityService()

    def record_event(
        self,
        db: Session,
        facility_id: str,
        request: GateEventCreate,
        created_by: Optional[str] = None
    ) -> GateEvent:
        """
        Validate and persist a new gate event

        The most recent event of the same resident-day is consulted under a
        per-key lock; a broken ENTRY/EXIT alternation marks the new event
        ``unknown`` with an explanatory note. The record is written once, with
        incremental validation issues when CLASSIFY_ON_INGEST is enabled.

        Args:
            db: Database session
            facility_id: Caller's facility scope
            request: Event data
            created_by: Operator id, absent for device-sourced events

        Returns:
            GateEvent: The persisted event

        Raises:
            NotFoundError: Unknown facility
            InvalidInputError: Bad kind, status, source, shift, day or timestamp
        """
        facility = self.facility_service.get_facility_model(db, facility_id)
        tz = self.facility_service.resolve_timezone(facility)

        kind = normalize_kind(request.ge_kind)
        source = parse_enum(EventSource, request.ge_source, "source")
        if source == EventSource.BIOMETRIC.value:
            created_by = None
        status = AttendanceStatus.PRESENT.value
        if request.ge_status:
            status = parse_enum(AttendanceStatus, request.ge_status, "status")
            if status == AttendanceStatus.UNKNOWN.value:
                raise InvalidInputError("Status 'unknown' is reserved for sequence anomalies")

        now = local_now(tz)
        occurred_at = to_local(request.ge_occurred_at, tz) if request.ge_occurred_at else now
        check_bounds(occurred_at, now)

        day = parse_day(request.ge_day) if request.ge_day else occurred_at.date().isoformat()
        shift = parse_enum(Shift, request.ge_shift, "shift") if request.ge_shift else derive_shift(occurred_at)
        resident_id = request.ge_resident_id.strip()
        if not resident_id:
            raise InvalidInputError("ge_resident_id must not be empty")

        with resident_day_locks.hold((facility_id, resident_id, day)):
            prior = self.event_repo.get_last_event(db, facility_id, resident_id, day, for_update=True)
            detection = sequence_detector.detect(
                kind,
                occurred_at,
                status,
                request.ge_notes,
                prior_kind=prior.ge_kind if prior else None,
                prior_occurred_at=prior.ge_occurred_at if prior else None,
                guard_repeated_entry=settings.GUARD_REPEATED_ENTRY
            )

            if detection.anomaly:
                logger.warning(
                    "Gate sequence anomaly detected",
                    extra={'extra_data': {
                        "facility_id": facility_id,
                        "resident_id": resident_id,
                        "day": day,
                        "kind": kind,
                        "anomaly": detection.anomaly,
                        "prior_event_id": prior.ge_id,
                    }}
                )

            issues = []
            if settings.CLASSIFY_ON_INGEST:
                preceding = [
                    issue_classifier.from_event(e)
                    for e in self.event_repo.get_day_events(db, facility_id, resident_id, day)
                ]
                candidate = issue_classifier.SequenceItem(kind=kind, occurred_at=occurred_at, day=day)
                issues = issue_classifier.classify_candidate(
                    candidate, preceding, self.facility_service.resolve_policy(facility)
                )

            db_event = self.event_repo.create(db, {
                "ge_resident_id": resident_id,
                "ge_facility_id": facility_id,
                "ge_day": day,
                "ge_kind": kind,
                "ge_occurred_at": occurred_at,
                "ge_status": detection.status,
                "ge_leave_id": request.ge_leave_id,
                "ge_source": source,
                "ge_device_id": request.ge_device_id,
                "ge_shift": shift,
                "ge_notes": detection.notes,
                "ge_validation_issues": [issue.model_dump(mode="json") for issue in issues],
                "ge_created_by": created_by,
            })

        logger.info(
            "Gate event recorded",
            extra={'extra_data': {
                "event_id": db_event.ge_id,
                "facility_id": facility_id,
                "resident_id": resident_id,
                "day": day,
                "kind": kind,
                "status": db_event.ge_status,
                "issue_count": len(issues),
            }}
        )
        return GateEvent.model_validate(db_event)

    def get_event_model(
        self,
        db: Session,
        facility_id: str,
        event_id: int,
        include_deleted: bool = False,
        for_update: bool = False
    ) -> GateEventModel:
        """
        Load an event and enforce the facility boundary

        Raises:
            NotFoundError: Unknown id, or deleted while include_deleted is False
            ScopeViolationError: Event belongs to another facility
        """
        event = self.event_repo.get_by_id(db, event_id, for_update=for_update)
        if not event:
            raise NotFoundError("Gate event not found", {"event_id": event_id})

        if event.ge_facility_id != facility_id:
            logger.error(
                "Facility scope violation",
                extra={'extra_data': {
                    "event_id": event_id,
                    "caller_facility_id": facility_id,
                    "event_facility_id": event.ge_facility_id,
                }}
            )
            raise ScopeViolationError(
                "Gate event belongs to another facility",
                {"event_id": event_id, "facility_id": facility_id}
            )

        if event.ge_deleted and not include_deleted:
            raise NotFoundError("Gate event not found", {"event_id": event_id})

        return event

    def get_event(self, db: Session, facility_id: str, event_id: int, include_deleted: bool = False) -> GateEvent:
        return GateEvent.model_validate(self.get_event_model(db, facility_id, event_id, include_deleted))

    def list_events(
        self,
        db: Session,
        facility_id: str,
        resident_id: str = None,
        date_from: str = None,
        date_to: str = None,
        kind: str = None,
        status: str = None,
        source: str = None,
        reconciled: bool = None,
        include_deleted: bool = False,
        skip: int = 0,
        limit: int = 100
    ) -> Tuple[List[GateEvent], int]:
        """Events of a facility (newest first) and the total matching count"""
        self.facility_service.get_facility_model(db, facility_id)

        if date_from:
            parse_day(date_from, "date_from")
        if date_to:
            parse_day(date_to, "date_to")
        if date_from and date_to and date_from > date_to:
            raise InvalidInputError("date_from must not be after date_to")

        filters = {
            "resident_id": resident_id,
            "date_from": date_from,
            "date_to": date_to,
            "kind": normalize_kind(kind) if kind else None,
            "status": parse_enum(AttendanceStatus, status, "status") if status else None,
            "source": parse_enum(EventSource, source, "source") if source else None,
            "reconciled": reconciled,
            "include_deleted": include_deleted,
        }

        events = self.event_repo.get_events_with_filters(db, facility_id, skip=skip, limit=limit, **filters)
        total = self.event_repo.count_events_with_filters(db, facility_id, **filters)
        return [GateEvent.model_validate(e) for e in events], total

    def get_presence_state(
        self,
        db: Session,
        facility_id: str,
        resident_id: str,
        day: str = None
    ) -> PresenceState:
        """Last gate action of a resident for a day (default: facility today) and the next expected one"""
        facility = self.facility_service.get_facility_model(db, facility_id)
        if day:
            parse_day(day)
        else:
            day = local_now(self.facility_service.resolve_timezone(facility)).date().isoformat()

        last = self.event_repo.get_last_event(db, facility_id, resident_id, day)
        if not last:
            return PresenceState(resident_id=resident_id, day=day)

        next_action = EventKind.EXIT if last.ge_kind == EventKind.ENTRY.value else EventKind.ENTRY
        return PresenceState(
            resident_id=resident_id,
            day=day,
            current_kind=last.ge_kind,
            next_action=next_action,
            last_event_id=last.ge_id,
            last_occurred_at=last.ge_occurred_at
        )
