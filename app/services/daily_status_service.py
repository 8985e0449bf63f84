"""
Daily Status Service - Per-day attendance summaries and status rollups
"""
from typing import Dict, List
from sqlalchemy.orm import Session

from app.repositories.gate_event_repository import GateEventRepository
from app.services.facility_service import FacilityService
from app.models.enums import AttendanceStatus
from app.schemas.report import DailySummary, StatusRollup, FacilityStatusRollup
from app.core.timeutils import parse_range

ATTENDED_STATUSES = (
    AttendanceStatus.PRESENT.value,
    AttendanceStatus.LATE.value,
    AttendanceStatus.HALF_DAY.value,
)


def build_rollup(counts: Dict[str, int]) -> Dict[str, float]:
    """
    Status counts plus totalDays and attendance percentage

    percentage = (present + late + half_day) / totalDays * 100, rounded to
    2 decimals, 0 when there are no days
    """
    rollup = {status.value: 0 for status in AttendanceStatus}
    for status, days in counts.items():
        if status in rollup:
            rollup[status] += int(days)

    total_days = sum(rollup.values())
    attended = sum(rollup[status] for status in ATTENDED_STATUSES)
    rollup["totalDays"] = total_days
    rollup["percentage"] = round(attended / total_days * 100, 2) if total_days else 0
    return rollup


class DailyStatusService:
    def __init__(self) -> None:
        self.event_repo = GateEventRepository()
        self.facility_service = FacilityService()

    def get_daily_status(
        self,
        db: Session,
        facility_id: str,
        resident_id: str,
        date_from: str,
        date_to: str
    ) -> List[DailySummary]:
        """
        One summary per day with events, newest day first

        The last non-deleted event of a day (by occurred_at, then id) is the
        authoritative record for that day. Days without events are omitted.

        Raises:
            NotFoundError: Unknown facility
            InvalidInputError: Malformed or inverted range
        """
        parse_range(date_from, date_to)
        self.facility_service.get_facility_model(db, facility_id)

        last_by_day = {}
        for event in self.event_repo.get_range_events(db, facility_id, resident_id, date_from, date_to):
            # ascending order: the final assignment per day wins
            last_by_day[event.ge_day] = event

        return [
            DailySummary(
                day=day,
                event_id=event.ge_id,
                status=event.ge_status,
                kind=event.ge_kind,
                occurred_at=event.ge_occurred_at,
                source=event.ge_source,
                notes=event.ge_notes,
                linked_leave_id=event.ge_leave_id,
                validation_issues=event.ge_validation_issues or [],
                reconciled=event.ge_reconciled
            )
            for day, event in sorted(last_by_day.items(), reverse=True)
        ]

    def get_status_counts(
        self,
        db: Session,
        facility_id: str,
        resident_id: str,
        date_from: str,
        date_to: str
    ) -> StatusRollup:
        """Counts of days per final status for a resident"""
        parse_range(date_from, date_to)
        self.facility_service.get_facility_model(db, facility_id)

        rows = self.event_repo.get_last_status_counts(db, facility_id, date_from, date_to, resident_id=resident_id)
        return StatusRollup(**build_rollup({row["status"]: row["days"] for row in rows}))

    def get_facility_status_counts(
        self,
        db: Session,
        facility_id: str,
        date_from: str,
        date_to: str
    ) -> FacilityStatusRollup:
        """Counts of (resident, day) pairs per final status across a facility"""
        parse_range(date_from, date_to)
        self.facility_service.get_facility_model(db, facility_id)

        rows = self.event_repo.get_last_status_counts(db, facility_id, date_from, date_to)
        residents = self.event_repo.count_residents(db, facility_id, date_from, date_to)
        return FacilityStatusRollup(
            **build_rollup({row["status"]: row["days"] for row in rows}),
            residents=residents or 0,
            date_from=date_from,
            date_to=date_to
        )
