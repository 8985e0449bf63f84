"""
Report Schemas - Daily summaries and status rollups
"""
from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field

from app.models.enums import AttendanceStatus, EventKind, EventSource
from app.schemas.gate_event import ValidationIssue


class DailySummary(BaseModel):
    """The authoritative (last) event of one resident-day"""
    day: str
    event_id: int
    status: AttendanceStatus
    kind: EventKind
    occurred_at: datetime
    source: EventSource
    notes: Optional[str] = None
    linked_leave_id: Optional[str] = None
    validation_issues: List[ValidationIssue] = Field(default_factory=list)
    reconciled: bool = False


class StatusRollup(BaseModel):
    present: int = 0
    absent: int = 0
    on_leave: int = 0
    late: int = 0
    excused: int = 0
    left_early: int = 0
    half_day: int = 0
    unknown: int = 0
    totalDays: int = 0
    percentage: float = 0


class FacilityStatusRollup(StatusRollup):
    """Rollup across all (resident, day) pairs of a facility"""
    residents: int = 0
    date_from: str
    date_to: str
