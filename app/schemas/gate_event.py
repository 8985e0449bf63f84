"""
Gate Event Schemas for events, validation issues and reconciliation
"""
from typing import Optional, List, Dict, Any
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.enums import (
    AttendanceStatus,
    EventKind,
    EventSource,
    IssueKind,
    IssueSeverity,
    ReconciliationAction,
    Shift,
)


class ValidationIssue(BaseModel):
    kind: IssueKind
    severity: IssueSeverity
    message: str
    data: Dict[str, Any] = Field(default_factory=dict)


class GateEventBase(BaseModel):
    ge_resident_id: str
    ge_facility_id: str
    ge_day: str
    ge_kind: EventKind
    ge_occurred_at: datetime
    ge_status: AttendanceStatus = AttendanceStatus.PRESENT
    ge_leave_id: Optional[str] = None
    ge_source: EventSource = EventSource.MANUAL
    ge_device_id: Optional[str] = None
    ge_shift: Optional[Shift] = None
    ge_notes: Optional[str] = None
    ge_validation_issues: List[ValidationIssue] = Field(default_factory=list)


class GateEventInDB(GateEventBase):
    model_config = ConfigDict(from_attributes=True)

    ge_id: int
    ge_reconciled: bool = False
    ge_reconciled_by: Optional[str] = None
    ge_reconciled_at: Optional[datetime] = None
    ge_reconciliation_notes: Optional[str] = None
    ge_deleted: bool = False
    ge_deleted_by: Optional[str] = None
    ge_deleted_at: Optional[datetime] = None
    ge_created_by: Optional[str] = None
    ge_version: int
    ge_created_at: datetime
    ge_updated_at: Optional[datetime] = None

    @field_validator('ge_validation_issues', mode='before')
    @classmethod
    def none_as_empty(cls, v):
        return v or []

    @field_validator('ge_reconciled_at', 'ge_deleted_at', 'ge_updated_at', 'ge_created_at', mode='before')
    @classmethod
    def fix_datetime_timezone(cls, v):
        """Fix datetime timezone format from PostgreSQL"""
        if v == '' or v is None:
            return None

        if isinstance(v, str):
            import re
            pattern = r'([+-]\d{2})$'
            match = re.search(pattern, v)
            if match:
                v = v + ':00'

        return v


class GateEvent(GateEventInDB):

    def needs_reconciliation(self) -> bool:
        return not self.ge_reconciled and (
            self.ge_status == AttendanceStatus.UNKNOWN or len(self.ge_validation_issues) > 0
        )

    def has_validation_errors(self) -> bool:
        return any(issue.severity == IssueSeverity.ERROR for issue in self.ge_validation_issues)

    def validation_summary(self) -> Dict[str, Any]:
        summary = {"has_issues": bool(self.ge_validation_issues), "errors": 0, "warnings": 0, "info": 0}
        for issue in self.ge_validation_issues:
            if issue.severity == IssueSeverity.ERROR:
                summary["errors"] += 1
            elif issue.severity == IssueSeverity.WARNING:
                summary["warnings"] += 1
            else:
                summary["info"] += 1
        return summary


# Request/Response schemas for API endpoints
class GateEventCreate(BaseModel):
    """Request schema for recording a gate event. Enum values are checked by the service."""
    ge_resident_id: str = Field(min_length=1, max_length=64)
    ge_kind: str  # ENTRY/EXIT (IN/OUT accepted)
    ge_occurred_at: Optional[datetime] = None  # default: now
    ge_source: str = EventSource.MANUAL.value
    ge_day: Optional[str] = None  # YYYY-MM-DD, default: derived from ge_occurred_at
    ge_status: Optional[str] = None
    ge_leave_id: Optional[str] = None
    ge_device_id: Optional[str] = None
    ge_shift: Optional[str] = None
    ge_notes: Optional[str] = None


class ReconcileRequest(BaseModel):
    notes: Optional[str] = None
    status: Optional[str] = None  # corrected status, applied only through reconciliation
    expected_version: Optional[int] = None


class ClassifyBatchRequest(BaseModel):
    event_ids: List[int] = Field(min_length=1, max_length=500)


class ApproveAllRequest(BaseModel):
    day: str
    notes: Optional[str] = None


class ApproveAllResult(BaseModel):
    day: str
    approved_count: int
    event_ids: List[int]


class PresenceState(BaseModel):
    """Last gate action of a resident for a day and the next expected action"""
    resident_id: str
    day: str
    current_kind: Optional[EventKind] = None
    next_action: EventKind = EventKind.ENTRY
    last_event_id: Optional[int] = None
    last_occurred_at: Optional[datetime] = None


class ClassificationResult(BaseModel):
    event_id: Optional[int] = None
    issues: List[ValidationIssue]
    has_issues: bool
    has_errors: bool


class ValidationStats(BaseModel):
    day: str
    total: int = 0
    reconciled: int = 0
    unreconciled: int = 0
    with_issues: int = 0
    unknown_status: int = 0
    issue_kinds: Dict[str, int] = Field(default_factory=dict)
    severity_counts: Dict[str, int] = Field(
        default_factory=lambda: {"info": 0, "warning": 0, "error": 0}
    )


class RevalidationResult(BaseModel):
    day: str
    events_checked: int
    events_updated: int
    issues_added: int


class ReconciliationLogEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    rl_id: int
    rl_event_id: int
    rl_facility_id: str
    rl_action: ReconciliationAction
    rl_operator_id: str
    rl_notes: Optional[str] = None
    rl_before: Optional[Dict[str, Any]] = None
    rl_after: Optional[Dict[str, Any]] = None
    rl_created_at: datetime
