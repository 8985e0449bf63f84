"""
Closed value sets shared by models, schemas and services
"""
from enum import Enum


class EventKind(str, Enum):
    ENTRY = "ENTRY"
    EXIT = "EXIT"


# Device and legacy clients send IN/OUT
EVENT_KIND_ALIASES = {
    "IN": EventKind.ENTRY,
    "OUT": EventKind.EXIT,
}


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    ON_LEAVE = "on_leave"
    LATE = "late"
    EXCUSED = "excused"
    LEFT_EARLY = "left_early"
    HALF_DAY = "half_day"
    UNKNOWN = "unknown"


class EventSource(str, Enum):
    BIOMETRIC = "biometric"
    MANUAL = "manual"
    BULK = "bulk"
    AUTO = "auto"
    LEAVE = "leave"


class Shift(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    NIGHT = "night"


class IssueKind(str, Enum):
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"
    SHORT_DURATION = "SHORT_DURATION"
    MISSING_OUT = "MISSING_OUT"
    MISSING_IN = "MISSING_IN"
    EXCESSIVE_ENTRIES = "EXCESSIVE_ENTRIES"
    UNUSUAL_TIME = "UNUSUAL_TIME"
    WEEKEND_ENTRY = "WEEKEND_ENTRY"


class IssueSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class ReconciliationAction(str, Enum):
    RECONCILE = "reconcile"
    DELETE = "delete"
    APPROVE_ALL = "approve_all"
