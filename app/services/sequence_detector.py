"""
Sequence Detector - Flags an incoming gate event that breaks the ENTRY/EXIT alternation

Pure functions: the caller fetches the prior event and persists the outcome.
The prior record is never modified and detection never raises.
"""
from datetime import datetime
from typing import NamedTuple, Optional

from app.models.enums import AttendanceStatus, EventKind

MULTIPLE_EXIT = "Multiple EXIT events detected"
EXIT_BEFORE_ENTRY = "EXIT time before ENTRY time"
MULTIPLE_ENTRY = "Multiple ENTRY events detected"


class Detection(NamedTuple):
    status: str
    notes: Optional[str]
    anomaly: Optional[str]


def find_anomaly(
    kind: str,
    occurred_at: datetime,
    prior_kind: Optional[str],
    prior_occurred_at: Optional[datetime],
    guard_repeated_entry: bool = True
) -> Optional[str]:
    """Return the anomaly message for the new event, or None when the sequence is sound"""
    if prior_kind is None:
        return None

    if kind == EventKind.EXIT.value:
        if prior_kind == EventKind.EXIT.value:
            return MULTIPLE_EXIT
        if prior_occurred_at is not None and occurred_at < prior_occurred_at:
            return EXIT_BEFORE_ENTRY
        return None

    if guard_repeated_entry and prior_kind == EventKind.ENTRY.value:
        return MULTIPLE_ENTRY

    return None


def append_note(notes: Optional[str], anomaly: str) -> str:
    if notes:
        return f"{notes} [{anomaly}]"
    return anomaly


def detect(
    kind: str,
    occurred_at: datetime,
    status: str,
    notes: Optional[str],
    prior_kind: Optional[str] = None,
    prior_occurred_at: Optional[datetime] = None,
    guard_repeated_entry: bool = True
) -> Detection:
    """
    Decide the stored status and notes of a new event given the most recent
    non-deleted event of the same (facility, resident, day)

    Args:
        kind: ENTRY or EXIT of the new event
        occurred_at: Timestamp of the new event
        status: Status supplied by the caller
        notes: Notes supplied by the caller
        prior_kind: Kind of the prior event, None when the day is empty
        prior_occurred_at: Timestamp of the prior event
        guard_repeated_entry: Also flag ENTRY after ENTRY

    Returns:
        Detection: status/notes to persist and the anomaly (None when clean)
    """
    anomaly = find_anomaly(kind, occurred_at, prior_kind, prior_occurred_at, guard_repeated_entry)
    if anomaly is None:
        return Detection(status=status, notes=notes, anomaly=None)

    return Detection(
        status=AttendanceStatus.UNKNOWN.value,
        notes=append_note(notes, anomaly),
        anomaly=anomaly
    )
