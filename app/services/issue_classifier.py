"""
Issue Classifier - Typed validation issues for gate events

Pure functions over an event and the events that precede it on the same
resident-day, or over a whole day sequence. Nothing here touches the database.
"""
from datetime import date, datetime
from typing import List, NamedTuple, Optional, Sequence

from app.models.enums import EventKind, IssueKind, IssueSeverity
from app.schemas.facility import GatePolicy, WEEKDAY_NAMES
from app.schemas.gate_event import ValidationIssue


class SequenceItem(NamedTuple):
    kind: str
    occurred_at: datetime
    day: str
    event_id: Optional[int] = None


def from_event(event) -> SequenceItem:
    """Build a SequenceItem from a GateEvent model or schema"""
    kind = event.ge_kind.value if hasattr(event.ge_kind, "value") else event.ge_kind
    return SequenceItem(kind=kind, occurred_at=event.ge_occurred_at, day=event.ge_day, event_id=event.ge_id)


def _issue(kind: IssueKind, severity: IssueSeverity, message: str, **data) -> ValidationIssue:
    return ValidationIssue(kind=kind, severity=severity, message=message, data=data)


def _weekday_name(day: str) -> str:
    return WEEKDAY_NAMES[date.fromisoformat(day).weekday()]


def classify_candidate(
    candidate: SequenceItem,
    preceding: Sequence[SequenceItem],
    policy: GatePolicy
) -> List[ValidationIssue]:
    """
    Issues of one event given the non-deleted events before it on the same day

    Args:
        candidate: The event being classified
        preceding: Earlier events of the resident-day in canonical order
        policy: Facility thresholds

    Returns:
        List[ValidationIssue]: Possibly empty
    """
    issues: List[ValidationIssue] = []
    previous = preceding[-1] if preceding else None
    elapsed = None
    if previous is not None:
        elapsed = (candidate.occurred_at - previous.occurred_at).total_seconds()

    if previous is not None and previous.kind == candidate.kind:
        issues.append(_issue(
            IssueKind.DUPLICATE_ENTRY,
            IssueSeverity.WARNING,
            f"Consecutive {candidate.kind} events without an opposite event in between",
            previous_event_id=previous.event_id,
            seconds_since_previous=int(elapsed)
        ))

    if candidate.kind == EventKind.ENTRY.value:
        if previous is not None and previous.kind == EventKind.ENTRY.value and elapsed > policy.duplicate_window_seconds:
            issues.append(_issue(
                IssueKind.MISSING_OUT,
                IssueSeverity.ERROR,
                "ENTRY recorded while the previous ENTRY was never closed by an EXIT",
                open_entry_event_id=previous.event_id
            ))
    else:
        if previous is None:
            issues.append(_issue(
                IssueKind.MISSING_IN,
                IssueSeverity.ERROR,
                "EXIT recorded without a preceding ENTRY on this day"
            ))
        elif previous.kind == EventKind.EXIT.value and elapsed > policy.duplicate_window_seconds:
            issues.append(_issue(
                IssueKind.MISSING_IN,
                IssueSeverity.ERROR,
                "EXIT recorded without an ENTRY since the previous EXIT",
                previous_exit_event_id=previous.event_id
            ))
        elif previous.kind == EventKind.ENTRY.value and 0 <= elapsed < policy.short_duration_minutes * 60:
            issues.append(_issue(
                IssueKind.SHORT_DURATION,
                IssueSeverity.WARNING,
                f"Stay of {int(elapsed)}s is shorter than {policy.short_duration_minutes} minutes",
                entry_event_id=previous.event_id,
                duration_seconds=int(elapsed)
            ))

    position = len(preceding) + 1
    if position > policy.max_daily_events:
        issues.append(_issue(
            IssueKind.EXCESSIVE_ENTRIES,
            IssueSeverity.WARNING,
            f"Event #{position} of the day exceeds the limit of {policy.max_daily_events}",
            position=position,
            limit=policy.max_daily_events
        ))

    hour = candidate.occurred_at.hour
    if hour >= policy.gate_close_hour or hour < policy.gate_open_hour:
        issues.append(_issue(
            IssueKind.UNUSUAL_TIME,
            IssueSeverity.INFO,
            f"Gate activity at {candidate.occurred_at.strftime('%H:%M')} outside "
            f"{policy.gate_open_hour:02d}:00-{policy.gate_close_hour:02d}:00",
            hour=hour
        ))

    if policy.flag_weekend_entries:
        weekday = _weekday_name(candidate.day)
        if weekday in policy.weekend_days:
            issues.append(_issue(
                IssueKind.WEEKEND_ENTRY,
                IssueSeverity.INFO,
                f"Gate activity on {weekday}",
                weekday=weekday
            ))

    return issues


def classify_sequence(
    events: Sequence[SequenceItem],
    policy: GatePolicy,
    close_day: bool = False
) -> List[List[ValidationIssue]]:
    """
    Issues of every event of a resident-day, index-aligned with ``events``

    With ``close_day`` the day is treated as finished and a trailing unmatched
    ENTRY is reported as MISSING_OUT.
    """
    results = [classify_candidate(event, events[:index], policy) for index, event in enumerate(events)]

    if close_day and events and events[-1].kind == EventKind.ENTRY.value:
        already = any(issue.kind == IssueKind.MISSING_OUT for issue in results[-1])
        if not already:
            results[-1].append(_issue(
                IssueKind.MISSING_OUT,
                IssueSeverity.ERROR,
                "Day closed with an ENTRY that has no matching EXIT",
                open_entry_event_id=events[-1].event_id
            ))

    return results


def has_errors(issues: Sequence[ValidationIssue]) -> bool:
    return any(issue.severity == IssueSeverity.ERROR for issue in issues)
