from datetime import datetime

import pytest
from pydantic import ValidationError

from app.schemas.facility import GatePolicy
from app.services.issue_classifier import SequenceItem, classify_candidate, classify_sequence, has_errors

MONDAY = "2025-01-06"
SUNDAY = "2025-01-05"


def item(kind, hhmm, day=MONDAY, event_id=None):
    return SequenceItem(kind=kind, occurred_at=datetime.fromisoformat(f"{day}T{hhmm}:00"), day=day, event_id=event_id)


def kinds(issues):
    return sorted(issue.kind.value for issue in issues)


def policy(**overrides):
    values = {
        "short_duration_minutes": 5,
        "duplicate_window_seconds": 120,
        "max_daily_events": 10,
        "gate_open_hour": 5,
        "gate_close_hour": 23,
        "weekend_days": ["Sunday"],
        "flag_weekend_entries": True,
    }
    values.update(overrides)
    return GatePolicy(**values)


def test_short_stay_is_flagged():
    issues = classify_candidate(item("EXIT", "09:02"), [item("ENTRY", "09:00", event_id=1)], policy())
    assert kinds(issues) == ["SHORT_DURATION"]
    assert issues[0].severity.value == "warning"
    assert issues[0].data["duration_seconds"] == 120
    assert not has_errors(issues)


def test_normal_stay_has_no_issues():
    issues = classify_candidate(item("EXIT", "17:00"), [item("ENTRY", "09:00")], policy())
    assert issues == []


def test_exit_without_entry_is_missing_in():
    issues = classify_candidate(item("EXIT", "09:00"), [], policy())
    assert kinds(issues) == ["MISSING_IN"]
    assert has_errors(issues)


def test_repeated_entry_inside_window_is_only_a_duplicate():
    issues = classify_candidate(item("ENTRY", "09:01"), [item("ENTRY", "09:00")], policy())
    assert kinds(issues) == ["DUPLICATE_ENTRY"]


def test_repeated_entry_outside_window_is_missing_out():
    issues = classify_candidate(item("ENTRY", "12:00"), [item("ENTRY", "09:00", event_id=3)], policy())
    assert kinds(issues) == ["DUPLICATE_ENTRY", "MISSING_OUT"]
    missing_out = [i for i in issues if i.kind.value == "MISSING_OUT"][0]
    assert missing_out.data["open_entry_event_id"] == 3


def test_repeated_exit_outside_window_is_missing_in():
    preceding = [item("ENTRY", "08:00"), item("EXIT", "09:00")]
    issues = classify_candidate(item("EXIT", "11:00"), preceding, policy())
    assert kinds(issues) == ["DUPLICATE_ENTRY", "MISSING_IN"]


def test_event_count_above_limit_is_excessive():
    preceding = [item("ENTRY", "09:00"), item("EXIT", "10:00"), item("ENTRY", "11:00")]
    issues = classify_candidate(item("EXIT", "12:00"), preceding, policy(max_daily_events=3))
    assert kinds(issues) == ["EXCESSIVE_ENTRIES"]
    assert issues[0].data == {"position": 4, "limit": 3}


def test_activity_outside_gate_hours_is_unusual():
    late = classify_candidate(item("ENTRY", "23:30"), [], policy())
    early = classify_candidate(item("ENTRY", "04:10"), [], policy())
    assert kinds(late) == ["UNUSUAL_TIME"]
    assert kinds(early) == ["UNUSUAL_TIME"]
    assert late[0].severity.value == "info"


def test_weekend_activity_follows_policy():
    assert kinds(classify_candidate(item("ENTRY", "10:00", day=SUNDAY), [], policy())) == ["WEEKEND_ENTRY"]
    assert classify_candidate(item("ENTRY", "10:00", day=SUNDAY), [], policy(flag_weekend_entries=False)) == []


def test_closed_day_reports_trailing_open_entry():
    events = [item("ENTRY", "08:00"), item("EXIT", "12:00"), item("ENTRY", "13:00", event_id=9)]

    open_day = classify_sequence(events, policy())
    assert [kinds(i) for i in open_day] == [[], [], []]

    closed_day = classify_sequence(events, policy(), close_day=True)
    assert kinds(closed_day[2]) == ["MISSING_OUT"]
    assert closed_day[2][0].data["open_entry_event_id"] == 9


def test_sequence_results_align_with_events():
    events = [item("EXIT", "07:00"), item("ENTRY", "08:00"), item("EXIT", "08:01")]
    results = classify_sequence(events, policy())
    assert [kinds(i) for i in results] == [["MISSING_IN"], [], ["SHORT_DURATION"]]


def test_policy_rejects_unknown_weekday():
    with pytest.raises(ValidationError, match="Caturday"):
        GatePolicy(weekend_days=["Caturday"])


def test_policy_normalizes_weekday_names():
    assert GatePolicy(weekend_days=["saturday", " SUNDAY "]).weekend_days == ["Saturday", "Sunday"]


@pytest.mark.parametrize("open_hour,close_hour", [(20, 6), (8, 8)])
def test_policy_rejects_empty_gate_window(open_hour, close_hour):
    with pytest.raises(ValidationError, match="gate_open_hour"):
        GatePolicy(gate_open_hour=open_hour, gate_close_hour=close_hour)


def test_hours_inside_gate_window_are_not_unusual():
    narrow = policy(gate_open_hour=6, gate_close_hour=20)
    flagged = [
        hour for hour in range(24)
        if classify_candidate(item("ENTRY", f"{hour:02d}:30"), [], narrow)
    ]
    assert flagged == [0, 1, 2, 3, 4, 5, 20, 21, 22, 23]
