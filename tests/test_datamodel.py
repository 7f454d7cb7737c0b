"""Tests for record validation at the store boundary."""

import pytest

from datamodel import (
    InstanceKey,
    MalformedReminderError,
    Priority,
    RepeatEndType,
    RepeatType,
    parse_reminder,
    parse_repeat_rule,
)
from tests.conftest import make_record


def test_parse_minimal_record():
    reminder = parse_reminder("r1", make_record("r1", "2024-05-01"))

    assert reminder.id == "r1"
    assert reminder.date == "2024-05-01"
    assert reminder.completed is False
    assert reminder.notified is False
    assert reminder.time is None
    assert reminder.end_date is None
    assert reminder.priority is Priority.NONE
    assert reminder.repeat is None


@pytest.mark.parametrize(
    "fields",
    [
        {"id": ""},
        {"id": None},
        {"date": None},
        {"date": "2024-13-01"},
        {"date": "05/01/2024"},
        {"completed": "false"},
        {"completed": None},
        {"endDate": "2024-04-30"},
        {"endDate": "tomorrow"},
        {"time": "9am"},
        {"endTime": "25:00"},
    ],
)
def test_malformed_records_are_rejected(fields):
    record = make_record("r1", "2024-05-01")
    record.update(fields)

    with pytest.raises(MalformedReminderError) as exc_info:
        parse_reminder("r1", record)
    assert exc_info.value.record_id == "r1"


def test_non_object_record_is_rejected():
    with pytest.raises(MalformedReminderError):
        parse_reminder("r1", ["not", "a", "record"])


def test_empty_time_means_all_day():
    reminder = parse_reminder("r1", make_record("r1", "2024-05-01", time="", endDate=""))

    assert reminder.time is None
    assert reminder.end_date is None


def test_unknown_priority_falls_back_to_none():
    assert parse_reminder("r1", make_record("r1", "2024-05-01", priority="urgent")).priority is Priority.NONE
    assert parse_reminder("r1", make_record("r1", "2024-05-01", priority="high")).priority is Priority.HIGH


def test_repeat_rule_without_frequency_is_inactive():
    rule = parse_repeat_rule({"enabled": True})

    assert rule.enabled is True
    assert rule.active is False


def test_repeat_rule_that_is_not_an_object_is_disabled():
    rule = parse_repeat_rule("weekly")

    assert rule.enabled is False
    assert rule.active is False


def test_repeat_rule_fields():
    rule = parse_repeat_rule(
        {
            "enabled": True,
            "type": "weekly",
            "interval": "0",
            "weekDays": [3, 1, 9, "x", 1],
            "endType": "count",
            "endCount": 4,
            "completedInstances": ["2024-05-08", 7],
            "notifiedInstances": ["2024-05-08_09:00", "garbage", "2024-05-08_09:00"],
            "instanceModifications": {"2024-05-08": {"note": "moved"}, "2024-05-15": "bad"},
        }
    )

    assert rule.type is RepeatType.WEEKLY
    assert rule.interval == 1
    assert rule.week_days == (1, 3)
    assert rule.end_type is RepeatEndType.COUNT
    assert rule.end_count == 4
    assert rule.completed_instances == frozenset({"2024-05-08"})
    assert rule.notified_instances == [InstanceKey("2024-05-08", "09:00")]
    assert rule.unparsed_notified == ["garbage"]
    assert rule.instance_modifications == {"2024-05-08": {"note": "moved"}}


def test_end_condition_without_parameter_never_ends():
    assert parse_repeat_rule({"enabled": True, "type": "daily", "endType": "date"}).end_type is RepeatEndType.NEVER
    assert parse_repeat_rule({"enabled": True, "type": "daily", "endType": "count", "endCount": 0}).end_type is RepeatEndType.NEVER


def test_instance_key_wire_format():
    key = InstanceKey("2024-05-05", "14:30")

    assert key.to_wire() == "2024-05-05_14:30"
    assert InstanceKey.from_wire("2024-05-05_14:30") == key
    assert InstanceKey.from_wire("2024-05-05") is None
    assert InstanceKey.from_wire("nonsense_14:30") is None
    assert InstanceKey.from_wire(42) is None


def test_base_reminder_completed_through_completed_instances():
    record = make_record(
        "r1", "2024-05-01",
        repeat={"enabled": True, "type": "daily", "completedInstances": ["2024-05-01"]},
    )

    assert parse_reminder("r1", record).is_completed is True


def test_to_dict_keeps_unknown_fields_and_updates_state():
    record = make_record(
        "r1", "2024-05-01",
        blockId="20240501-abc",
        repeat={"enabled": True, "type": "daily", "customField": 1, "notifiedInstances": ["odd"]},
    )
    reminder = parse_reminder("r1", record)
    reminder.notified = True
    reminder.repeat.add_notified(InstanceKey("2024-05-02", "09:00"))

    data = reminder.to_dict()

    assert data["blockId"] == "20240501-abc"
    assert data["notified"] is True
    assert data["repeat"]["customField"] == 1
    assert data["repeat"]["notifiedInstances"] == ["2024-05-02_09:00", "odd"]
    # the parsed record does not alias the caller's dict
    assert "notified" not in record


def test_add_notified_is_monotonic():
    rule = parse_repeat_rule({"enabled": True, "type": "daily"})
    key = InstanceKey("2024-05-02", "09:00")

    assert rule.add_notified(key) is True
    assert rule.add_notified(key) is False
    assert rule.notified_instances == [key]


def test_single_digit_hour_is_zero_padded():
    reminder = parse_reminder("r1", make_record("r1", "2024-05-01", time="9:05", endTime="9:45"))

    assert reminder.time == "09:05"
    assert reminder.end_time == "09:45"
    # the stored record keeps what the user wrote
    assert reminder.to_dict()["time"] == "9:05"
