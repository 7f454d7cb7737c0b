"""Tests for repeat rule expansion."""

from datetime import date

import pytest

from datamodel import parse_reminder
from tests.conftest import make_record
from world.recurrence import expand


def _reminder(date_str="2024-05-01", repeat=None, **fields):
    return parse_reminder("r1", make_record("r1", date_str, repeat=repeat, **fields))


def _dates(occurrences):
    return [o.date for o in occurrences]


def test_weekly_rule_anchored_on_wednesday():
    reminder = _reminder(repeat={"enabled": True, "type": "weekly", "interval": 1})

    occurrences = expand(reminder, "2024-05-01", "2024-05-22", include_anchor=True)

    assert _dates(occurrences) == ["2024-05-01", "2024-05-08", "2024-05-15", "2024-05-22"]


def test_anchor_day_is_excluded_by_default():
    reminder = _reminder(repeat={"enabled": True, "type": "weekly", "interval": 1})

    assert _dates(expand(reminder, "2024-05-01", "2024-05-22")) == ["2024-05-08", "2024-05-15", "2024-05-22"]


@pytest.mark.parametrize("repeat", [None, {"enabled": False, "type": "daily"}, {"enabled": True}, {"enabled": True, "type": "hourly"}])
def test_disabled_or_malformed_rule_yields_nothing(repeat):
    reminder = _reminder(repeat=repeat)

    assert expand(reminder, "2024-01-01", "2024-12-31") == []


def test_occurrences_stay_inside_range_and_on_pattern():
    reminder = _reminder(repeat={"enabled": True, "type": "daily", "interval": 3})

    occurrences = expand(reminder, "2024-05-05", "2024-05-20", include_anchor=True)

    assert _dates(occurrences) == ["2024-05-07", "2024-05-10", "2024-05-13", "2024-05-16", "2024-05-19"]
    for o in occurrences:
        assert "2024-05-05" <= o.date <= "2024-05-20"
        assert (date.fromisoformat(o.date) - date(2024, 5, 1)).days % 3 == 0


def test_expand_is_idempotent_and_pure():
    reminder = _reminder(repeat={"enabled": True, "type": "daily", "notifiedInstances": ["2024-05-02_"]})
    before = reminder.to_dict()

    first = expand(reminder, "2024-05-01", "2024-05-10")
    second = expand(reminder, date(2024, 5, 1), date(2024, 5, 10))

    assert first == second
    assert reminder.to_dict() == before


def test_no_duplicate_original_id_date_pairs():
    reminder = _reminder(repeat={"enabled": True, "type": "weekly", "weekDays": [0, 1, 2, 3, 4, 5, 6]})

    occurrences = expand(reminder, "2024-05-01", "2024-06-30", include_anchor=True)
    pairs = [(o.original_id, o.date) for o in occurrences]

    assert len(pairs) == len(set(pairs)) == 61


def test_range_before_anchor_or_reversed_is_empty():
    reminder = _reminder(repeat={"enabled": True, "type": "daily"})

    assert expand(reminder, "2024-04-01", "2024-04-30") == []
    assert expand(reminder, "2024-05-10", "2024-05-05") == []


def test_weekly_on_selected_weekdays():
    # 1=Monday, 5=Friday
    reminder = _reminder(repeat={"enabled": True, "type": "weekly", "weekDays": [1, 5]})

    assert _dates(expand(reminder, "2024-05-01", "2024-05-14")) == [
        "2024-05-03", "2024-05-06", "2024-05-10", "2024-05-13",
    ]


def test_monthly_on_31st_skips_short_months():
    reminder = _reminder("2024-01-31", repeat={"enabled": True, "type": "monthly"})

    assert _dates(expand(reminder, "2024-01-01", "2024-06-30")) == ["2024-03-31", "2024-05-31"]


def test_monthly_on_selected_days():
    reminder = _reminder(repeat={"enabled": True, "type": "monthly", "monthDays": [1, 15]})

    assert _dates(expand(reminder, "2024-05-01", "2024-06-30", include_anchor=True)) == [
        "2024-05-01", "2024-05-15", "2024-06-01", "2024-06-15",
    ]


def test_yearly_leap_day_only_in_leap_years():
    reminder = _reminder("2024-02-29", repeat={"enabled": True, "type": "yearly"})

    assert _dates(expand(reminder, "2024-01-01", "2032-12-31")) == ["2028-02-29", "2032-02-29"]


def test_end_by_count_and_by_date():
    by_count = _reminder(repeat={"enabled": True, "type": "daily", "endType": "count", "endCount": 3})
    by_date = _reminder(repeat={"enabled": True, "type": "daily", "endType": "date", "endDate": "2024-05-04"})

    assert _dates(expand(by_count, "2024-05-01", "2024-05-31", include_anchor=True)) == [
        "2024-05-01", "2024-05-02", "2024-05-03",
    ]
    assert _dates(expand(by_date, "2024-05-01", "2024-05-31")) == ["2024-05-02", "2024-05-03", "2024-05-04"]


def test_excluded_dates_are_skipped():
    reminder = _reminder(repeat={"enabled": True, "type": "daily", "excludeDates": ["2024-05-03"]})

    assert _dates(expand(reminder, "2024-05-02", "2024-05-04")) == ["2024-05-02", "2024-05-04"]


def test_ebbinghaus_offsets():
    reminder = _reminder(repeat={"enabled": True, "type": "ebbinghaus"})

    assert _dates(expand(reminder, "2024-05-01", "2024-06-30")) == [
        "2024-05-02", "2024-05-03", "2024-05-05", "2024-05-08", "2024-05-16",
    ]


def test_multi_day_span_keeps_its_length():
    reminder = _reminder(endDate="2024-05-03", repeat={"enabled": True, "type": "weekly"})

    occurrences = expand(reminder, "2024-05-08", "2024-05-15")

    assert [(o.date, o.end_date) for o in occurrences] == [
        ("2024-05-08", "2024-05-10"),
        ("2024-05-15", "2024-05-17"),
    ]


def test_instance_state_is_resolved_per_date():
    reminder = _reminder(
        time="09:00",
        note="parent note",
        repeat={
            "enabled": True,
            "type": "daily",
            "completedInstances": ["2024-05-02"],
            "notifiedInstances": ["2024-05-03_09:00"],
            "instanceModifications": {
                "2024-05-04": {"note": "instance note", "time": "10:30", "title": "moved"},
                "2024-05-05": {"time": "later"},
            },
        },
    )

    occurrences = {o.date: o for o in expand(reminder, "2024-05-02", "2024-05-05")}

    assert occurrences["2024-05-02"].completed is True
    assert occurrences["2024-05-03"].completed is False
    assert occurrences["2024-05-03"].notified is True
    assert occurrences["2024-05-03"].note == "parent note"
    assert occurrences["2024-05-04"].note == "instance note"
    assert occurrences["2024-05-04"].time == "10:30"
    assert occurrences["2024-05-04"].title == "moved"
    assert occurrences["2024-05-04"].notified is False
    # an unusable time override drops only that slot
    assert "2024-05-05" not in occurrences


def test_instance_identity():
    reminder = _reminder(repeat={"enabled": True, "type": "daily"})

    occurrence = expand(reminder, "2024-05-02", "2024-05-02")[0]

    assert occurrence.instance_id == "r1_2024-05-02"
    assert occurrence.id == "r1_2024-05-02"
    assert occurrence.original_id == "r1"
    assert occurrence.is_repeat_instance is True


def test_time_override_is_zero_padded():
    reminder = _reminder(
        time="10:00",
        repeat={"enabled": True, "type": "daily", "instanceModifications": {"2024-05-02": {"time": "9:30"}}},
    )

    occurrence = expand(reminder, "2024-05-02", "2024-05-02")[0]

    assert occurrence.time == "09:30"
    assert occurrence.key.to_wire() == "2024-05-02_09:30"
