"""Tests for today's bucketing and badge count."""

import pytest

from datamodel import UNNAMED_TITLE, parse_reminder
from tests.conftest import make_record
from world.classifier import badge_count, classify, is_due
from world.recurrence import expand

TODAY = "2024-05-05"


def _reminders(*records):
    return [parse_reminder(r["id"], r) for r in records]


def test_multi_day_span_that_ended_is_overdue():
    items = _reminders(make_record("span", "2024-05-01", endDate="2024-05-03"))

    result = classify(items, TODAY)

    assert [i.id for i in result.overdue] == ["span"]
    assert result.overdue[0].is_overdue is True


def test_span_covering_today_is_not_overdue():
    items = _reminders(make_record("span", "2024-05-04", endDate="2024-05-06"))

    result = classify(items, TODAY)

    assert result.overdue == []
    assert [i.id for i in result.all_day_today] == ["span"]


@pytest.mark.parametrize(
    "record",
    [
        make_record("done", "2024-05-01", completed=True),
        make_record("future", "2024-05-06", time="08:00"),
        make_record("later-span", "2024-05-06", endDate="2024-05-08"),
    ],
)
def test_completed_and_future_items_are_not_due(record):
    items = _reminders(record)

    assert is_due(items[0], TODAY) is False
    assert classify(items, TODAY).count == 0


def test_buckets_partition_and_order():
    items = _reminders(
        make_record("old-timed", "2024-05-03", time="18:00"),
        make_record("old-all-day", "2024-05-03"),
        make_record("older", "2024-05-01", time="07:00"),
        make_record("evening", TODAY, time="20:00"),
        make_record("morning", TODAY, time="07:30"),
        make_record("b-all-day", TODAY),
        make_record("a-all-day", TODAY, time=""),
        make_record("future", "2024-05-09"),
    )

    result = classify(items, TODAY)

    assert [i.id for i in result.overdue] == ["older", "old-all-day", "old-timed"]
    assert [i.id for i in result.timed_today] == ["morning", "evening"]
    assert result.untimed_today == []
    assert [i.id for i in result.all_day_today] == ["a-all-day", "b-all-day"]
    assert [i.id for i in result.merged()] == [
        "older", "old-all-day", "old-timed", "morning", "evening", "a-all-day", "b-all-day",
    ]

    ids = [i.id for i in result.merged()]
    assert len(ids) == len(set(ids)) == result.count == 7


def test_missing_title_gets_placeholder():
    items = _reminders(make_record("r1", TODAY, title=""))

    assert classify(items, TODAY).all_day_today[0].title == UNNAMED_TITLE


def test_digest_items_leave_out_timed_today():
    items = _reminders(
        make_record("overdue", "2024-05-04"),
        make_record("timed", TODAY, time="10:00"),
        make_record("all-day", TODAY),
    )

    result = classify(items, TODAY)

    assert [i.id for i in result.digest_items()] == ["overdue", "all-day"]


def test_repeat_instances_are_classified_with_their_parent_id():
    reminder = parse_reminder(
        "r1", make_record("r1", "2024-05-01", time="08:00", repeat={"enabled": True, "type": "daily"})
    )
    occurrences = expand(reminder, TODAY, TODAY)

    result = classify(occurrences, TODAY)

    assert [(i.id, i.original_id, i.is_repeat_instance) for i in result.timed_today] == [
        ("r1_2024-05-05", "r1", True),
    ]


def test_badge_count():
    items = _reminders(
        make_record("overdue", "2024-05-04"),
        make_record("timed", TODAY, time="10:00"),
        make_record("done", TODAY, completed=True),
        make_record("future", "2024-05-06"),
    )

    assert badge_count(items, TODAY) == 2
    assert badge_count([], TODAY) == 0


def test_to_dict_shape():
    items = _reminders(make_record("timed", TODAY, time="10:00", priority="high"))

    data = classify(items, TODAY).to_dict()

    assert data["count"] == 1
    assert data["timed_today"][0]["id"] == "timed"
    assert data["timed_today"][0]["priority"] == "high"
    assert data["overdue"] == []


def test_single_digit_hours_sort_by_time():
    items = _reminders(
        make_record("ten", TODAY, time="10:00"),
        make_record("nine", TODAY, time="9:05"),
        make_record("old-ten", "2024-05-04", time="10:00"),
        make_record("old-nine", "2024-05-04", time="9:05"),
    )

    result = classify(items, TODAY)

    assert [(i.id, i.time) for i in result.timed_today] == [("nine", "09:05"), ("ten", "10:00")]
    assert [i.id for i in result.overdue] == ["old-nine", "old-ten"]
