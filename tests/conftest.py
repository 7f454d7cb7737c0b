"""Pytest configuration and fixtures."""

import copy
from datetime import datetime

import pytest

from utils import FixedClock
from world.reminder import ReminderSweep


class FakeStore:
    """In-memory stand-in for storage.reminder."""

    def __init__(self, data=None):
        self.data = data if data is not None else {}
        self.notified_dates = set()
        self.reads = 0
        self.writes = []
        self.read_error = None
        self.write_error = None
        self.has_notified_error = None
        self.mark_error = None

    async def read_reminder_data(self):
        self.reads += 1
        if self.read_error is not None:
            raise self.read_error
        return copy.deepcopy(self.data)

    async def write_reminder_data(self, data):
        if self.write_error is not None:
            raise self.write_error
        self.writes.append(copy.deepcopy(data))
        self.data = copy.deepcopy(data)

    async def has_notified_today(self, date):
        if self.has_notified_error is not None:
            raise self.has_notified_error
        return date in self.notified_dates

    async def mark_notified_today(self, date):
        if self.mark_error is not None:
            raise self.mark_error
        self.notified_dates.add(date)


class FakeNotifier:
    def __init__(self):
        self.reminders = []
        self.digests = []
        self.badges = []

    async def notify_reminder(self, item):
        self.reminders.append(item)

    async def notify_digest(self, date, items):
        self.digests.append((date, list(items)))

    async def notify_badge(self, date, count):
        self.badges.append((date, count))


def make_record(reminder_id, date, **fields):
    """Raw store record with camelCase keys, like the persisted document."""
    record = {"id": reminder_id, "date": date, "completed": False, "title": reminder_id}
    record.update(fields)
    return record


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 5, 5, 9, 0))


@pytest.fixture
def sweep(store, clock, notifier):
    return ReminderSweep(store, clock, notifier, interval_seconds=0.01, first_delay_seconds=0.01)
