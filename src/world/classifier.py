"""
今日事项分类

把原始提醒和展开出的重复实例合在一起，挑出今天需要处理的事项，分成四组并排序:
过期 -> 今天有具体时间 -> 今天无时间 -> 今天全天。通知弹窗按这个顺序逐条展示，顺序不能变。

没有 time 的事项都算全天事项，所以"今天无时间"一组总是空的。
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Iterable, List, Union

from datamodel import UNNAMED_TITLE, DueItem, Occurrence, Reminder
from utils import time_to_minutes

__all__ = ["ClassifiedReminders", "classify", "badge_count", "is_due", "is_all_day", "to_due_item"]

ReminderLike = Union[Reminder, Occurrence]


@dataclass
class ClassifiedReminders:
    overdue: List[DueItem] = field(default_factory=list)
    timed_today: List[DueItem] = field(default_factory=list)
    untimed_today: List[DueItem] = field(default_factory=list)
    all_day_today: List[DueItem] = field(default_factory=list)

    def merged(self) -> List[DueItem]:
        return [*self.overdue, *self.timed_today, *self.untimed_today, *self.all_day_today]

    def digest_items(self) -> List[DueItem]:
        """每日汇总的内容: 今天的定时事项由单条提醒负责，不进入汇总"""
        return [*self.overdue, *self.untimed_today, *self.all_day_today]

    @property
    def count(self) -> int:
        return len(self.overdue) + len(self.timed_today) + len(self.untimed_today) + len(self.all_day_today)

    def to_dict(self) -> dict:
        return {
            "overdue": [asdict(i) for i in self.overdue],
            "timed_today": [asdict(i) for i in self.timed_today],
            "untimed_today": [asdict(i) for i in self.untimed_today],
            "all_day_today": [asdict(i) for i in self.all_day_today],
            "count": self.count,
        }


def is_all_day(item: ReminderLike) -> bool:
    return not item.time


def is_due(item: ReminderLike, today: str) -> bool:
    """未完成，且日期已到或已过"""
    if item.is_completed:
        return False
    if item.end_date:
        return item.date <= today <= item.end_date or item.end_date < today
    return item.date <= today


def _is_overdue(item: ReminderLike, today: str) -> bool:
    if item.end_date:
        return item.end_date < today
    return item.date < today


def to_due_item(item: ReminderLike, today: str) -> DueItem:
    return DueItem(
        id=item.id,
        original_id=item.original_id,
        title=item.title or UNNAMED_TITLE,
        date=item.date,
        end_date=item.end_date,
        time=item.time,
        end_time=item.end_time,
        note=item.note,
        priority=item.priority,
        category_id=item.category_id,
        is_all_day=is_all_day(item),
        is_overdue=_is_overdue(item, today),
        is_repeat_instance=item.is_repeat_instance,
    )


def _minutes(item: DueItem) -> int:
    """按分钟数比较，"9:05" 排在 "10:00" 前面；无时间记为 -1"""
    minutes = time_to_minutes(item.time)
    return -1 if minutes is None else minutes


def classify(items: Iterable[ReminderLike], today: str) -> ClassifiedReminders:
    result = ClassifiedReminders()
    for item in items:
        if not is_due(item, today):
            continue
        due = to_due_item(item, today)
        if due.is_overdue:
            result.overdue.append(due)
        elif not due.is_all_day and due.time:
            result.timed_today.append(due)
        elif not due.is_all_day:
            result.untimed_today.append(due)
        else:
            result.all_day_today.append(due)

    # 过期: 日期升序，同一天按时间升序(无时间排最前)
    result.overdue.sort(key=lambda i: (i.date, _minutes(i)))
    result.timed_today.sort(key=_minutes)
    result.untimed_today.sort(key=lambda i: i.title)
    result.all_day_today.sort(key=lambda i: i.title)
    return result


def badge_count(items: Iterable[ReminderLike], today: str) -> int:
    """未完成的今日及过期事项总数，用于图标角标"""
    return classify(items, today).count
