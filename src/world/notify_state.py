"""
通知去重状态

两套互不干扰的去重机制:
1. 定时提醒: 普通提醒看 notified，重复实例看父提醒 repeat.notifiedInstances 里的 (date, time) 键
2. 每日汇总: 每个日期一条记录，当天汇总发过之后不再发，即使后来新增了全天事项

这里只修改内存中的提醒对象，落盘由检查循环在同一轮内完成。
"""

from __future__ import annotations

from typing import Union

from datamodel import InstanceKey, Occurrence, Reminder
from utils import time_to_minutes

__all__ = ["should_notify_now", "mark_notified"]


def should_notify_now(item: Union[Reminder, Occurrence], today: str, current_time: str) -> bool:
    """今天的、有具体时间的、未完成且未提醒过的事项，当前时间到达或超过提醒时间时返回 True"""
    if item.date != today:
        return False
    if not item.time:
        return False
    if item.is_completed or item.notified:
        return False

    current_minutes = time_to_minutes(current_time)
    reminder_minutes = time_to_minutes(item.time)
    if current_minutes is None or reminder_minutes is None:
        return False
    return current_minutes >= reminder_minutes


def mark_notified(reminder: Reminder, item: Union[Reminder, Occurrence]) -> bool:
    """标记已提醒，返回是否有变化

    reminder 是存储里的原始提醒；item 是它本身，或者它展开出来的某个实例。
    """
    if not item.is_repeat_instance:
        if reminder.notified:
            return False
        reminder.notified = True
        return True

    if reminder.repeat is None:
        return False
    return reminder.repeat.add_notified(InstanceKey(date=item.date, time=item.time or ""))
