"""
重复事项展开

把提醒上的 repeat 规则在给定日期区间内展开成具体实例(Occurrence)。
- 标准频率(每天/每周/每月/每年)交给 dateutil.rrule，按起始日 reminder.date 锚定
- 每月 31 号这类在部分月份不存在的日期，当月直接没有实例(rrule 的默认行为)，不做月末收敛
- 艾宾浩斯复习按固定天数偏移生成

expand() 是纯函数: 不修改传入的提醒，同样的输入总是得到同样的输出，任何异常都降级为空列表。
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional

from dateutil.rrule import DAILY, MONTHLY, WEEKLY, YEARLY, rrule

from datamodel import InstanceKey, Occurrence, Priority, Reminder, RepeatEndType, RepeatRule, RepeatType
from logger import logger
from utils import format_date, is_valid_time_str, normalize_time_str, parse_date

__all__ = ["expand", "EBBINGHAUS_OFFSETS"]

_RRULE_FREQ = {
    RepeatType.DAILY: DAILY,
    RepeatType.WEEKLY: WEEKLY,
    RepeatType.MONTHLY: MONTHLY,
    RepeatType.YEARLY: YEARLY,
}

# 起始日当天算第 0 次
EBBINGHAUS_OFFSETS = (0, 1, 2, 4, 7, 15)

_MISSING = object()


def _as_date(value: date | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_date(value)


def _rrule_weekday(week_day: int) -> int:
    """存储里 0=周日, dateutil 里 0=周一"""
    return (week_day + 6) % 7


def _build_rrule(rule: RepeatRule, anchor: date) -> rrule:
    kwargs: dict = {
        "dtstart": datetime.combine(anchor, datetime.min.time()),
        "interval": rule.interval,
    }
    if rule.type is RepeatType.WEEKLY and rule.week_days:
        kwargs["byweekday"] = [_rrule_weekday(d) for d in rule.week_days]
    elif rule.type is RepeatType.MONTHLY and rule.month_days:
        kwargs["bymonthday"] = list(rule.month_days)
    elif rule.type is RepeatType.YEARLY and rule.months:
        kwargs["bymonth"] = list(rule.months)
        kwargs["bymonthday"] = anchor.day

    if rule.end_type is RepeatEndType.COUNT:
        kwargs["count"] = rule.end_count
    elif rule.end_type is RepeatEndType.DATE:
        kwargs["until"] = datetime.combine(parse_date(rule.end_date), datetime.min.time())

    return rrule(_RRULE_FREQ[rule.type], **kwargs)


def _ebbinghaus_dates(rule: RepeatRule, anchor: date) -> List[date]:
    dates = [anchor + timedelta(days=offset) for offset in EBBINGHAUS_OFFSETS]
    if rule.end_type is RepeatEndType.COUNT:
        dates = dates[: rule.end_count]
    elif rule.end_type is RepeatEndType.DATE:
        until = parse_date(rule.end_date)
        dates = [d for d in dates if d <= until]
    return dates


def _pattern_dates(rule: RepeatRule, anchor: date, start: date, end: date) -> Iterable[date]:
    """区间 [start, end] 内满足规则的日期，升序"""
    if end < anchor:
        return []
    if rule.type is RepeatType.EBBINGHAUS:
        return [d for d in _ebbinghaus_dates(rule, anchor) if start <= d <= end]

    window_start = datetime.combine(start, datetime.min.time())
    window_end = datetime.combine(end, datetime.min.time())
    return [dt.date() for dt in _build_rrule(rule, anchor).between(window_start, window_end, inc=True)]


def _override_time(modification: dict, name: str, fallback: Optional[str]) -> object:
    """实例覆盖的时间: 空字符串表示改成全天, 格式不对返回 _MISSING"""
    if name not in modification:
        return fallback
    value = modification[name]
    if value in (None, ""):
        return None
    if is_valid_time_str(value):
        return normalize_time_str(value)
    return _MISSING


def _build_occurrence(reminder: Reminder, day: date, span_days: Optional[int]) -> Optional[Occurrence]:
    rule = reminder.repeat
    day_str = format_date(day)
    modification = rule.instance_modifications.get(day_str, {})

    time = _override_time(modification, "time", reminder.time)
    end_time = _override_time(modification, "endTime", reminder.end_time)
    if time is _MISSING or end_time is _MISSING:
        logger.warning(f"重复实例的时间覆盖无效, 跳过该实例: id={reminder.id}, date={day_str}")
        return None

    title = modification.get("title")
    note = modification.get("note")
    priority = Priority.parse(modification["priority"]) if "priority" in modification else reminder.priority

    return Occurrence(
        instance_id=f"{reminder.id}_{day_str}",
        original_id=reminder.id,
        date=day_str,
        end_date=format_date(day + timedelta(days=span_days)) if span_days is not None else None,
        time=time,
        end_time=end_time,
        title=title if isinstance(title, str) and title else reminder.title,
        note=note if isinstance(note, str) and note else reminder.note,
        priority=priority,
        category_id=reminder.category_id,
        completed=day_str in rule.completed_instances,
        notified=rule.is_notified(InstanceKey(date=day_str, time=time or "")),
    )


def expand(
    reminder: Reminder,
    range_start: date | str,
    range_end: date | str,
    include_anchor: bool = False,
) -> List[Occurrence]:
    """展开重复事项在 [range_start, range_end] (含两端) 内的实例

    include_anchor=False 时去掉与原始事项同一天的实例，当天由原始事项本身代表。
    """
    rule = reminder.repeat
    if rule is None or not rule.active:
        return []

    try:
        start, end = _as_date(range_start), _as_date(range_end)
        if start > end:
            return []
        anchor = parse_date(reminder.date)
        span_days = (parse_date(reminder.end_date) - anchor).days if reminder.end_date else None
        days = _pattern_dates(rule, anchor, start, end)
    except Exception as e:
        logger.opt(exception=e).warning(f"展开重复规则失败, 按无实例处理: id={reminder.id}, error={e}")
        return []

    result: dict[tuple[str, str], Occurrence] = {}
    for day in sorted(days):
        day_str = format_date(day)
        if day_str in rule.exclude_dates:
            continue
        if day_str == reminder.date and not include_anchor:
            continue
        key = (reminder.id, day_str)
        if key in result:
            continue
        occurrence = _build_occurrence(reminder, day, span_days)
        if occurrence is not None:
            result[key] = occurrence

    logger.trace(f"展开重复规则: id={reminder.id}, range=[{start}, {end}], count={len(result)}")
    return list(result.values())
