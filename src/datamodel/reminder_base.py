"""
提醒数据模型

存储里的提醒文档是 {reminderId: record} 形式的 JSON，字段名为 camelCase。
这里在读取边界上做一次校验，把原始记录转换成下面的 dataclass；之后的代码不再做零散的防御性检查。

注意:
- 日期统一为 "YYYY-MM-DD"；时间读入时补齐为两位小时的 "HH:MM"(例如 "9:05" -> "09:05")
- 写回时以原始记录为底，只覆盖检查循环会修改的字段(notified / repeat.notifiedInstances)，未知字段原样保留
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from datamodel.errors import MalformedReminderError
from utils import is_valid_date_str, is_valid_time_str, normalize_time_str

__all__ = [
    "Priority", "RepeatType", "RepeatEndType",
    "InstanceKey", "RepeatRule", "Reminder", "Occurrence", "DueItem",
    "parse_reminder", "parse_repeat_rule", "UNNAMED_TITLE",
]

UNNAMED_TITLE = "未命名提醒"


class Priority(str, Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def parse(cls, value: object) -> "Priority":
        try:
            return cls(value)
        except ValueError:
            return cls.NONE


class RepeatType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    EBBINGHAUS = "ebbinghaus"  # 艾宾浩斯复习间隔


class RepeatEndType(str, Enum):
    NEVER = "never"
    DATE = "date"
    COUNT = "count"


@dataclass(frozen=True)
class InstanceKey:
    """notifiedInstances 的复合键，存储格式为 "date_time" """
    date: str
    time: str

    def to_wire(self) -> str:
        return f"{self.date}_{self.time}"

    @classmethod
    def from_wire(cls, value: object) -> Optional["InstanceKey"]:
        if not isinstance(value, str):
            return None
        date_part, sep, time_part = value.partition("_")
        if not sep or not is_valid_date_str(date_part):
            return None
        return cls(date=date_part, time=time_part)


@dataclass
class RepeatRule:
    enabled: bool
    type: Optional[RepeatType] = None
    interval: int = 1
    week_days: Tuple[int, ...] = ()     # 0=周日 ... 6=周六
    month_days: Tuple[int, ...] = ()    # 1..31
    months: Tuple[int, ...] = ()        # 1..12
    end_type: RepeatEndType = RepeatEndType.NEVER
    end_date: Optional[str] = None
    end_count: Optional[int] = None
    exclude_dates: frozenset = frozenset()
    completed_instances: frozenset = frozenset()
    notified_instances: List[InstanceKey] = field(default_factory=list)
    unparsed_notified: List[Any] = field(default_factory=list)
    instance_modifications: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @property
    def active(self) -> bool:
        """规则启用且频率可识别时才会生成实例"""
        return self.enabled and self.type is not None

    def is_notified(self, key: InstanceKey) -> bool:
        return key in self.notified_instances

    def add_notified(self, key: InstanceKey) -> bool:
        """只增不减，返回是否有变化"""
        if key in self.notified_instances:
            return False
        self.notified_instances.append(key)
        return True

    def notified_wire(self) -> list:
        return [k.to_wire() for k in self.notified_instances] + list(self.unparsed_notified)


@dataclass
class Reminder:
    id: str
    date: str
    completed: bool
    title: str = ""
    note: str = ""
    end_date: Optional[str] = None
    time: Optional[str] = None
    end_time: Optional[str] = None
    priority: Priority = Priority.NONE
    category_id: Optional[str] = None
    notified: bool = False
    repeat: Optional[RepeatRule] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    is_repeat_instance = False

    @property
    def original_id(self) -> str:
        return self.id

    @property
    def is_recurring(self) -> bool:
        return self.repeat is not None and self.repeat.active

    @property
    def is_completed(self) -> bool:
        # 重复事项的起始日如果在 completedInstances 里，也视为已完成
        if self.completed:
            return True
        return self.is_recurring and self.date in self.repeat.completed_instances

    def to_dict(self) -> Dict[str, Any]:
        data = copy.deepcopy(self.raw)
        if self.notified or "notified" in data:
            data["notified"] = self.notified
        if self.repeat is not None and (self.repeat.notified_instances or self.repeat.unparsed_notified):
            repeat_raw = data.get("repeat")
            if not isinstance(repeat_raw, dict):
                repeat_raw = {}
                data["repeat"] = repeat_raw
            repeat_raw["notifiedInstances"] = self.repeat.notified_wire()
        return data


@dataclass(frozen=True)
class Occurrence:
    """重复规则在某一天的具体实例，每次展开时临时生成，不落盘"""
    instance_id: str
    original_id: str
    date: str
    title: str
    completed: bool
    notified: bool
    end_date: Optional[str] = None
    time: Optional[str] = None
    end_time: Optional[str] = None
    note: str = ""
    priority: Priority = Priority.NONE
    category_id: Optional[str] = None

    is_repeat_instance = True

    @property
    def id(self) -> str:
        return self.instance_id

    @property
    def is_completed(self) -> bool:
        return self.completed

    @property
    def key(self) -> InstanceKey:
        return InstanceKey(date=self.date, time=self.time or "")


@dataclass(frozen=True)
class DueItem:
    """分类后交给展示/通知层的条目"""
    id: str
    original_id: str
    title: str
    date: str
    is_all_day: bool
    is_overdue: bool
    is_repeat_instance: bool = False
    end_date: Optional[str] = None
    time: Optional[str] = None
    end_time: Optional[str] = None
    note: str = ""
    priority: Priority = Priority.NONE
    category_id: Optional[str] = None


# ----------------- 解析 ----------------

def _optional_str(value: object) -> Optional[str]:
    if value is None or value == "":
        return None
    return value if isinstance(value, str) else None


def _int_tuple(value: object, low: int, high: int) -> Tuple[int, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    result = []
    for v in value:
        try:
            n = int(v)
        except (TypeError, ValueError):
            continue
        if low <= n <= high and n not in result:
            result.append(n)
    return tuple(sorted(result))


def _str_set(value: object) -> frozenset:
    if not isinstance(value, (list, tuple, set, frozenset)):
        return frozenset()
    return frozenset(v for v in value if isinstance(v, str))


def parse_repeat_rule(raw: object) -> Optional[RepeatRule]:
    """解析 repeat 字段，规则不合法时返回 enabled=False 的规则而不是报错"""
    if raw is None:
        return None
    if not isinstance(raw, dict):
        return RepeatRule(enabled=False)

    try:
        repeat_type: Optional[RepeatType] = RepeatType(raw.get("type"))
    except ValueError:
        repeat_type = None

    try:
        interval = int(raw.get("interval") or 1)
    except (TypeError, ValueError):
        interval = 1
    interval = max(1, interval)

    try:
        end_type = RepeatEndType(raw.get("endType") or "never")
    except ValueError:
        end_type = RepeatEndType.NEVER

    end_date = raw.get("endDate") if is_valid_date_str(raw.get("endDate")) else None
    try:
        end_count = int(raw["endCount"]) if raw.get("endCount") is not None else None
    except (TypeError, ValueError):
        end_count = None
    # 结束条件缺少对应参数时按永不结束处理
    if end_type is RepeatEndType.DATE and end_date is None:
        end_type = RepeatEndType.NEVER
    if end_type is RepeatEndType.COUNT and (end_count is None or end_count < 1):
        end_type = RepeatEndType.NEVER

    notified: List[InstanceKey] = []
    unparsed: List[Any] = []
    raw_notified = raw.get("notifiedInstances")
    if isinstance(raw_notified, list):
        for entry in raw_notified:
            key = InstanceKey.from_wire(entry)
            if key is None:
                unparsed.append(entry)
            elif key not in notified:
                notified.append(key)

    modifications = raw.get("instanceModifications")
    if not isinstance(modifications, dict):
        modifications = {}

    return RepeatRule(
        enabled=raw.get("enabled") is True,
        type=repeat_type,
        interval=interval,
        week_days=_int_tuple(raw.get("weekDays"), 0, 6),
        month_days=_int_tuple(raw.get("monthDays"), 1, 31),
        months=_int_tuple(raw.get("months"), 1, 12),
        end_type=end_type,
        end_date=end_date,
        end_count=end_count,
        exclude_dates=_str_set(raw.get("excludeDates")),
        completed_instances=_str_set(raw.get("completedInstances")),
        notified_instances=notified,
        unparsed_notified=unparsed,
        instance_modifications={k: v for k, v in modifications.items() if isinstance(v, dict)},
    )


def parse_reminder(key: str, raw: object) -> Reminder:
    """校验并转换一条提醒记录，缺少 id/date 或 completed 不是布尔值时抛出 MalformedReminderError"""
    if not isinstance(raw, dict):
        raise MalformedReminderError(key, "记录不是对象")

    reminder_id = raw.get("id")
    if isinstance(reminder_id, bool) or not isinstance(reminder_id, (str, int)) or reminder_id == "":
        raise MalformedReminderError(key, "缺少 id")
    if not isinstance(raw.get("completed"), bool):
        raise MalformedReminderError(key, "completed 不是布尔值")

    date = raw.get("date")
    if not is_valid_date_str(date):
        raise MalformedReminderError(key, f"date 格式错误: {date!r}")

    end_date = _optional_str(raw.get("endDate"))
    if raw.get("endDate") not in (None, "") and (end_date is None or not is_valid_date_str(end_date)):
        raise MalformedReminderError(key, f"endDate 格式错误: {raw.get('endDate')!r}")
    if end_date is not None and end_date < date:
        raise MalformedReminderError(key, f"endDate {end_date} 早于 date {date}")

    times = {}
    for name in ("time", "endTime"):
        value = raw.get(name)
        if value in (None, ""):
            times[name] = None
        elif is_valid_time_str(value):
            times[name] = normalize_time_str(value)
        else:
            raise MalformedReminderError(key, f"{name} 格式错误: {value!r}")

    title = raw.get("title")
    note = raw.get("note")
    return Reminder(
        id=str(reminder_id),
        date=date,
        completed=raw["completed"],
        title=title if isinstance(title, str) else "",
        note=note if isinstance(note, str) else "",
        end_date=end_date,
        time=times["time"],
        end_time=times["endTime"],
        priority=Priority.parse(raw.get("priority")),
        category_id=_optional_str(raw.get("categoryId")),
        notified=raw.get("notified") is True,
        repeat=parse_repeat_rule(raw.get("repeat")),
        raw=copy.deepcopy(raw),
    )
