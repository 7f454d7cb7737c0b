from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Protocol
from zoneinfo import ZoneInfo
import re

__all__ = ["now_utc", "now_utc_min_str", "Clock", "LocalClock", "FixedClock",
           "local_date_str", "local_time_str", "parse_date", "format_date",
           "is_valid_date_str", "is_valid_time_str", "time_to_minutes",
           "normalize_time_str"]

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


def now_utc() -> datetime:
    """获取当前 UTC 时间"""
    return datetime.now(timezone.utc)

def now_utc_min_str() -> str:
    """获取当前 UTC 时间字符串，格式: 'YYYY-MM-DD HH:MM'"""
    return now_utc().strftime("%Y-%m-%d %H:%M")


class Clock(Protocol):
    def now(self) -> datetime:
        """返回用户本地时区的当前时间"""
        ...


class LocalClock:
    """按用户时区读取系统时间"""

    def __init__(self, user_tz: str) -> None:
        self.tz = ZoneInfo(user_tz)

    def now(self) -> datetime:
        return now_utc().astimezone(self.tz)


@dataclass
class FixedClock:
    """固定时间的时钟，手动推进，用于模拟检查节拍"""
    current: datetime

    def now(self) -> datetime:
        return self.current

    def set(self, value: datetime) -> None:
        self.current = value


def local_date_str(dt: datetime) -> str:
    """'YYYY-MM-DD'"""
    return dt.strftime("%Y-%m-%d")

def local_time_str(dt: datetime) -> str:
    """'HH:MM'"""
    return dt.strftime("%H:%M")


def is_valid_date_str(value: object) -> bool:
    if not isinstance(value, str) or not _DATE_RE.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True

def is_valid_time_str(value: object) -> bool:
    return isinstance(value, str) and _TIME_RE.match(value) is not None


def parse_date(value: str) -> date:
    return date.fromisoformat(value)

def format_date(value: date) -> str:
    return value.isoformat()


def time_to_minutes(value: str | None) -> int | None:
    """'HH:MM' -> 从零点开始的分钟数, 格式不对返回 None"""
    if not value:
        return None
    m = _TIME_RE.match(value.strip())
    if m is None:
        return None
    return int(m.group(1)) * 60 + int(m.group(2))

def normalize_time_str(value: str) -> str:
    """'9:05' -> '09:05'，调用前需先用 is_valid_time_str 校验"""
    minutes = time_to_minutes(value)
    return f"{minutes // 60:02d}:{minutes % 60:02d}"
