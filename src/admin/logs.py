"""
日志查询

读取 logger.setup_logging 写出的日志文件，按级别、关键字和提醒 id 过滤。
文件行格式: "2024-05-05 09:00:00.000 | INFO     | world.reminder:_sweep:120 | 消息"
"""

from __future__ import annotations

import re
from collections import deque
from dataclasses import dataclass
from pathlib import Path

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")
LOG_STREAMS = ("main", "error")

_LINE_RE = re.compile(r"^(?P<time>[\d\- :.]+?)\s*\|\s*(?P<level>[A-Z]+)\s*\|\s*(?P<location>[^|]*?)\s*\|\s?(?P<message>.*)$")


@dataclass
class LogQuery:
    lines: int = 200
    levels: frozenset = frozenset()
    keyword: str = ""
    reminder_id: str = ""

    @classmethod
    def build(
        cls,
        lines: int,
        levels: list[str] | None = None,
        keyword: str | None = None,
        reminder_id: str | None = None,
    ) -> "LogQuery":
        wanted = {str(lv).strip().upper() for lv in levels or []}
        return cls(
            lines=max(1, min(lines, 5000)),
            levels=frozenset(wanted & set(LOG_LEVELS)),
            keyword=(keyword or "").strip().lower(),
            reminder_id=(reminder_id or "").strip(),
        )

    def matches(self, line: str) -> bool:
        if self.levels:
            m = _LINE_RE.match(line)
            if m is None or m.group("level") not in self.levels:
                return False
        if self.keyword and self.keyword not in line.lower():
            return False
        # 日志里提醒统一写作 id=<id>，重复实例是 id=<id>_<date>
        if self.reminder_id and f"id={self.reminder_id}" not in line:
            return False
        return True


def log_path(base: str | Path, stream: str) -> Path:
    """error 流对应 setup_logging 写出的 *_error 文件"""
    base_path = Path(base)
    if stream == "error":
        return base_path.with_name(f"{base_path.stem}_error{base_path.suffix}")
    return base_path


def tail_lines(path: Path, lines: int) -> list[str]:
    if not path.exists():
        return []
    buf: deque[str] = deque(maxlen=lines)
    with path.open("r", encoding="utf-8", errors="replace") as f:
        for line in f:
            buf.append(line.rstrip("\n"))
    return list(buf)


def parse_line(line: str) -> dict[str, str]:
    """拆成 time/level/location/message，续行(例如异常堆栈)只有 message"""
    m = _LINE_RE.match(line)
    if m is None:
        return {"time": "", "level": "", "location": "", "message": line}
    return m.groupdict()


def query_logs(path: Path, query: LogQuery) -> list[dict[str, str]]:
    return [parse_line(line) for line in tail_lines(path, query.lines) if query.matches(line)]


__all__ = ["LOG_LEVELS", "LOG_STREAMS", "LogQuery", "log_path", "tail_lines", "parse_line", "query_logs"]
