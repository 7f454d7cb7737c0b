"""日志通道: 把提醒事件写进日志，作为默认的送达方式

其他通道(桌面弹窗、消息推送等)以同样的方式订阅 events.E 中的事件即可。
"""

from events import bus, E
from datamodel import DueItem, Priority
from logger import logger

_PRIORITY_MARK = {
    Priority.HIGH: "!!!",
    Priority.MEDIUM: "!!",
    Priority.LOW: "!",
    Priority.NONE: "",
}


def format_item(item: DueItem) -> str:
    """单行展示: [过期] 2024-05-01 09:00 标题 !!"""
    parts = []
    if item.is_overdue:
        parts.append("[过期]")
    if item.end_date and item.end_date != item.date:
        parts.append(f"{item.date}~{item.end_date}")
    else:
        parts.append(item.date)
    parts.append(item.time if item.time else "全天")
    parts.append(item.title)
    mark = _PRIORITY_MARK.get(item.priority, "")
    if mark:
        parts.append(mark)
    line = " ".join(parts)
    if item.note:
        line += f" ({item.note})"
    return line


def format_digest(date: str, items: list[DueItem]) -> str:
    lines = [f"今日事项 {date}, 共 {len(items)} 项:"]
    lines.extend(f"  - {format_item(item)}" for item in items)
    return "\n".join(lines)


@bus.on(E.REMINDER_DUE)
async def on_reminder_due(item: DueItem) -> None:
    logger.success(f"[提醒] {format_item(item)}")


@bus.on(E.REMINDER_DIGEST)
async def on_reminder_digest(date: str, items: list[DueItem]) -> None:
    logger.success(format_digest(date, items))


@bus.on(E.SWEEP_DONE)
async def on_sweep_done(today: str, badge_count: int) -> None:
    logger.trace(f"角标更新: today={today}, count={badge_count}")


__all__ = ["format_item", "format_digest"]
