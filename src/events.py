"""事件总线模块，定义了事件总线类 Bus 及事件名集合 E

提醒检查循环只负责判断"该不该提醒"，真正的送达(弹窗、声音、消息推送)由订阅事件的通道完成。
处理器可以是协程，pyee 会把它调度到当前事件循环上；处理器抛出的异常走 error 事件，不会影响检查循环。
"""

from __future__ import annotations
from pyee.asyncio import AsyncIOEventEmitter
from typing import Awaitable, Callable, Set

from logger import logger

AsyncHandler = Callable[..., Awaitable[None]]

# 事件名集中定义
class E:
    REMINDER_DUE = "reminder.due"            # 单条定时提醒, 参数: item
    REMINDER_DIGEST = "reminder.digest"      # 每日汇总提醒, 参数: date, items
    SWEEP_DONE = "reminder.sweep_done"       # 一次检查完成, 参数: today, badge_count

# 独占事件只允许注册一个处理器
EXCLUSIVE_EVENTS: Set[str] = set()


class Bus(AsyncIOEventEmitter):
    def __init__(self) -> None:
        super().__init__()
        self._exclusive: Set[str] = set()
        super(Bus, self).on("error", self._log_handler_error)

    @staticmethod
    def _log_handler_error(error: Exception) -> None:
        logger.opt(exception=error).error(f"事件处理器执行失败: {error}")

    def on(self, event: str) -> Callable[[AsyncHandler], AsyncHandler]:
        """注册事件处理器装饰器"""
        def decorator(handler: AsyncHandler) -> AsyncHandler:
            if event in EXCLUSIVE_EVENTS:
                if event in self._exclusive:
                    raise RuntimeError(f"独占事件的唯一处理器已注册: {event}")
                self._exclusive.add(event)

            logger.debug(f"注册事件处理器: {event} -> {handler.__name__}")
            super(Bus, self).on(event, handler)
            return handler

        return decorator


bus = Bus()

__all__ = ["bus", "Bus", "E"]
