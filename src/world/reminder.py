"""
提醒检查循环

每隔 REMINDER_CHECK_INTERVAL_SECONDS 秒执行一次检查，启动后稍等片刻先执行一次:
    idle -> loading -> expanding -> notifying -> persisting -> idle

- loading: 读取整个提醒文档；文档损坏时重置为空文档并结束本轮；单条无效记录跳过
- expanding: 重复事项按 [今天, 今天] 展开，与普通事项合并
- notifying: 定时事项逐条提醒(notified / notifiedInstances 去重)，非定时事项每天汇总提醒一次
- persisting: 只有提醒状态有变化时才写回

任何异常都只记录日志，不会打断检查循环。
"""

from __future__ import annotations

import asyncio
import time
from enum import Enum
from typing import Any, Dict, List, Protocol, Tuple, Union

from datamodel import CorruptStoreError, DueItem, MalformedReminderError, Occurrence, Reminder, parse_reminder
from events import Bus, E, bus as default_bus
from logger import logger
from metrics import runtime_metrics
from utils import Clock, local_date_str, local_time_str
from world.classifier import ClassifiedReminders, classify, to_due_item
from world.notify_state import mark_notified, should_notify_now
from world.recurrence import expand

__all__ = ["ReminderStore", "Notifier", "BusNotifier", "SweepState", "ReminderSweep", "validate_payload"]

ReminderLike = Union[Reminder, Occurrence]


class ReminderStore(Protocol):
    """外部文档存储，storage.reminder 模块本身即满足该协议"""

    async def read_reminder_data(self) -> Any: ...

    async def write_reminder_data(self, data: dict) -> None: ...

    async def has_notified_today(self, date: str) -> bool: ...

    async def mark_notified_today(self, date: str) -> None: ...


class Notifier(Protocol):
    async def notify_reminder(self, item: DueItem) -> None: ...

    async def notify_digest(self, date: str, items: List[DueItem]) -> None: ...

    async def notify_badge(self, date: str, count: int) -> None: ...


class BusNotifier:
    """通过事件总线把提醒交给各个通道"""

    def __init__(self, event_bus: Bus = default_bus) -> None:
        self.bus = event_bus

    async def notify_reminder(self, item: DueItem) -> None:
        self.bus.emit(E.REMINDER_DUE, item=item)

    async def notify_digest(self, date: str, items: List[DueItem]) -> None:
        self.bus.emit(E.REMINDER_DIGEST, date=date, items=items)

    async def notify_badge(self, date: str, count: int) -> None:
        self.bus.emit(E.SWEEP_DONE, today=date, badge_count=count)


class SweepState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    EXPANDING = "expanding"
    NOTIFYING = "notifying"
    PERSISTING = "persisting"


def _is_error_marker(payload: dict) -> bool:
    """存储层返回的错误信息形如 {"code": -1, "msg": "..."}；提醒记录本身总是对象"""
    return any(name in payload and not isinstance(payload[name], dict) for name in ("code", "msg"))


def validate_payload(payload: Any) -> dict:
    """提醒文档必须是对象，且不能是存储层返回的错误信息"""
    if not isinstance(payload, dict) or _is_error_marker(payload):
        raise CorruptStoreError(payload)
    return payload


class ReminderSweep:
    def __init__(
        self,
        store: ReminderStore,
        clock: Clock,
        notifier: Notifier | None = None,
        *,
        interval_seconds: float = 30.0,
        first_delay_seconds: float = 5.0,
        notify_start_hour: int = 6,
        include_anchor_instance: bool = False,
    ) -> None:
        self.store = store
        self.clock = clock
        self.notifier = notifier or BusNotifier()
        self.interval_seconds = interval_seconds
        self.first_delay_seconds = first_delay_seconds
        self.notify_start_hour = notify_start_hour
        self.include_anchor_instance = include_anchor_instance

        self.state = SweepState.IDLE
        self.last_check_at_epoch: float | None = None
        self.last_error: str | None = None
        self.last_badge_count = 0
        self._lock = asyncio.Lock()
        self._shutdown_event: asyncio.Event | None = None

    # ----------------- 对外接口 ----------------

    def get_status(self) -> dict[str, object]:
        running = self._shutdown_event is not None and not self._shutdown_event.is_set()
        return {
            "running": running,
            "state": self.state.value,
            "last_check_at_epoch": self.last_check_at_epoch,
            "last_error": self.last_error,
            "badge_count": self.last_badge_count,
        }

    async def run(self, shutdown_event: asyncio.Event) -> None:
        self._shutdown_event = shutdown_event
        logger.info(f"提醒检查循环已启动, 间隔 {self.interval_seconds} 秒")

        delay = self.first_delay_seconds
        while not shutdown_event.is_set():
            try:
                await asyncio.wait_for(shutdown_event.wait(), timeout=delay)
                break
            except asyncio.TimeoutError:
                pass
            await self.check_reminders()
            delay = self.interval_seconds

        logger.info("提醒检查循环已关闭")

    async def check_reminders(self) -> None:
        """执行一次完整检查，不抛出异常"""
        async with self._lock:
            started = time.perf_counter()
            error = False
            try:
                await self._sweep()
                self.last_error = None
            except Exception as e:
                error = True
                self.last_error = str(e)
                logger.exception(f"检查提醒失败: {e}")
            finally:
                self.state = SweepState.IDLE
                self.last_check_at_epoch = time.time()
                runtime_metrics.record_sweep((time.perf_counter() - started) * 1000, error=error)

    async def load_reminders(self) -> Dict[str, Reminder]:
        """读取并校验提醒文档，文档损坏时抛出 CorruptStoreError"""
        payload = validate_payload(await self.store.read_reminder_data())
        return self._parse_records(payload)

    async def today_overview(self) -> ClassifiedReminders:
        """今天的四组事项(已排序)，供展示层使用，不修改任何状态"""
        today = local_date_str(self.clock.now())
        try:
            reminders = await self.load_reminders()
        except CorruptStoreError as e:
            logger.warning(f"读取今日事项失败: {e}")
            return ClassifiedReminders()
        return classify((item for _, item in self._merge(reminders, today)), today)

    # ----------------- 检查流程 ----------------

    async def _sweep(self) -> None:
        now = self.clock.now()
        today, current_time = local_date_str(now), local_time_str(now)

        # 只在 notify_start_hour 点之后进行提醒检查
        if now.hour < self.notify_start_hour:
            logger.trace(f"当前时间 {current_time} 早于 {self.notify_start_hour}:00, 跳过本轮检查")
            return

        self.state = SweepState.LOADING
        payload = await self.store.read_reminder_data()
        try:
            payload = validate_payload(payload)
        except CorruptStoreError as e:
            logger.warning(f"检测到损坏的提醒数据，重新初始化: {e}")
            runtime_metrics.record_corrupt_reset()
            await self.store.write_reminder_data({})
            return
        reminders = self._parse_records(payload, record_skips=True)

        self.state = SweepState.EXPANDING
        merged = self._merge(reminders, today)

        self.state = SweepState.NOTIFYING
        changed_keys = await self._notify_timed(reminders, merged, today, current_time)
        classified = classify((item for _, item in merged), today)
        await self._notify_digest(classified, today)
        self.last_badge_count = classified.count
        await self._safe_notify(self.notifier.notify_badge(today, classified.count), "角标")

        self.state = SweepState.PERSISTING
        if changed_keys:
            await self._persist(payload, reminders, changed_keys)

        logger.debug(
            f"提醒检查完成: today={today}, time={current_time}, reminders={len(reminders)}, "
            f"items={len(merged)}, due={classified.count}, changed={len(changed_keys)}"
        )

    def _parse_records(self, payload: dict, record_skips: bool = False) -> Dict[str, Reminder]:
        reminders: Dict[str, Reminder] = {}
        for key, raw in payload.items():
            try:
                reminders[key] = parse_reminder(key, raw)
            except MalformedReminderError as e:
                if record_skips:
                    logger.warning(f"跳过无效提醒: {e}")
                    runtime_metrics.record_skipped_record()
        return reminders

    def _merge(self, reminders: Dict[str, Reminder], today: str) -> List[Tuple[str, ReminderLike]]:
        """原始事项 + 今天的重复实例, 每项附带所属提醒在文档里的键"""
        merged: List[Tuple[str, ReminderLike]] = []
        for key, reminder in reminders.items():
            occurrences = expand(reminder, today, today, self.include_anchor_instance) if reminder.is_recurring else []
            anchor_replaced = any(o.date == reminder.date for o in occurrences)
            if not anchor_replaced:
                merged.append((key, reminder))
            merged.extend((key, o) for o in occurrences)
        return merged

    async def _notify_timed(
        self,
        reminders: Dict[str, Reminder],
        merged: List[Tuple[str, ReminderLike]],
        today: str,
        current_time: str,
    ) -> set:
        """定时提醒，先标记再发送，保证同一事项最多提醒一次"""
        changed_keys: set = set()
        for key, item in merged:
            if not should_notify_now(item, today, current_time):
                continue
            # 重复实例的状态记在父提醒上
            if mark_notified(reminders[key], item):
                changed_keys.add(key)
            logger.info(f"定时提醒: id={item.id}, title={item.title!r}, time={item.time}")
            runtime_metrics.record_timed_alert()
            await self._safe_notify(self.notifier.notify_reminder(to_due_item(item, today)), f"定时提醒 {item.id}")
        return changed_keys

    async def _notify_digest(self, classified: ClassifiedReminders, today: str) -> None:
        items = classified.digest_items()
        if not items:
            return

        try:
            already = await self.store.has_notified_today(today)
        except Exception as e:
            logger.warning(f"检查每日通知状态失败, 按未通知处理: {e}")
            already = False
        if already:
            logger.trace(f"今天 {today} 已发送过每日汇总")
            return

        try:
            await self.store.mark_notified_today(today)
        except Exception as e:
            # 标记失败不影响本次提醒，最坏情况下一轮会再提醒一次
            logger.warning(f"标记每日通知状态失败: {e}")

        logger.info(f"每日汇总提醒: date={today}, count={len(items)}")
        runtime_metrics.record_digest()
        await self._safe_notify(self.notifier.notify_digest(today, items), "每日汇总")

    async def _persist(self, payload: dict, reminders: Dict[str, Reminder], changed_keys: set) -> None:
        data = dict(payload)
        for key in changed_keys:
            data[key] = reminders[key].to_dict()
        try:
            await self.store.write_reminder_data(data)
        except Exception as e:
            logger.warning(f"保存提醒状态失败, 下一轮可能重复提醒: {e}")

    @staticmethod
    async def _safe_notify(coro, what: str) -> None:
        try:
            await coro
        except Exception as e:
            logger.opt(exception=e).error(f"发送{what}失败: {e}")
