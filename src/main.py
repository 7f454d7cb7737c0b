from logger import setup_logging, logger
from config.settings import *
setup_logging(
    log_level=LOG_LEVEL,
    log_file=ADMIN_LOG_FILE,
    console_level=CONSOLE_LOG_LEVEL,
)

import asyncio
import signal

import channels.log_channel  # noqa: F401  注册事件处理器
import storage.db_config as db_config
import storage.reminder as reminder_storage
from utils import LocalClock
from world.reminder import BusNotifier, ReminderSweep

shutdown_event = asyncio.Event()

def signal_handler(sig, frame):
    """处理 SIGINT (Ctrl+C) / SIGTERM 信号"""
    logger.info("收到中断信号,正在依次关闭组件...")
    shutdown_event.set()


def create_sweep() -> ReminderSweep:
    return ReminderSweep(
        store=reminder_storage,
        clock=LocalClock(USER_TIMEZONE),
        notifier=BusNotifier(),
        interval_seconds=REMINDER_CHECK_INTERVAL_SECONDS,
        first_delay_seconds=REMINDER_FIRST_CHECK_DELAY_SECONDS,
        notify_start_hour=REMINDER_NOTIFY_START_HOUR,
        include_anchor_instance=REPEAT_NOTIFY_ANCHOR_INSTANCE,
    )


async def main():
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    await db_config.init_db(REMINDER_DB_PATH)
    await reminder_storage.ensure_reminder_data()
    try:
        await reminder_storage.ensure_notify_data()
    except Exception as e:
        logger.warning(f"初始化通知记录文档失败: {e}")

    sweep = create_sweep()
    try:
        tasks = [sweep.run(shutdown_event)]

        if ENABLE_ADMIN_HTTP:
            from admin.http_server import main_loop as admin_http_main
            tasks.append(admin_http_main(shutdown_event, sweep))
        else:
            logger.warning("Admin HTTP 服务已禁用")

        await asyncio.gather(*tasks)
    finally:
        logger.info("关闭数据库连接...")
        await db_config.close_db()
        logger.info("提醒服务已关闭")


def run() -> None:
    logger.info("启动提醒服务...")
    asyncio.run(main())


if __name__ == "__main__":
    run()
