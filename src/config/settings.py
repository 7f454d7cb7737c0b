import os
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from logger import logger
load_dotenv()

__all__ = [
    "USER_TIMEZONE",
    "REMINDER_DB_PATH",
    "REMINDER_CHECK_INTERVAL_SECONDS", "REMINDER_FIRST_CHECK_DELAY_SECONDS",
    "REMINDER_NOTIFY_START_HOUR", "REPEAT_NOTIFY_ANCHOR_INSTANCE",
    "ENABLE_ADMIN_HTTP", "ADMIN_HTTP_HOST", "ADMIN_HTTP_PORT", "ADMIN_AUTH_TOKEN",
    "ADMIN_LOG_FILE", "LOG_LEVEL", "CONSOLE_LOG_LEVEL",
]


def _parse_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on", "y")


def _parse_float(name: str, default: float, minimum: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"{name} 非法: {raw}, 已回退到 {default}")
        return default
    if value < minimum:
        logger.warning(f"{name} 不能小于 {minimum}, 已回退到 {default}")
        return default
    return value


# 用户时区, 所有 "今天" / "现在" 都按这个时区计算
USER_TIMEZONE = os.getenv("USER_TIMEZONE", "Asia/Shanghai")
try:
    ZoneInfo(USER_TIMEZONE)
except (ZoneInfoNotFoundError, ValueError):
    logger.critical(f"USER_TIMEZONE 非法: {USER_TIMEZONE}, 需要 IANA 时区名, 例如 Asia/Shanghai")
    exit(0)


# 存储
REMINDER_DB_PATH = os.getenv("REMINDER_DB_PATH", "data/reminders.db")


# 提醒检查
REMINDER_CHECK_INTERVAL_SECONDS = _parse_float("REMINDER_CHECK_INTERVAL_SECONDS", 30.0, 1.0)
REMINDER_FIRST_CHECK_DELAY_SECONDS = _parse_float("REMINDER_FIRST_CHECK_DELAY_SECONDS", 5.0, 0.0)

try:
    REMINDER_NOTIFY_START_HOUR = int(os.getenv("REMINDER_NOTIFY_START_HOUR", "6"))
except ValueError:
    REMINDER_NOTIFY_START_HOUR = 6
    logger.warning("REMINDER_NOTIFY_START_HOUR 非法, 已回退到 6 点")
if not 0 <= REMINDER_NOTIFY_START_HOUR <= 23:
    logger.warning(f"REMINDER_NOTIFY_START_HOUR 超出范围: {REMINDER_NOTIFY_START_HOUR}, 已回退到 6 点")
    REMINDER_NOTIFY_START_HOUR = 6

# 重复事项在其起始日当天是否也作为独立实例提醒(默认由原始事项代表当天)
REPEAT_NOTIFY_ANCHOR_INSTANCE = _parse_bool("REPEAT_NOTIFY_ANCHOR_INSTANCE", False)


# Admin API
ENABLE_ADMIN_HTTP = _parse_bool("ENABLE_ADMIN_HTTP", True)
ADMIN_HTTP_HOST = os.getenv("ADMIN_HTTP_HOST", "127.0.0.1")
ADMIN_HTTP_PORT = int(os.getenv("ADMIN_HTTP_PORT", "18080"))
ADMIN_AUTH_TOKEN = os.getenv("ADMIN_AUTH_TOKEN", "")


# 日志
ADMIN_LOG_FILE = os.getenv("ADMIN_LOG_FILE", "logs/reminders.log")
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG").strip().upper()
CONSOLE_LOG_LEVEL = os.getenv("CONSOLE_LOG_LEVEL", "INFO").strip().upper()
