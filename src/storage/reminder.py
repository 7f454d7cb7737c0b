"""
提醒文档存储

提醒和每日汇总记录都以 JSON 文档的形式整体保存在 documents 表里:
- reminders: {reminderId: record}
- notify: {"YYYY-MM-DD": true}

读取时不做字段校验(校验在 datamodel.parse_reminder 里统一完成)，
文档本身无法解析时返回带 code/msg 的错误对象，由检查循环识别并重置。
"""

import json
from typing import Any

import storage.db_config as db_config
from logger import logger

REMINDERS_DOC = "reminders"
NOTIFY_DOC = "notify"


def _ensure_conn():
    if db_config.conn is None:
        raise RuntimeError("数据库未初始化，请先调用 init_db()")


async def _read_document(name: str) -> str | None:
    _ensure_conn()
    async with db_config.conn.execute("SELECT body FROM documents WHERE name = ?", (name,)) as cursor:
        row = await cursor.fetchone()
    return row[0] if row else None


async def _write_document(name: str, data: Any) -> None:
    _ensure_conn()
    body = json.dumps(data, ensure_ascii=False)
    await db_config.conn.execute(
        "INSERT INTO documents (name, body, updated_at_utc) VALUES (?, ?, CURRENT_TIMESTAMP) "
        "ON CONFLICT(name) DO UPDATE SET body = excluded.body, updated_at_utc = CURRENT_TIMESTAMP",
        (name, body),
    )
    await db_config.conn.commit()


async def ensure_reminder_data() -> None:
    """启动时确保提醒文档存在"""
    if await _read_document(REMINDERS_DOC) is None:
        await _write_document(REMINDERS_DOC, {})
        logger.info("已创建空的提醒文档")


async def ensure_notify_data() -> None:
    """启动时确保每日汇总记录文档存在"""
    if await _read_document(NOTIFY_DOC) is None:
        await _write_document(NOTIFY_DOC, {})
        logger.info("已创建空的通知记录文档")


async def read_reminder_data() -> Any:
    """读取整个提醒文档"""
    body = await _read_document(REMINDERS_DOC)
    if body is None:
        return {}
    try:
        return json.loads(body)
    except json.JSONDecodeError as e:
        logger.error(f"提醒文档不是合法 JSON: {e}")
        return {"code": -1, "msg": f"invalid json: {e}"}


async def write_reminder_data(data: dict) -> None:
    """整体覆盖提醒文档"""
    await _write_document(REMINDERS_DOC, data)
    logger.trace(f"写入提醒文档: count={len(data)}")


async def _read_notify_record() -> dict:
    body = await _read_document(NOTIFY_DOC)
    if body is None:
        return {}
    record = json.loads(body)
    if not isinstance(record, dict):
        raise ValueError("通知记录文档不是对象")
    return record


async def has_notified_today(date: str) -> bool:
    """指定日期的每日汇总是否已经发过"""
    record = await _read_notify_record()
    return record.get(date) is True


async def mark_notified_today(date: str) -> None:
    """记录指定日期的每日汇总已发送"""
    try:
        record = await _read_notify_record()
    except (json.JSONDecodeError, ValueError) as e:
        logger.warning(f"通知记录文档损坏, 重新创建: {e}")
        record = {}
    record[date] = True
    await _write_document(NOTIFY_DOC, record)
    logger.trace(f"标记每日汇总已发送: date={date}")
