__all__ = ["ReminderError", "MalformedReminderError", "CorruptStoreError"]


class ReminderError(Exception):
    """提醒相关错误的基类"""


class MalformedReminderError(ReminderError):
    """单条提醒记录缺少必要字段或字段格式不对, 这条记录会被跳过"""

    def __init__(self, record_id: str, reason: str) -> None:
        super().__init__(f"提醒记录 {record_id!r} 无效: {reason}")
        self.record_id = record_id
        self.reason = reason


class CorruptStoreError(ReminderError):
    """整个提醒文档结构损坏(不是对象, 或者是存储层返回的错误信息)"""

    def __init__(self, payload: object) -> None:
        preview = repr(payload)
        if len(preview) > 200:
            preview = preview[:200] + "..."
        super().__init__(f"提醒数据已损坏: {preview}")
        self.payload = payload
