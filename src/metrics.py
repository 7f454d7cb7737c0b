"""
一个简单的运行时指标收集类，用于统计提醒检查次数、已发出的提醒等信息，供管理 API 展示。
"""

from __future__ import annotations

import time
from dataclasses import dataclass


@dataclass
class RuntimeMetrics:
    sweep_count: int = 0
    sweep_error_count: int = 0
    sweep_total_latency_ms: float = 0.0
    timed_alert_count: int = 0
    digest_count: int = 0
    corrupt_reset_count: int = 0
    skipped_record_count: int = 0
    last_sweep_at: float | None = None

    def record_sweep(self, latency_ms: float, error: bool = False) -> None:
        self.sweep_count += 1
        self.sweep_total_latency_ms += max(0.0, latency_ms)
        self.last_sweep_at = time.time()
        if error:
            self.sweep_error_count += 1

    def record_timed_alert(self) -> None:
        self.timed_alert_count += 1

    def record_digest(self) -> None:
        self.digest_count += 1

    def record_corrupt_reset(self) -> None:
        self.corrupt_reset_count += 1

    def record_skipped_record(self) -> None:
        self.skipped_record_count += 1

    def snapshot(self) -> dict:
        avg_latency_ms = 0.0
        if self.sweep_count > 0:
            avg_latency_ms = self.sweep_total_latency_ms / self.sweep_count

        return {
            "sweep_count": self.sweep_count,
            "sweep_error_count": self.sweep_error_count,
            "sweep_avg_latency_ms": round(avg_latency_ms, 2),
            "timed_alert_count": self.timed_alert_count,
            "digest_count": self.digest_count,
            "corrupt_reset_count": self.corrupt_reset_count,
            "skipped_record_count": self.skipped_record_count,
            "last_sweep_at_epoch": self.last_sweep_at,
            "last_sweep_at_utc": (
                time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(self.last_sweep_at))
                if self.last_sweep_at is not None
                else None
            ),
        }


runtime_metrics = RuntimeMetrics()


__all__ = ["RuntimeMetrics", "runtime_metrics"]
