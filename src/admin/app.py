from __future__ import annotations

import asyncio
import time
from datetime import timedelta
from typing import Any

import config.settings as settings
from datamodel import CorruptStoreError
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import RedirectResponse
from logger import logger
from metrics import runtime_metrics
from utils import is_valid_date_str, local_date_str, parse_date
from world.recurrence import expand

from .auth import require_admin_auth
from .schemas import BadgeResponse, OccurrenceItem, RuntimeControl, ShutdownRequest
from .logs import LOG_STREAMS, LogQuery, log_path, query_logs

# 展开查询最多跨一年
MAX_EXPAND_DAYS = 366


def create_app(control: RuntimeControl) -> FastAPI:
    app = FastAPI(title="Reminder Sweep Admin API", version="1.0.0")
    sweep = control.sweep

    def health_payload() -> dict[str, Any]:
        return {
            "status": "ok",
            "now_utc": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "uptime_seconds": max(0.0, time.time() - control.started_at),
            "shutdown_requested": control.shutdown_event.is_set(),
        }

    @app.get("/", include_in_schema=False)
    async def home() -> RedirectResponse:
        return RedirectResponse(url="/healthz")

    @app.get("/healthz", include_in_schema=False)
    async def healthz() -> dict[str, Any]:
        return health_payload()

    @app.get("/api/v1/health")
    async def api_health() -> dict[str, Any]:
        return health_payload()

    @app.get("/api/v1/metrics")
    async def get_metrics(request: Request) -> dict[str, Any]:
        await require_admin_auth(request)
        return {
            "runtime": runtime_metrics.snapshot(),
            "components": {"reminder": sweep.get_status()},
            "active_tasks": len(asyncio.all_tasks()),
        }

    @app.get("/api/v1/reminders/today")
    async def get_today(request: Request) -> dict[str, Any]:
        await require_admin_auth(request)
        classified = await sweep.today_overview()
        payload = classified.to_dict()
        payload["date"] = local_date_str(sweep.clock.now())
        return payload

    @app.get("/api/v1/reminders/badge")
    async def get_badge(request: Request) -> BadgeResponse:
        await require_admin_auth(request)
        classified = await sweep.today_overview()
        return BadgeResponse(date=local_date_str(sweep.clock.now()), count=classified.count)

    @app.get("/api/v1/reminders/{reminder_id}/occurrences")
    async def get_occurrences(
        reminder_id: str,
        request: Request,
        start: str,
        end: str,
        include_anchor: bool = True,
    ) -> dict[str, Any]:
        await require_admin_auth(request)
        if not is_valid_date_str(start) or not is_valid_date_str(end):
            raise HTTPException(status_code=400, detail="start/end 需要 YYYY-MM-DD 格式")
        if start > end:
            raise HTTPException(status_code=400, detail="start 不能晚于 end")
        if parse_date(end) - parse_date(start) > timedelta(days=MAX_EXPAND_DAYS):
            raise HTTPException(status_code=400, detail=f"查询范围不能超过 {MAX_EXPAND_DAYS} 天")

        try:
            reminders = await sweep.load_reminders()
        except CorruptStoreError as e:
            raise HTTPException(status_code=503, detail=str(e))

        reminder = next((r for r in reminders.values() if r.id == reminder_id), None)
        if reminder is None:
            raise HTTPException(status_code=404, detail="提醒不存在")

        items = [
            OccurrenceItem(
                instance_id=o.instance_id,
                original_id=o.original_id,
                date=o.date,
                end_date=o.end_date,
                time=o.time,
                end_time=o.end_time,
                title=o.title,
                note=o.note,
                priority=o.priority.value,
                completed=o.completed,
                notified=o.notified,
            )
            for o in expand(reminder, start, end, include_anchor=include_anchor)
        ]
        return {"id": reminder_id, "start": start, "end": end, "items": items, "total": len(items)}

    @app.post("/api/v1/reminders/check")
    async def trigger_check(request: Request) -> dict[str, Any]:
        auth_info = await require_admin_auth(request)
        logger.info(f"收到手动检查请求: by={auth_info['user']}")
        await sweep.check_reminders()
        return {"ok": True, "status": sweep.get_status()}

    @app.get("/api/v1/logs")
    async def get_logs(
        request: Request,
        lines: int = 200,
        levels: str | None = None,
        q: str | None = None,
        reminder_id: str | None = None,
        stream: str = "main",
    ) -> dict[str, Any]:
        await require_admin_auth(request)
        if stream not in LOG_STREAMS:
            raise HTTPException(status_code=400, detail=f"stream 只能是 {', '.join(LOG_STREAMS)}")

        query = LogQuery.build(
            lines,
            levels=levels.split(",") if levels else None,
            keyword=q,
            reminder_id=reminder_id,
        )
        target_path = log_path(settings.ADMIN_LOG_FILE, stream)
        entries = await asyncio.to_thread(query_logs, target_path, query)
        return {
            "stream": stream,
            "file": str(target_path),
            "levels": sorted(query.levels),
            "entries": entries,
            "total": len(entries),
        }

    @app.post("/api/v1/admin/shutdown")
    async def admin_shutdown(payload: ShutdownRequest, request: Request) -> dict[str, Any]:
        auth_info = await require_admin_auth(request)
        logger.warning(f"收到远程关闭请求: by={auth_info['user']}, reason={payload.reason}")
        control.shutdown_event.set()
        return {"ok": True, "action": "shutdown", "reason": payload.reason}

    return app
