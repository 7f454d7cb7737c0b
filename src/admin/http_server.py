from __future__ import annotations

import asyncio
import time

import uvicorn
from config.settings import ADMIN_HTTP_HOST, ADMIN_HTTP_PORT, ADMIN_AUTH_TOKEN
from logger import logger
from world.reminder import ReminderSweep

from .app import create_app
from .schemas import RuntimeControl


def build_server(control: RuntimeControl, host: str = ADMIN_HTTP_HOST, port: int = ADMIN_HTTP_PORT) -> uvicorn.Server:
    config = uvicorn.Config(
        create_app(control),
        host=host,
        port=port,
        log_level="info",
        access_log=False,
        # 日志由 logger.InterceptHandler 统一转到 loguru
        log_config=None,
    )
    server = uvicorn.Server(config)
    # 系统信号由 main.py 处理，这里只跟随 shutdown_event 退出
    server.install_signal_handlers = lambda: None
    return server


async def main_loop(shutdown_event: asyncio.Event, sweep: ReminderSweep) -> None:
    """随提醒检查循环一起运行，shutdown_event 置位后退出"""
    if not ADMIN_AUTH_TOKEN:
        logger.warning("ADMIN_AUTH_TOKEN 为空，除健康检查外的接口都会返回 503")

    control = RuntimeControl(shutdown_event=shutdown_event, sweep=sweep, started_at=time.time())
    server = build_server(control)

    async def stop_on_shutdown() -> None:
        await shutdown_event.wait()
        server.should_exit = True

    watcher = asyncio.create_task(stop_on_shutdown())
    logger.info(f"Admin HTTP 服务启动: http://{ADMIN_HTTP_HOST}:{ADMIN_HTTP_PORT}")
    try:
        await server.serve()
    finally:
        watcher.cancel()
        await asyncio.gather(watcher, return_exceptions=True)
        if not shutdown_event.is_set():
            logger.error("Admin HTTP 服务意外退出(端口被占用?)")
        logger.info("Admin HTTP 服务已关闭")
