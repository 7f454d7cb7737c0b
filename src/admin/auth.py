"""管理 API 的令牌校验: 未配置 ADMIN_AUTH_TOKEN 时整个管理 API 关闭(503)"""

from __future__ import annotations

import hmac

import config.settings as settings
from fastapi import HTTPException, Request
from logger import logger

TOKEN_HEADER = "X-Reminder-Token"


def extract_token(request: Request) -> tuple[str | None, str]:
    """返回 (令牌, 来源)，优先 Authorization: Bearer"""
    auth_header = request.headers.get("Authorization", "")
    scheme, _, value = auth_header.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip(), "bearer"
    token = request.headers.get(TOKEN_HEADER, "").strip()
    return (token, "header") if token else (None, "none")


async def require_admin_auth(request: Request) -> dict[str, str]:
    expected = settings.ADMIN_AUTH_TOKEN
    if not expected:
        raise HTTPException(status_code=503, detail="ADMIN_AUTH_TOKEN 未配置, 管理 API 不可用")

    token, source = extract_token(request)
    if token is not None and hmac.compare_digest(token.encode(), expected.encode()):
        return {"auth": source, "user": "admin-token"}

    client = request.client.host if request.client else "-"
    logger.warning(f"管理 API 鉴权失败: path={request.url.path}, client={client}, source={source}")
    raise HTTPException(status_code=401, detail="未授权", headers={"WWW-Authenticate": "Bearer"})
