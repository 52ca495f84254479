# src/ingest_enrich/backend/api/routers/health.py

"""
[职责] Health Router：探测参考索引数据库可用性并返回版本摘要。
[边界] 只做轻量探测；不触发 enrich。
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ingest_enrich.backend.api.deps import get_session
from ingest_enrich.backend.utils.logging_ import truncate_text


router = APIRouter(prefix="/health", tags=["health"])  # docstring: health 路由前缀


@router.get("")
async def health_check(session: AsyncSession = Depends(get_session)) -> Dict[str, Any]:
    db_status: Dict[str, Any] = {"ok": True}
    try:
        await session.execute(text("SELECT 1"))  # docstring: DB ping（最小读）
    except SQLAlchemyError as exc:
        db_status["ok"] = False
        db_status["error"] = truncate_text(f"{exc.__class__.__name__}: {exc}")  # docstring: 截断预览

    return {
        "status": "ok" if db_status["ok"] else "degraded",
        "db": db_status,
        "version": {"api": "v1"},
    }
