# src/ingest_enrich/backend/api/deps.py

"""
[职责] API 依赖装配：提供 session、trace_context、搜索客户端/runner 与 EnrichService 注入。
[边界] 不做业务逻辑；不提交事务。
[上游关系] FastAPI 路由层调用依赖注入。
[下游关系] routers 通过本模块获取依赖实例；测试通过 dependency_overrides 替换。
"""

from __future__ import annotations

from functools import lru_cache
from typing import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ingest_enrich.backend.db.engine import get_sessionmaker
from ingest_enrich.backend.kb.http_client import HttpSearchClient
from ingest_enrich.backend.kb.reference_client import ReferenceIndexClient
from ingest_enrich.backend.kb.runner import SearchClient
from ingest_enrich.backend.schemas.audit import TraceContext
from ingest_enrich.backend.schemas.ids import UUIDStr, new_uuid
from ingest_enrich.backend.services.enrich_service import EnrichService
from ingest_enrich.config import settings


async def get_session() -> AsyncIterator[AsyncSession]:
    """
    [职责] 获取数据库会话（每个 request 一个 session）。
    [边界] 不提交/回滚事务；仅负责创建与关闭。
    """
    async with get_sessionmaker()() as session:
        yield session


def get_trace_context(request: Request) -> TraceContext:
    """
    [职责] 获取或创建 TraceContext（优先使用 middleware 注入）。
    [边界] 不写入日志；不校验 UUID 格式。
    """
    existing = getattr(request.state, "trace_context", None)
    if isinstance(existing, TraceContext):
        return existing

    trace_id = str(getattr(request.state, "trace_id", "") or "").strip() or str(new_uuid())
    request_id = str(getattr(request.state, "request_id", "") or "").strip() or str(new_uuid())
    ctx = TraceContext(trace_id=UUIDStr(trace_id), request_id=UUIDStr(request_id), tags={})
    request.state.trace_context = ctx  # docstring: 写回 state 以复用
    return ctx


@lru_cache(maxsize=1)
def _http_search_client() -> HttpSearchClient:
    return HttpSearchClient.from_settings()  # docstring: 进程内复用连接池


def get_search_client(session: AsyncSession = Depends(get_session)) -> SearchClient:
    """
    [职责] 选择搜索后端：配置了 INGEST_ENRICH_SEARCH_ENDPOINT 时走 HTTP，否则走 SQL 参考索引。
    [边界] SQL 客户端复用 request session。
    """
    if str(settings.INGEST_ENRICH_SEARCH_ENDPOINT or "").strip():
        return _http_search_client()
    return ReferenceIndexClient(session=session)


def get_enrich_service(client: SearchClient = Depends(get_search_client)) -> EnrichService:
    """Assemble EnrichService around the selected search client."""
    return EnrichService.from_client(client)


async def close_search_clients() -> None:
    """
    [职责] 关闭进程内缓存的 HttpSearchClient（app shutdown 时调用）。
    [边界] 未创建过则无操作；关闭后清空缓存，下次请求重新创建。
    """
    if _http_search_client.cache_info().currsize:
        await _http_search_client().aclose()
        _http_search_client.cache_clear()
