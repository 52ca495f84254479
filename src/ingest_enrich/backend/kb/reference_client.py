# src/ingest_enrich/backend/kb/reference_client.py

"""
[职责] ReferenceIndexClient：基于 SQL 参考索引（enrich_record 表）的 async 搜索客户端，实现 SearchClient 协议。
[边界] 只读；每次查询使用独立 session（或复用调用方注入的 session）；不重试；SQLAlchemy 异常封装为 ExternalDependencyError。
[上游关系] kb/runner.create_search_runner 包装本客户端；services/api 装配。
[下游关系] db/repo/reference_repo.ReferenceRepo 执行实际 SQL。
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ingest_enrich.backend.db.repo import ReferenceRepo
from ingest_enrich.backend.schemas.search import SearchRequest, SearchResponse
from ingest_enrich.backend.utils.errors import ExternalDependencyError


class ReferenceIndexClient:
    """SQL-backed reference index search client."""

    def __init__(
        self,
        *,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        session: Optional[AsyncSession] = None,
    ) -> None:
        if session_factory is None and session is None:
            raise ValueError("session_factory or session is required")
        self._session_factory = session_factory  # docstring: 每次查询新建 session
        self._session = session  # docstring: 复用外部 session（测试/请求作用域）

    @asynccontextmanager
    async def _session_scope(self) -> AsyncIterator[AsyncSession]:
        if self._session is not None:
            yield self._session  # docstring: 外部 session 生命周期由调用方管理
            return
        assert self._session_factory is not None
        async with self._session_factory() as session:
            yield session

    async def search(self, request: SearchRequest) -> SearchResponse:
        try:
            async with self._session_scope() as session:
                return await ReferenceRepo(session).search(request)
        except SQLAlchemyError as exc:
            raise ExternalDependencyError(
                message="reference index query failed",
                detail={"indices": list(request.indices), "error": exc.__class__.__name__},
                cause=exc,
            ) from exc
