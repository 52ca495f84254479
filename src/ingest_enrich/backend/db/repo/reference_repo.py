# src/ingest_enrich/backend/db/repo/reference_repo.py

"""
[职责] ReferenceRepo：参考索引（enrich_record 表）的最小写入与精确匹配查询。
[边界] 不做索引生命周期管理（创建/刷新/别名）；写入接口仅用于开发/测试填充；查询不打分。
[上游关系] kb/reference_client.py 以 SearchRequest 调用 search；测试/脚本调用 add_records 填充数据。
[下游关系] 返回 SearchResponse 供 processor 合并进文档。
"""

from __future__ import annotations

from typing import Any, List, Mapping, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ingest_enrich.backend.schemas.search import SearchHit, SearchRequest, SearchResponse

from ..models.reference import EnrichRecordModel


def _match_expr(match_field: str) -> Any:
    """
    [职责] 构造 source JSON 上的匹配表达式（支持点分嵌套字段）。
    [边界] 以字符串比较（as_string）；数值字段需以字符串形式写入才能命中。
    """
    parts = match_field.split(".")
    element = EnrichRecordModel.source[parts[0]] if len(parts) == 1 else EnrichRecordModel.source[tuple(parts)]
    return element.as_string()


class ReferenceRepo:
    """Reference index repository (async SQLAlchemy)."""

    def __init__(self, session: AsyncSession):
        self._session = session  # docstring: DB 会话（由调用方注入）

    async def next_seq(self, index_name: str) -> int:
        stmt = select(func.max(EnrichRecordModel.seq)).where(EnrichRecordModel.index_name == index_name)
        current = await self._session.scalar(stmt)
        return 0 if current is None else int(current) + 1

    async def add_records(self, *, index_name: str, records: Sequence[Mapping[str, Any]]) -> List[EnrichRecordModel]:
        """Append records to an index, preserving the given order."""  # docstring: 自然顺序即 seq 顺序
        seq = await self.next_seq(index_name)
        rows: List[EnrichRecordModel] = []
        for offset, record in enumerate(records):
            row = EnrichRecordModel(index_name=index_name, seq=seq + offset, source=dict(record))
            self._session.add(row)
            rows.append(row)
        await self._session.flush()
        return rows

    async def count(self, *, index_name: str) -> int:
        stmt = select(func.count()).select_from(EnrichRecordModel).where(EnrichRecordModel.index_name == index_name)
        return int(await self._session.scalar(stmt) or 0)

    async def search(self, request: SearchRequest) -> SearchResponse:
        """
        [职责] 执行 term 精确匹配：index_name ∈ indices 且 source[match_field] == value，按 seq 排序分页。
        [边界] 常量打分（不排序相关性）；preference 对单库无意义，直接忽略。
        [上游关系] ReferenceIndexClient.search 调用。
        [下游关系] SearchResponse.hits（按写入顺序）。
        """
        term = request.term
        where = (
            EnrichRecordModel.index_name.in_(request.indices),
            _match_expr(term.field) == term.value,
        )

        total_stmt = select(func.count()).select_from(EnrichRecordModel).where(*where)
        total = int(await self._session.scalar(total_stmt) or 0)

        stmt = (
            select(EnrichRecordModel)
            .where(*where)
            .order_by(EnrichRecordModel.index_name, EnrichRecordModel.seq)
            .offset(request.source.from_)
            .limit(request.source.size)
        )
        rows = (await self._session.scalars(stmt)).all()

        hits = [
            SearchHit(
                index=row.index_name,
                id=row.id,
                source=dict(row.source or {}) if request.source.fetch_source else {},
            )
            for row in rows
        ]
        return SearchResponse(hits=hits, total=total)
