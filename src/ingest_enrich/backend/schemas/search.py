# src/ingest_enrich/backend/schemas/search.py

"""
[职责] Search 契约层：定义精确匹配查询描述（SearchRequest）与结果集（SearchResponse/SearchHit）。
[边界] 不执行查询；不依赖具体后端；仅提供结构与 Elasticsearch 风格 body 的序列化/解析。
[上游关系] pipelines/enrich/query.build_match_query 产出 SearchRequest。
[下游关系] kb 客户端（SQL 参考索引/HTTP 搜索后端）消费 SearchRequest 并产出 SearchResponse；processor 合并 hits。
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from ingest_enrich.backend.utils.constants import SEARCH_PREFERENCE_LOCAL


class TermQuery(BaseModel):
    """Exact-match filter: field == value."""  # docstring: 不分词、不打分的精确匹配

    model_config = ConfigDict(extra="forbid", frozen=True)

    field: str = Field(..., min_length=1)
    value: str

    def to_body(self) -> Dict[str, Any]:
        return {"term": {self.field: self.value}}


class ConstantScoreQuery(BaseModel):
    """
    [职责] ConstantScoreQuery：包裹 filter，使所有命中得分相同（布尔匹配，不排序）。
    [边界] 结果顺序由后端自然顺序决定，不保证跨查询稳定。
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    filter: TermQuery

    def to_body(self) -> Dict[str, Any]:
        return {"constant_score": {"filter": self.filter.to_body()}}


class SearchSource(BaseModel):
    """
    [职责] SearchSource：查询体（query + 分页 + 打分/取源开关）。
    [边界] from_ 序列化为 "from"；size 即结果上限。
    """

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    query: ConstantScoreQuery
    from_: int = Field(default=0, ge=0, alias="from")  # docstring: 分页起点（固定 0）
    size: int = Field(..., ge=1)  # docstring: 分页大小（= max_matches）
    track_scores: bool = Field(default=False)  # docstring: 关闭相关性打分
    fetch_source: bool = Field(default=True)  # docstring: 返回完整记录体


class SearchRequest(BaseModel):
    """
    [职责] SearchRequest：一次参考索引查询的完整描述（索引/locality hint/查询体）。
    [边界] 纯数据；不持有连接。
    [上游关系] build_match_query 产出。
    [下游关系] SearchRunner/客户端执行。
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    indices: List[str] = Field(..., min_length=1)  # docstring: 目标索引（参考索引 base name）
    preference: Optional[str] = Field(default=SEARCH_PREFERENCE_LOCAL)  # docstring: 副本偏好（locality hint）
    source: SearchSource

    @property
    def term(self) -> TermQuery:
        return self.source.query.filter

    def to_body(self) -> Dict[str, Any]:
        """Render the Elasticsearch style `_search` request body."""  # docstring: HTTP 客户端直接发送
        return {
            "from": self.source.from_,
            "size": self.source.size,
            "track_scores": self.source.track_scores,
            "_source": self.source.fetch_source,
            "query": self.source.query.to_body(),
        }


class SearchHit(BaseModel):
    """Single matched reference record."""  # docstring: source 为完整记录体（不做投影）

    model_config = ConfigDict(extra="forbid")

    index: str
    id: Optional[str] = None
    source: Dict[str, Any] = Field(default_factory=dict)


class SearchResponse(BaseModel):
    """
    [职责] SearchResponse：查询结果集（按后端返回顺序）。
    [边界] hits 数量可能超过请求 size（不合规后端）；截断由 processor 负责。
    [上游关系] kb 客户端产出。
    [下游关系] MatchProcessor 合并进文档。
    """

    model_config = ConfigDict(extra="forbid")

    hits: List[SearchHit] = Field(default_factory=list)
    total: Optional[int] = Field(default=None, ge=0)  # docstring: 总命中数（后端可不提供）
    took_ms: Optional[float] = Field(default=None, ge=0)  # docstring: 后端耗时（ms）

    @classmethod
    def from_es_body(cls, payload: Mapping[str, Any]) -> "SearchResponse":
        """
        [职责] 解析 Elasticsearch/OpenSearch `_search` 响应体。
        [边界] 仅读取 took/hits.total/hits.hits；total 兼容 int 与 {"value": n} 两种形态。
        """
        hits_block = payload.get("hits") or {}
        raw_total = hits_block.get("total")
        if isinstance(raw_total, Mapping):
            raw_total = raw_total.get("value")

        hits = [
            SearchHit(
                index=str(h.get("_index") or ""),
                id=str(h["_id"]) if h.get("_id") is not None else None,
                source=dict(h.get("_source") or {}),
            )
            for h in hits_block.get("hits") or []
        ]
        took = payload.get("took")
        return cls(
            hits=hits,
            total=int(raw_total) if raw_total is not None else None,
            took_ms=float(took) if took is not None else None,
        )
