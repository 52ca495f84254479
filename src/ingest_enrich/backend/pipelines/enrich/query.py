# src/ingest_enrich/backend/pipelines/enrich/query.py

"""
[职责] match query builder：由 (lookup key, match field, 上限, policy) 构造精确匹配 SearchRequest。
[边界] 纯函数、全函数；不执行查询；不做参数校验（max_matches 已在配置期校验）。
[上游关系] MatchProcessor.process 在读取 lookup key 后调用。
[下游关系] SearchRunner/客户端执行返回的 SearchRequest。
"""

from __future__ import annotations

from ingest_enrich.backend.kb.naming import get_base_name
from ingest_enrich.backend.schemas.search import ConstantScoreQuery, SearchRequest, SearchSource, TermQuery
from ingest_enrich.backend.utils.constants import SEARCH_PREFERENCE_LOCAL


def build_match_query(value: str, match_field: str, max_matches: int, policy_name: str) -> SearchRequest:
    """
    [职责] 构造 constant_score(term) 查询：from=0、size=max_matches、不打分、返回完整记录。
    [边界] 结果顺序取决于后端自然顺序；preference 仅为 locality hint。
    [上游关系] MatchProcessor 调用。
    [下游关系] SearchRequest.to_body() 可直接发送到 `_search`。
    """
    term = TermQuery(field=match_field, value=value)
    source = SearchSource(
        query=ConstantScoreQuery(filter=term),
        from_=0,
        size=max_matches,
        track_scores=False,
        fetch_source=True,
    )
    return SearchRequest(
        indices=[get_base_name(policy_name)],
        preference=SEARCH_PREFERENCE_LOCAL,
        source=source,
    )
