# src/ingest_enrich/backend/schemas/enrich.py

"""
[职责] Enrich 契约层：定义 match processor 的不可变配置（源字段/目标字段/匹配字段/策略/开关/上限）。
[边界] 不包含查询构造与执行逻辑；只做构造期校验，运行期不重复校验。
[上游关系] pipelines/enrich/factory 从原始配置 mapping 解析；api 请求体直接复用。
[下游关系] MatchProcessor 持有该配置；query builder 使用 match_field/max_matches/policy_name。
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ingest_enrich.backend.utils.constants import DEFAULT_MAX_MATCHES, MAX_MATCHES_LIMIT


class MatchProcessorConfig(BaseModel):
    """
    [职责] MatchProcessorConfig：单个 match processor 的配置快照（processor 生命周期内不可变）。
    [边界] extra=forbid 防止拼写错误的配置项被静默忽略。
    [上游关系] create_processor / HTTP 请求体。
    [下游关系] MatchProcessor 与 build_match_query。
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    policy_name: str = Field(..., min_length=1)  # docstring: enrich policy 名称（决定参考索引名）
    field: str = Field(..., min_length=1)  # docstring: lookup key 的源字段路径
    target_field: str = Field(..., min_length=1)  # docstring: 匹配记录写入的目标字段路径
    match_field: str = Field(..., min_length=1)  # docstring: 参考索引中用于精确匹配的字段名
    ignore_missing: bool = Field(default=False)  # docstring: 源字段缺失时是否视为 no-op
    override: bool = Field(default=True)  # docstring: 目标字段已存在时是否允许覆盖
    max_matches: int = Field(default=DEFAULT_MAX_MATCHES, ge=1, le=MAX_MATCHES_LIMIT)  # docstring: 结果上限/查询 page size

    @field_validator("policy_name", "field", "target_field", "match_field")
    @classmethod
    def _strip_non_blank(cls, v: str) -> str:
        s = v.strip()
        if not s:
            raise ValueError("must not be blank")
        return s
