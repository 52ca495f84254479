# src/ingest_enrich/backend/api/schemas_http/enrich.py

"""
[职责] Enrich HTTP 契约：/enrich/_execute 的请求（processor 配置 + 文档）与响应（enrich 后文档 + timing）。
[边界] 仅描述 HTTP 输入/输出；config 保持原始 mapping，校验与缺省值（INGEST_ENRICH_DEFAULT_MAX_MATCHES）统一在 factory 完成。
[上游关系] 外部调用方（调试/回放工具）构造请求。
[下游关系] api/routers/enrich.py 解析并调用 enrich_service。
"""

from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field

from ingest_enrich.backend.schemas.enrich import MatchProcessorConfig

from ._common import RequestId, TraceId


def _processor_config_schema(schema: Dict[str, Any]) -> None:
    schema.update(MatchProcessorConfig.model_json_schema())  # docstring: OpenAPI 中仍展示完整配置结构
    schema.get("properties", {}).get("max_matches", {}).pop("default", None)  # docstring: 缺省值来自 settings，不在文档中写死


class EnrichExecuteRequest(BaseModel):
    """Run one document through one match processor."""

    model_config = ConfigDict(extra="forbid")

    config: Dict[str, Any] = Field(..., json_schema_extra=_processor_config_schema)  # docstring: 原始 processor 配置，由 factory 校验并补 settings 缺省值
    document: Dict[str, Any] = Field(default_factory=dict)  # docstring: 文档 source


class EnrichExecuteResponse(BaseModel):
    """Enriched document plus trace and timing info."""

    model_config = ConfigDict(extra="forbid")

    document: Dict[str, Any] = Field(...)  # docstring: enrich 后的文档 source
    processor_tag: str = Field(..., min_length=1)  # docstring: 本次 processor 标识
    trace_id: TraceId = Field(...)
    request_id: RequestId = Field(...)
    timing_ms: Dict[str, float] = Field(default_factory=dict)
