# src/ingest_enrich/backend/schemas/audit.py

"""
[职责] Audit 契约层：统一 trace/request 标识等可观测字段。
[边界] 不负责日志落盘（由 utils/logging_ 负责）；仅提供结构化字段定义。
[上游关系] api/middleware 或调用方生成 trace_id/request_id。
[下游关系] services/enrich_service 将其作为日志 context；api 响应回写 header。
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from .ids import UUIDStr, new_uuid


class TraceContext(BaseModel):
    """
    [职责] TraceContext：一次请求的追踪上下文（trace_id/request_id）。
    [边界] 仅标识与轻量 tags；不包含 span 级别细节。
    [上游关系] API middleware 创建；也可由调用方透传。
    [下游关系] enrich_service 日志字段、HTTP 响应 header。
    """

    model_config = ConfigDict(extra="allow")

    trace_id: UUIDStr = Field(default_factory=new_uuid)  # docstring: 全链路追踪ID
    request_id: UUIDStr = Field(default_factory=new_uuid)  # docstring: 单次请求ID

    parent_request_id: Optional[UUIDStr] = Field(default=None)  # docstring: 上游请求ID（可选）
    tags: Dict[str, Any] = Field(default_factory=dict)  # docstring: 任意扩展 tags
