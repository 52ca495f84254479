# src/ingest_enrich/backend/api/schemas_http/_common.py

"""
[职责] HTTP Schema 公共组件：定义 ErrorResponse 与通用 ID 类型，作为 API 契约基础。
[边界] 仅描述 HTTP 输入/输出结构；不负责 trace 注入、异常映射或业务逻辑。
[上游关系] api/errors 将 DomainError 映射到 ErrorResponse。
[下游关系] api/schemas_http/enrich 复用本模块结构。
"""

from __future__ import annotations

from typing import Any, Dict, NewType

from pydantic import BaseModel, ConfigDict, Field


UUIDStr = NewType("UUIDStr", str)  # docstring: 通用 UUID 字符串类型（运行时仍为 str）

TraceId = UUIDStr  # docstring: trace_id（跨请求链路）
RequestId = UUIDStr  # docstring: request_id（单次请求）

ErrorDetail = Dict[str, Any]  # docstring: ErrorResponse.error.detail 结构（必须 JSON-safe）


class ErrorInfo(BaseModel):
    """
    [职责] ErrorInfo：统一错误载体（code/message/trace_id/detail）。
    [边界] code 既可以是通用码（bad_request/...），也可以是领域码（DOCUMENT__FIELD_NOT_FOUND/...）。
    """

    model_config = ConfigDict(extra="forbid")  # docstring: 锁死错误字段，避免 drift

    code: str = Field(..., min_length=1)  # docstring: 错误码
    message: str = Field(..., min_length=1)  # docstring: 人类可读错误信息
    trace_id: TraceId = Field(...)  # docstring: 全链路追踪ID（由 middleware 注入）
    detail: ErrorDetail = Field(default_factory=dict)  # docstring: 结构化细节（可为空）


class ErrorResponse(BaseModel):
    """ErrorResponse：HTTP 错误响应的顶层包裹结构。"""

    model_config = ConfigDict(extra="forbid")

    error: ErrorInfo = Field(...)
