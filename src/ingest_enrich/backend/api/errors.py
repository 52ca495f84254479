# src/ingest_enrich/backend/api/errors.py

"""
[职责] API 错误映射：将异常统一转换为 ErrorResponse 与 HTTP status。
[边界] 不记录日志；不负责 trace/request 注入（由 middleware/deps 负责）。
[上游关系] routers 捕获异常后调用本模块。
[下游关系] 返回 ErrorResponse 供调用方消费。
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from fastapi.responses import JSONResponse

from ingest_enrich.backend.api.schemas_http._common import ErrorResponse
from ingest_enrich.backend.schemas.ids import new_uuid
from ingest_enrich.backend.utils.errors import to_http_error

_TRACE_HEADER = "x-trace-id"  # docstring: trace header 约定
_REQUEST_HEADER = "x-request-id"  # docstring: request header 约定


def _ensure_trace_id(trace_id: Optional[str]) -> str:
    raw = str(trace_id or "").strip()
    if raw:
        return raw
    return str(new_uuid())  # docstring: 无 trace_id 时生成兜底


def to_error_response(
    error: Exception,
    *,
    trace_id: Optional[str] = None,
) -> Tuple[int, ErrorResponse]:
    """
    [职责] 将异常转换为 (status_code, ErrorResponse)。
    [边界] 不写 header；不记录日志。
    """
    resolved_trace_id = _ensure_trace_id(trace_id)
    status_code, payload = to_http_error(error, trace_id=resolved_trace_id)
    return status_code, ErrorResponse.model_validate(payload)


def to_json_response(
    error: Exception,
    *,
    trace_id: Optional[str] = None,
    request_id: Optional[str] = None,
) -> JSONResponse:
    """
    [职责] 将异常转换为 JSONResponse（含 header 透传）。
    [边界] 不修改 error 语义。
    [上游关系] routers 捕获异常后调用。
    [下游关系] FastAPI 直接返回该响应对象。
    """
    status_code, response = to_error_response(error, trace_id=trace_id)
    content: Dict[str, Any] = response.model_dump()

    headers: Dict[str, str] = {}
    if trace_id:
        headers[_TRACE_HEADER] = str(trace_id)
    if request_id:
        headers[_REQUEST_HEADER] = str(request_id)

    return JSONResponse(status_code=status_code, content=content, headers=headers)
