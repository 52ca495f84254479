# src/ingest_enrich/backend/api/routers/enrich.py

"""
[职责] Enrich Router：暴露 /enrich/_execute，对单个文档执行一次 match enrich。
[边界] 不管理参考索引；不做多 processor 编排；仅做输入/输出映射，异常统一转为 ErrorResponse。
[上游关系] 调试/回放工具或外部服务调用。
[下游关系] services/enrich_service 执行 enrich。
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ingest_enrich.backend.api.deps import get_enrich_service, get_trace_context
from ingest_enrich.backend.api.errors import to_json_response
from ingest_enrich.backend.api.schemas_http._common import RequestId, TraceId
from ingest_enrich.backend.api.schemas_http.enrich import EnrichExecuteRequest, EnrichExecuteResponse
from ingest_enrich.backend.schemas.audit import TraceContext
from ingest_enrich.backend.services.enrich_service import EnrichService


router = APIRouter(prefix="/enrich", tags=["enrich"])  # docstring: enrich 路由前缀


@router.post("/_execute", response_model=EnrichExecuteResponse)
async def execute_enrich(
    request: EnrichExecuteRequest,
    service: EnrichService = Depends(get_enrich_service),
    trace_context: TraceContext = Depends(get_trace_context),
) -> EnrichExecuteResponse:
    """
    [职责] 对请求中的文档执行 enrich 并返回 enrich 后的文档。
    [边界] 配置非法、源字段缺失/类型不符 → 400；后端故障 → 503；其余未知异常 → 500。
    """
    try:
        result = await service.execute(
            dict(request.document),
            request.config,
            trace_context=trace_context,
        )
    except Exception as exc:
        return to_json_response(  # type: ignore[return-value]
            exc,
            trace_id=str(trace_context.trace_id),
            request_id=str(trace_context.request_id),
        )

    return EnrichExecuteResponse(
        document=result.document.to_dict(),
        processor_tag=result.processor_tag,
        trace_id=TraceId(str(trace_context.trace_id)),
        request_id=RequestId(str(trace_context.request_id)),
        timing_ms=result.timing_ms,
    )
