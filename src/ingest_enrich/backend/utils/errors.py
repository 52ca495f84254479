# src/ingest_enrich/backend/utils/errors.py

"""
[职责] enrich 错误体系：DomainError 合同（error_code/message/detail/cause + http_status/retryable），文档字段错误、配置错误、后端故障与编程错误。
[边界] 不依赖 FastAPI；不记录日志；processor 不包装 runner 交付的错误。
[上游关系] documents/pipelines/kb 抛出本模块错误。
[下游关系] api/errors.py 与 scripts 通过 to_http_error 输出统一错误体。
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Optional, Tuple


ErrorDetail = Dict[str, Any]  # docstring: 必须可 JSON 序列化

_AREA_CODE = re.compile(r"^[A-Z][A-Z0-9]*(?:__[A-Z0-9_]+)+$")  # docstring: DOCUMENT__FIELD_NOT_FOUND
_DOTTED_CODE = re.compile(r"^[a-z][a-z0-9]*(?:\.[a-z0-9_]+)+$")  # docstring: enrich.invalid_config

# generic code -> (http status, retryable)
_GENERIC_CODES: Dict[str, Tuple[int, bool]] = {
    "bad_request": (400, False),
    "not_found": (404, False),
    "pipeline_error": (500, False),
    "external_dependency": (503, True),
    "internal_error": (500, False),
}

FIELD_NOT_FOUND_CODE = "DOCUMENT__FIELD_NOT_FOUND"
FIELD_TYPE_MISMATCH_CODE = "DOCUMENT__FIELD_TYPE_MISMATCH"
FIELD_PATH_CODE = "DOCUMENT__INVALID_PATH"
UNSUPPORTED_OPERATION_CODE = "ENRICH__UNSUPPORTED_OPERATION"
INVALID_CONFIG_CODE = "ENRICH__INVALID_CONFIG"

INTERNAL_ERROR_CODE = "internal_error"
INTERNAL_ERROR_MESSAGE = "internal error"  # docstring: 未知异常不回显原始消息


def is_valid_error_code(error_code: str) -> bool:
    """Accept generic codes, AREA__REASON codes and area.reason codes."""
    if not error_code:
        return False
    if error_code in _GENERIC_CODES:
        return True
    return bool(_AREA_CODE.match(error_code) or _DOTTED_CODE.match(error_code))


def ensure_json_safe_detail(detail: ErrorDetail) -> ErrorDetail:
    """
    [职责] 断言 detail 为可 JSON 序列化的 dict。
    [边界] 不裁剪、不降级；不合规直接 ValueError。
    """
    if not isinstance(detail, dict):
        raise ValueError("detail must be a dict")
    try:
        json.dumps(detail)
    except TypeError as exc:
        raise ValueError("detail must be JSON-serializable") from exc
    return detail


class DomainError(Exception):
    """
    [职责] 错误合同基类：稳定 error_code、可读 message、JSON-safe detail，附带 HTTP 映射与可重试提示。
    [边界] 构造期校验错误码与 detail；status/retryable 未显式给出时按通用码表推导，未知码视为 500 不可重试。
    [上游关系] 各子类或调用方直接构造。
    [下游关系] to_http_error → ErrorResponse。
    """

    def __init__(
        self,
        *,
        error_code: str,
        message: str,
        detail: Optional[ErrorDetail] = None,
        cause: Optional[Exception] = None,
        http_status: Optional[int] = None,
        retryable: Optional[bool] = None,
    ) -> None:
        if not is_valid_error_code(error_code):
            raise ValueError(f"invalid error_code: {error_code}")
        default_status, default_retryable = _GENERIC_CODES.get(error_code, (500, False))

        super().__init__(message)
        self.error_code = error_code
        self.message = message
        self.detail = ensure_json_safe_detail(detail or {})
        self.cause = cause
        self.http_status = default_status if http_status is None else http_status
        self.retryable = default_retryable if retryable is None else retryable
        if cause is not None:
            self.__cause__ = cause  # docstring: 异常链可追溯到第三方异常

    def to_dict(self) -> Dict[str, Any]:
        """Body of ErrorResponse.error, without trace_id."""
        return {"code": self.error_code, "message": self.message, "detail": self.detail}


class BadRequestError(DomainError):
    """400 family: caller-supplied document or config is unusable."""

    def __init__(
        self,
        *,
        message: str = "bad request",
        detail: Optional[ErrorDetail] = None,
        cause: Optional[Exception] = None,
        error_code: str = "bad_request",
    ) -> None:
        super().__init__(
            error_code=error_code,
            message=message,
            detail=detail,
            cause=cause,
            http_status=400,
            retryable=False,
        )


class FieldNotFoundError(BadRequestError):
    """
    [职责] 源字段缺失（ignore_missing=false）时的错误。
    [边界] 仅携带字段路径；不携带文档内容。
    [上游关系] IngestDocument.get_field_value 抛出。
    [下游关系] MatchProcessor 通过 on_done(None, err) 透传。
    """

    def __init__(self, path: str, *, missing: Optional[str] = None) -> None:
        super().__init__(
            error_code=FIELD_NOT_FOUND_CODE,
            message=f"field [{missing or path}] not present as part of path [{path}]",
            detail={"path": path, "missing": missing or path},
        )
        self.path = path  # docstring: 缺失字段路径


class FieldTypeMismatchError(BadRequestError):
    """
    [职责] 源字段存在但类型与期望不符时的错误。
    [边界] detail 只记录类型名；不记录字段原值。
    [上游关系] IngestDocument.get_field_value 抛出。
    [下游关系] MatchProcessor 通过 on_done(None, err) 透传。
    """

    def __init__(self, path: str, *, expected: type, actual: type) -> None:
        super().__init__(
            error_code=FIELD_TYPE_MISMATCH_CODE,
            message=(
                f"field [{path}] of type [{actual.__name__}] cannot be cast to [{expected.__name__}]"
            ),
            detail={"path": path, "expected": expected.__name__, "actual": actual.__name__},
        )
        self.path = path
        self.expected = expected
        self.actual = actual


class FieldPathError(BadRequestError):
    """
    [职责] 字段路径非法（空路径/非法下标）或写入路径与现有结构冲突。
    [边界] 不尝试修复路径；仅报告。
    [上游关系] IngestDocument 读写路径解析时抛出。
    [下游关系] processor 作为失败结果经 on_done 透传。
    """

    def __init__(self, path: str, *, reason: str) -> None:
        super().__init__(
            error_code=FIELD_PATH_CODE,
            message=f"invalid field path [{path}]: {reason}",
            detail={"path": path, "reason": reason},
        )
        self.path = path


class ProcessorConfigError(BadRequestError):
    """
    [职责] processor 配置校验失败（缺失字段/max_matches 越界等）。
    [边界] 仅在构造期抛出；运行期不重复校验。
    [上游关系] pipelines/enrich/factory.create_processor 抛出。
    [下游关系] api/services 映射为 400。
    """

    def __init__(self, *, message: str, detail: Optional[ErrorDetail] = None, cause: Optional[Exception] = None) -> None:
        super().__init__(
            error_code=INVALID_CONFIG_CODE,
            message=message,
            detail=detail,
            cause=cause,
        )


class PipelineError(DomainError):
    """Collaborator broke its contract (e.g. runner delivered neither response nor error)."""

    def __init__(
        self,
        *,
        message: str = "pipeline error",
        detail: Optional[ErrorDetail] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(error_code="pipeline_error", message=message, detail=detail, cause=cause)


class ExternalDependencyError(DomainError):
    """
    [职责] 搜索后端（SQL 参考索引/HTTP `_search`）故障，映射 503。
    [边界] detail 只放索引名、状态码、异常类名；不放连接串或凭证。默认可重试，4xx 由调用方显式关闭。
    [上游关系] kb/reference_client.py、kb/http_client.py。
    [下游关系] 经 runner → processor 原样交付给 on_done。
    """

    def __init__(
        self,
        *,
        message: str = "external dependency error",
        detail: Optional[ErrorDetail] = None,
        cause: Optional[Exception] = None,
        retryable: Optional[bool] = None,
    ) -> None:
        super().__init__(
            error_code="external_dependency",
            message=message,
            detail=detail,
            cause=cause,
            retryable=retryable,
        )


class UnsupportedOperationError(DomainError):
    """
    [职责] 调用了 processor 不支持的同步入口。
    [边界] 属于调用方编程错误；不做降级。
    [上游关系] AbstractEnrichProcessor.execute 抛出。
    [下游关系] 调用方应改用 process/execute_async。
    """

    def __init__(self, message: str = "this method should not get executed") -> None:
        super().__init__(
            error_code=UNSUPPORTED_OPERATION_CODE,
            message=message,
            http_status=500,
            retryable=False,
        )


class CompletionAlreadyInvokedError(RuntimeError):
    """Completion sink invoked more than once."""  # docstring: 编程错误，不走 DomainError 合同


def to_http_error(error: Exception, *, trace_id: Optional[str] = None) -> Tuple[int, Dict[str, Any]]:
    """
    [职责] 任意异常 → (HTTP status, {"error": {...}})。
    [边界] 非 DomainError 一律 internal_error/500，不回显原始消息；trace_id 仅在给出时写入。
    [上游关系] api/errors.py、scripts/enrich_doc.py。
    """
    if isinstance(error, DomainError):
        status_code = error.http_status
        body = error.to_dict()
    else:
        status_code = _GENERIC_CODES[INTERNAL_ERROR_CODE][0]
        body = {"code": INTERNAL_ERROR_CODE, "message": INTERNAL_ERROR_MESSAGE, "detail": {}}

    if trace_id:
        body["trace_id"] = trace_id
    return status_code, {"error": body}
