# src/ingest_enrich/backend/pipelines/enrich/factory.py

"""
[职责] processor factory：校验原始 processor 配置（mapping）并装配 MatchProcessor。
[边界] 只在构造期校验（max_matches 范围、必填字段、未知字段）；不注册到 pipeline engine；不解析 policy 定义。
[上游关系] services/api/pipeline engine 传入配置与 SearchRunner。
[下游关系] 返回可直接 process 的 MatchProcessor。
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError

from ingest_enrich.backend.kb.runner import SearchRunner
from ingest_enrich.backend.schemas.enrich import MatchProcessorConfig
from ingest_enrich.backend.utils.errors import ProcessorConfigError

from .processor import MatchProcessor


def _default_max_matches() -> int:
    from ingest_enrich.config import settings

    return int(settings.INGEST_ENRICH_DEFAULT_MAX_MATCHES)


def _validation_detail(exc: ValidationError) -> Dict[str, Any]:
    """Reduce pydantic errors to a JSON-safe detail payload."""  # docstring: ctx 中可能含异常对象，不直接透传
    errors: List[Dict[str, Any]] = []
    for err in exc.errors():
        errors.append(
            {
                "loc": ".".join(str(p) for p in err.get("loc", ())),
                "msg": str(err.get("msg", "")),
                "type": str(err.get("type", "")),
            }
        )
    return {"errors": errors}


def parse_config(raw: Union[Mapping[str, Any], MatchProcessorConfig]) -> MatchProcessorConfig:
    """
    [职责] 将原始配置解析为 MatchProcessorConfig（缺省 max_matches 取 settings）。
    [边界] 校验失败统一抛 ProcessorConfigError（含 JSON-safe 的字段错误列表）。
    """
    if isinstance(raw, MatchProcessorConfig):
        return raw
    data = dict(raw)
    if data.get("max_matches") is None:
        data["max_matches"] = _default_max_matches()
    try:
        return MatchProcessorConfig.model_validate(data)
    except ValidationError as exc:
        raise ProcessorConfigError(
            message="invalid enrich processor config",
            detail=_validation_detail(exc),
            cause=exc,
        ) from exc


def create_processor(
    config: Union[Mapping[str, Any], MatchProcessorConfig],
    search_runner: SearchRunner,
    *,
    tag: Optional[str] = None,
) -> MatchProcessor:
    """Build a MatchProcessor from a raw or parsed config."""
    return MatchProcessor(config=parse_config(config), search_runner=search_runner, tag=tag)
