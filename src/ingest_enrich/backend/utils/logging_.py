# src/ingest_enrich/backend/utils/logging_.py

"""
[职责] 项目日志：`ingest_enrich` 根 logger 的 JSON 输出、trace 字段拼装与 lookup key 脱敏 helper。
[边界] 只配置项目根 logger，不碰 root logger；不负责 trace_id 生成。
[上游关系] api/app.py 启动时 configure_logging；pipelines/services 通过 get_logger + log_event 写事件。
[下游关系] stdout/stderr 上的一行一条 JSON，供检索与排障。
"""

from __future__ import annotations

import hashlib
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Mapping, Optional

from ingest_enrich.backend.utils.constants import (
    POLICY_NAME_KEY,
    PROCESSOR_TAG_KEY,
    REQUEST_ID_KEY,
    TRACE_ID_KEY,
)


DEFAULT_LOGGER_NAME = "ingest_enrich"
DEFAULT_LOG_LEVEL = logging.INFO
DEFAULT_MAX_TEXT_LEN = 160  # docstring: 预览截断长度

TRACE_FIELD_KEYS = (TRACE_ID_KEY, REQUEST_ID_KEY, PROCESSOR_TAG_KEY, POLICY_NAME_KEY)

_HANDLER_NAME = "structured_json"

# attributes every LogRecord carries; anything else on a record came from `extra=`
_BUILTIN_RECORD_ATTRS: FrozenSet[str] = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}


class StructuredLogFormatter(logging.Formatter):
    """
    [职责] LogRecord → 单行 JSON：ts/level/logger/message + extra 字段。
    [边界] 值为 None 的 extra 不输出；不可序列化的值以 str() 输出。
    """

    def __init__(self, *, ensure_ascii: bool = True) -> None:
        super().__init__()
        self._ensure_ascii = ensure_ascii

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _BUILTIN_RECORD_ATTRS and value is not None:
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack_info"] = record.stack_info
        return json.dumps(payload, ensure_ascii=self._ensure_ascii, default=str)


def _level_from_settings() -> int:
    from ingest_enrich.config import settings

    resolved = logging.getLevelName(str(settings.INGEST_ENRICH_LOG_LEVEL).strip().upper())
    return resolved if isinstance(resolved, int) else DEFAULT_LOG_LEVEL  # docstring: 非法级别名回退 INFO


def configure_logging(
    *,
    logger_name: str = DEFAULT_LOGGER_NAME,
    level: Optional[int] = None,
    ensure_ascii: bool = True,
) -> logging.Logger:
    """
    [职责] 给项目根 logger 挂一个 JSON StreamHandler 并设置级别（显式 level 优先，其次 INGEST_ENRICH_LOG_LEVEL）。
    [边界] 幂等：按 handler 名去重；propagate 关闭，root 上的 handler 不会重复输出。
    """
    logger = logging.getLogger(logger_name)
    resolved = level if level is not None else _level_from_settings()
    logger.setLevel(resolved)

    if not any(getattr(h, "name", "") == _HANDLER_NAME for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.name = _HANDLER_NAME
        handler.setLevel(resolved)
        handler.setFormatter(StructuredLogFormatter(ensure_ascii=ensure_ascii))
        logger.addHandler(handler)

    logger.propagate = False
    return logger


def get_logger(name: Optional[str] = None, *, level: Optional[int] = None) -> logging.Logger:
    """Child of the project root logger; configures the root on first use."""
    if not logging.getLogger(DEFAULT_LOGGER_NAME).handlers:
        configure_logging()
    if not name:
        full_name = DEFAULT_LOGGER_NAME
    elif name.startswith(DEFAULT_LOGGER_NAME):
        full_name = name
    else:
        full_name = f"{DEFAULT_LOGGER_NAME}.{name}"
    logger = logging.getLogger(full_name)
    if level is not None:
        logger.setLevel(level)
    return logger


def build_log_fields(
    *,
    context: Optional[Any] = None,
    extra: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """
    [职责] 合并 trace 字段（从 TraceContext 或 mapping 读取）与事件字段。
    [边界] None 值丢弃；事件字段可覆盖同名 trace 字段。
    """
    fields: Dict[str, Any] = {}
    if context is not None:
        for key in TRACE_FIELD_KEYS:
            value = context.get(key) if isinstance(context, Mapping) else getattr(context, key, None)
            if value is not None:
                fields[key] = str(value)
    for key, value in (extra or {}).items():
        if value is not None:
            fields[key] = value
    return fields


def log_event(
    logger: logging.Logger,
    level: int,
    message: str,
    *,
    context: Optional[Any] = None,
    fields: Optional[Mapping[str, Any]] = None,
    exc_info: Optional[Any] = None,
) -> None:
    """Emit one structured event; fields are only built when the level is enabled."""
    if not logger.isEnabledFor(level):
        return
    logger.log(level, message, extra=build_log_fields(context=context, extra=fields), exc_info=exc_info)


def truncate_text(text: Optional[str], *, max_len: int = DEFAULT_MAX_TEXT_LEN) -> Optional[str]:
    if text is None:
        return None
    s = str(text)
    return s if len(s) <= max_len else f"{s[:max_len]}...(truncated)"


def hash_text(text: Optional[str]) -> Optional[str]:
    """sha256 hex of the text; lookup keys are logged this way, never raw."""
    if text is None:
        return None
    s = str(text)
    if not s:
        return ""
    return hashlib.sha256(s.encode("utf-8")).hexdigest()
