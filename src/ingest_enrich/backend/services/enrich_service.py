# src/ingest_enrich/backend/services/enrich_service.py

"""
[职责] enrich service：为单个文档装配 match processor、以 future 方式等待完成，并记录结构化日志与 timing。
[边界] 不重试；不吞错（失败记录后原样抛出）；不负责参考索引的填充与生命周期；不做多 processor 编排。
[上游关系] api/routers/enrich.py 或脚本调用 execute(document, config)。
[下游关系] pipelines/enrich（factory/processor）与 kb/runner（SearchRunner）。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, MutableMapping, Optional, Union

from ingest_enrich.backend.documents.ingest_document import IngestDocument
from ingest_enrich.backend.kb.runner import SearchClient, SearchRunner, create_search_runner
from ingest_enrich.backend.pipelines.base.timing import TimingCollector
from ingest_enrich.backend.pipelines.enrich.factory import create_processor
from ingest_enrich.backend.schemas.audit import TraceContext
from ingest_enrich.backend.schemas.enrich import MatchProcessorConfig
from ingest_enrich.backend.utils.constants import TIMING_TOTAL_MS_KEY
from ingest_enrich.backend.utils.errors import DomainError
from ingest_enrich.backend.utils.logging_ import get_logger, log_event


@dataclass
class EnrichResult:
    """Outcome of one successful enrich execution."""  # docstring: 失败以异常表达，不进入该结构

    document: IngestDocument
    processor_tag: str
    timing_ms: Dict[str, float] = field(default_factory=dict)


class EnrichService:
    """
    [职责] 持有共享 SearchRunner，按请求构造 processor 并执行。
    [边界] 每次 execute 独立构造 processor（配置可随请求变化）；无跨请求可变状态。
    """

    def __init__(self, *, search_runner: SearchRunner) -> None:
        self._search_runner = search_runner
        self._logger = get_logger("services.enrich")

    @classmethod
    def from_client(cls, client: SearchClient) -> "EnrichService":
        return cls(search_runner=create_search_runner(client))

    async def execute(
        self,
        document: Union[IngestDocument, MutableMapping[str, Any]],
        config: Union[Mapping[str, Any], MatchProcessorConfig],
        *,
        trace_context: Optional[TraceContext] = None,
        tag: Optional[str] = None,
    ) -> EnrichResult:
        """
        [职责] 执行一次 enrich 并返回结果文档（原地修改）与 timing。
        [边界] 配置非法抛 ProcessorConfigError；processor 失败原样抛出 on_done 收到的错误。
        """
        doc = document if isinstance(document, IngestDocument) else IngestDocument(document)
        processor = create_processor(config, self._search_runner, tag=tag)
        timing = TimingCollector()
        base_fields = {
            "processor_tag": processor.tag,
            "policy_name": processor.policy_name,
            "target_field": processor.target_field,
        }

        try:
            with timing.stage("enrich_ms"):
                result = await processor.execute_async(doc)
        except Exception as exc:
            log_event(
                self._logger,
                logging.WARNING,
                "enrich failed",
                context=trace_context,
                fields={
                    **base_fields,
                    "error_code": exc.error_code if isinstance(exc, DomainError) else exc.__class__.__name__,
                    "timing_ms": timing.to_dict(total_key=TIMING_TOTAL_MS_KEY),
                },
            )
            raise

        timing_ms = timing.to_dict(total_key=TIMING_TOTAL_MS_KEY)
        log_event(
            self._logger,
            logging.INFO,
            "enrich completed",
            context=trace_context,
            fields={**base_fields, "timing_ms": timing_ms},
        )
        return EnrichResult(document=result or doc, processor_tag=processor.tag, timing_ms=timing_ms)
