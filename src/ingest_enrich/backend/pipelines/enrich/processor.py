# src/ingest_enrich/backend/pipelines/enrich/processor.py

"""
[职责] enrich match processor：读取 lookup key → 构造精确匹配查询 → 异步 dispatch → 按 override/上限规则合并结果，并恰好一次调用 on_done。
[边界] 不重试、不取消、不记录“目标字段受保护”的跳过；无跨调用状态（仅持有不可变配置与注入的 runner）；同步入口不支持。
[上游关系] pipeline engine / services 调用 process(document, on_done) 或 await execute_async(document)。
[下游关系] kb/runner 执行查询；IngestDocument 原地写入 target_field。
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from ingest_enrich.backend.documents.ingest_document import IngestDocument
from ingest_enrich.backend.kb.runner import SearchRunner
from ingest_enrich.backend.schemas.enrich import MatchProcessorConfig
from ingest_enrich.backend.schemas.ids import new_uuid
from ingest_enrich.backend.schemas.search import SearchResponse
from ingest_enrich.backend.utils.constants import PROCESSOR_TYPE
from ingest_enrich.backend.utils.errors import PipelineError, UnsupportedOperationError
from ingest_enrich.backend.utils.logging_ import get_logger, hash_text, log_event

from .completion import CompletionHandler, OneShotCompletion
from .query import build_match_query


_LOGGER = get_logger("pipelines.enrich")


class AbstractEnrichProcessor:
    """
    [职责] enrich processor 基类：持有 tag/policy_name，提供 async-only 入口约定与 future 包装。
    [边界] 子类实现 process；execute（同步）一律拒绝。
    [上游关系] factory 构造子类实例。
    [下游关系] pipeline engine 以 process 或 execute_async 驱动。
    """

    def __init__(self, *, tag: Optional[str], policy_name: str) -> None:
        self._tag = tag or str(new_uuid())  # docstring: processor 实例标识（日志/排障）
        self._policy_name = policy_name

    @property
    def tag(self) -> str:
        return self._tag

    @property
    def policy_name(self) -> str:
        return self._policy_name

    @property
    def type(self) -> str:
        return PROCESSOR_TYPE

    def process(self, document: IngestDocument, on_done: CompletionHandler) -> None:
        raise NotImplementedError

    def execute(self, document: IngestDocument) -> IngestDocument:
        """Synchronous execution is not supported; use process/execute_async."""
        raise UnsupportedOperationError()

    async def execute_async(self, document: IngestDocument) -> Optional[IngestDocument]:
        """
        [职责] 以单次解析的 asyncio future 包装 process：成功返回文档，失败抛出 on_done 收到的错误。
        [边界] on_done 可能在其他线程被调用，结果经 call_soon_threadsafe 回到 loop。
        """
        loop = asyncio.get_running_loop()
        future: "asyncio.Future[Optional[IngestDocument]]" = loop.create_future()

        def _resolve(doc: Optional[IngestDocument], error: Optional[BaseException]) -> None:
            if future.done():
                return
            if isinstance(error, asyncio.CancelledError):
                future.cancel()
            elif error is not None:
                future.set_exception(error)
            else:
                future.set_result(doc)

        def _on_done(doc: Optional[IngestDocument], error: Optional[BaseException]) -> None:
            loop.call_soon_threadsafe(_resolve, doc, error)

        self.process(document, _on_done)
        return await future


class MatchProcessor(AbstractEnrichProcessor):
    """
    [职责] MatchProcessor：exact-match enrich（key → 参考索引 term 查询 → 记录列表写入 target_field）。
    [边界] 状态机：START → READING_KEY → {SHORT_CIRCUIT_DONE | QUERY_DISPATCHED} → {MERGE_DONE | ERROR_DONE}。
    [上游关系] create_processor 装配（配置 + SearchRunner）。
    [下游关系] on_done(document, None) / on_done(None, error)。
    """

    def __init__(
        self,
        *,
        config: MatchProcessorConfig,
        search_runner: SearchRunner,
        tag: Optional[str] = None,
    ) -> None:
        super().__init__(tag=tag, policy_name=config.policy_name)
        self._config = config  # docstring: 不可变配置快照
        self._search_runner = search_runner  # docstring: 注入的异步查询能力（测试 seam）

    @property
    def config(self) -> MatchProcessorConfig:
        return self._config

    @property
    def field(self) -> str:
        return self._config.field

    @property
    def target_field(self) -> str:
        return self._config.target_field

    @property
    def match_field(self) -> str:
        return self._config.match_field

    @property
    def ignore_missing(self) -> bool:
        return self._config.ignore_missing

    @property
    def override(self) -> bool:
        return self._config.override

    @property
    def max_matches(self) -> int:
        return self._config.max_matches

    def process(self, document: IngestDocument, on_done: CompletionHandler) -> None:
        """
        [职责] 执行一次 enrich；完成前的所有失败均经 on_done 报告。
        [边界] 唯一挂起点为 search runner dispatch；已完成之后才抛出的异常（on_done 自身、或 runner 在回调之后抛出）原样上抛，不再二次完成。
        """
        completion = OneShotCompletion(on_done)
        try:
            # missing key (ignore_missing) or explicit null: pass the document through unchanged
            value = document.get_field_value(self.field, str, self.ignore_missing)
            if value is None:
                completion.succeed(document)
                return

            request = build_match_query(value, self.match_field, self.max_matches, self.policy_name)
            log_event(
                _LOGGER,
                logging.DEBUG,
                "enrich query dispatched",
                fields={
                    "processor_tag": self.tag,
                    "policy_name": self.policy_name,
                    "index": request.indices[0],
                    "match_field": self.match_field,
                    "max_matches": self.max_matches,
                    "key_sha256": hash_text(value),
                },
            )
            self._search_runner(
                request,
                lambda response, error: self._on_search(document, completion, response, error),
            )
        except Exception as exc:
            if completion.completed:
                raise
            completion.fail(exc)

    def _on_search(
        self,
        document: IngestDocument,
        completion: OneShotCompletion,
        response: Optional[SearchResponse],
        error: Optional[BaseException],
    ) -> None:
        if error is not None:
            completion.fail(error)  # docstring: 原样透传 runner 错误，不重试
            return
        if response is None:
            completion.fail(PipelineError(message="search runner delivered neither a response nor an error"))
            return

        try:
            self._merge(document, response)
        except Exception as exc:
            completion.fail(exc)
            return
        completion.succeed(document)

    def _merge(self, document: IngestDocument, response: SearchResponse) -> None:
        """
        [职责] 合并命中记录：空结果不写；override 关闭且目标字段已存在时静默跳过；否则写入前 max_matches 条记录列表。
        [边界] 记录按响应顺序；即使后端多返回也不超过 max_matches；总是写 list（单条命中也是 list）。
        """
        hits = response.hits
        if not hits:
            return
        if not self.override and document.has_field(self.target_field):
            return
        records = [dict(hit.source) for hit in hits[: self.max_matches]]
        document.set_field_value(self.target_field, records)
