# src/ingest_enrich/backend/pipelines/enrich/completion.py

"""
[职责] 单次完成守卫：包装 on_done，保证每次 process 调用恰好完成一次（成功或失败二选一）。
[边界] 重复完成视为编程错误（CompletionAlreadyInvokedError），不作为用户可见失败。
[上游关系] MatchProcessor.process 为每次调用创建一个实例。
[下游关系] 调用方传入的 on_done(document, error)。
"""

from __future__ import annotations

from typing import Callable, Optional

from ingest_enrich.backend.documents.ingest_document import IngestDocument
from ingest_enrich.backend.utils.errors import CompletionAlreadyInvokedError


CompletionHandler = Callable[[Optional[IngestDocument], Optional[BaseException]], None]  # docstring: (document, None) 或 (None, error)


class OneShotCompletion:
    """One-shot wrapper around a completion handler."""

    __slots__ = ("_handler", "_completed")

    def __init__(self, handler: CompletionHandler) -> None:
        self._handler = handler
        self._completed = False

    @property
    def completed(self) -> bool:
        return self._completed

    def succeed(self, document: IngestDocument) -> None:
        self._consume()
        self._handler(document, None)

    def fail(self, error: BaseException) -> None:
        self._consume()
        self._handler(None, error)

    def _consume(self) -> None:
        # consumed before the handler runs; a raising handler still counts as completed
        if self._completed:
            raise CompletionAlreadyInvokedError("completion handler already invoked")
        self._completed = True
