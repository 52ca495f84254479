# src/ingest_enrich/backend/kb/runner.py

"""
[职责] 异步查询执行能力（SearchRunner）：定义 runner/continuation 类型，并将任意 async 搜索客户端适配为回调式 runner。
[边界] 不重试、不超时、不取消；客户端抛出的异常原样交给 continuation；不解析查询语义。
[上游关系] MatchProcessor 注入 SearchRunner 并在 dispatch 时调用。
[下游关系] kb/reference_client.py（SQL 参考索引）或 kb/http_client.py（HTTP 搜索后端）实际执行查询。
"""

from __future__ import annotations

import asyncio
from typing import Callable, Optional, Protocol, Set

from ingest_enrich.backend.schemas.search import SearchRequest, SearchResponse


SearchContinuation = Callable[[Optional[SearchResponse], Optional[BaseException]], None]  # docstring: (response, error) 二选一
SearchRunner = Callable[[SearchRequest, SearchContinuation], None]  # docstring: 非阻塞 dispatch，continuation 至多调用一次


class SearchClient(Protocol):
    """Anything that can run a SearchRequest asynchronously."""

    async def search(self, request: SearchRequest) -> SearchResponse: ...


_PENDING: Set["asyncio.Task[SearchResponse]"] = set()  # docstring: 持有 in-flight task 引用，防止被 GC 回收


def _deliver(task: "asyncio.Task[SearchResponse]", continuation: SearchContinuation) -> None:
    """
    [职责] task 完成后将结果或异常交给 continuation（恰好一次）。
    [边界] 取消视为失败，以 CancelledError 实例交付。
    """
    _PENDING.discard(task)
    if task.cancelled():
        continuation(None, asyncio.CancelledError())
        return
    exc = task.exception()
    if exc is not None:
        continuation(None, exc)
        return
    continuation(task.result(), None)


def create_search_runner(client: SearchClient) -> SearchRunner:
    """
    [职责] 将 async 客户端适配为 SearchRunner：在当前运行中的 event loop 上调度查询并立即返回。
    [边界] 必须在 event loop 内调用（否则 get_running_loop 抛 RuntimeError，由 processor 经 on_done 报告）。
    [上游关系] factory/services 装配 MatchProcessor 时调用。
    [下游关系] continuation 在 loop 线程上被调用。
    """

    def _run(request: SearchRequest, continuation: SearchContinuation) -> None:
        loop = asyncio.get_running_loop()  # docstring: 先取 loop，避免创建无人 await 的协程
        task = loop.create_task(client.search(request))
        _PENDING.add(task)
        task.add_done_callback(lambda t: _deliver(t, continuation))

    return _run
