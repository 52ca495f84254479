# playground/kb_gate/test_search_runner_gate.py

"""
[职责] search runner gate：验证 async 客户端 → 回调式 SearchRunner 适配（非阻塞 dispatch、结果/异常/取消交付恰好一次）。
[边界] 客户端以 stub 注入；不连接真实后端。
[上游关系] backend/kb/runner.py。
[下游关系] MatchProcessor 依赖 runner 的 continuation 合同。
"""

from __future__ import annotations

import asyncio
from typing import List, Optional, Tuple

import pytest

from ingest_enrich.backend.kb.runner import create_search_runner
from ingest_enrich.backend.pipelines.enrich.query import build_match_query
from ingest_enrich.backend.schemas.search import SearchHit, SearchRequest, SearchResponse
from ingest_enrich.backend.utils.errors import ExternalDependencyError


pytestmark = pytest.mark.kb_gate


class _Client:
    def __init__(self, *, error: Optional[BaseException] = None, gate: Optional[asyncio.Event] = None) -> None:
        self.error = error
        self.gate = gate
        self.calls: List[SearchRequest] = []

    async def search(self, request: SearchRequest) -> SearchResponse:
        self.calls.append(request)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return SearchResponse(hits=[SearchHit(index=request.indices[0], id="1", source={"a": 1})], total=1)


async def _run(runner, request) -> Tuple[Optional[SearchResponse], Optional[BaseException], int]:
    done = asyncio.Event()
    calls: List[Tuple[Optional[SearchResponse], Optional[BaseException]]] = []

    def _continuation(response, error) -> None:
        calls.append((response, error))
        done.set()

    runner(request, _continuation)
    await asyncio.wait_for(done.wait(), timeout=1.0)
    await asyncio.sleep(0)  # docstring: 给重复回调留出机会
    return calls[0][0], calls[0][1], len(calls)


@pytest.mark.asyncio
async def test_runner_delivers_response() -> None:
    client = _Client()
    response, error, count = await _run(create_search_runner(client), build_match_query("X", "f", 1, "p"))

    assert error is None
    assert response is not None
    assert response.hits[0].source == {"a": 1}
    assert count == 1
    assert client.calls[0].indices == [".enrich-p"]


@pytest.mark.asyncio
async def test_runner_delivers_client_error_unmodified() -> None:
    err = ExternalDependencyError(message="down")
    response, error, count = await _run(create_search_runner(_Client(error=err)), build_match_query("X", "f", 1, "p"))

    assert response is None
    assert error is err
    assert count == 1


@pytest.mark.asyncio
async def test_runner_dispatch_does_not_block() -> None:
    gate = asyncio.Event()
    client = _Client(gate=gate)
    runner = create_search_runner(client)
    calls: List[object] = []

    runner(build_match_query("X", "f", 1, "p"), lambda r, e: calls.append((r, e)))
    assert calls == []  # docstring: dispatch 立即返回

    gate.set()
    for _ in range(10):
        await asyncio.sleep(0)
        if calls:
            break
    assert len(calls) == 1


def test_runner_outside_event_loop_raises() -> None:
    runner = create_search_runner(_Client())
    with pytest.raises(RuntimeError):
        runner(build_match_query("X", "f", 1, "p"), lambda r, e: None)
