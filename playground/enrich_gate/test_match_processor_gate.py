# playground/enrich_gate/test_match_processor_gate.py

"""
[职责] match processor gate：锁死 process(document, on_done) 的完成合同（恰好一次）与合并规则（空结果/override/上限）。
[边界] 不连接任何真实后端；SearchRunner 以确定性 stub 注入；不测试 HTTP 层。
[上游关系] backend/pipelines/enrich/{processor,completion,query}.py、backend/documents/ingest_document.py。
[下游关系] services/enrich_service 与 API 依赖这些行为。
"""

from __future__ import annotations

import asyncio
import copy
from typing import Any, Dict, List, Optional, Tuple

import pytest

from ingest_enrich.backend.documents.ingest_document import IngestDocument
from ingest_enrich.backend.pipelines.enrich.processor import MatchProcessor
from ingest_enrich.backend.schemas.enrich import MatchProcessorConfig
from ingest_enrich.backend.schemas.search import SearchHit, SearchRequest, SearchResponse
from ingest_enrich.backend.utils.errors import (
    CompletionAlreadyInvokedError,
    ExternalDependencyError,
    FieldNotFoundError,
    FieldPathError,
    FieldTypeMismatchError,
    PipelineError,
    UnsupportedOperationError,
)


pytestmark = pytest.mark.enrich_gate


class _StubRunner:
    """Deterministic SearchRunner stub."""  # docstring: 同步回调，记录收到的请求

    def __init__(
        self,
        *,
        records: Optional[List[Dict[str, Any]]] = None,
        error: Optional[BaseException] = None,
        respond_none: bool = False,
    ) -> None:
        self.records = records or []
        self.error = error
        self.respond_none = respond_none
        self.requests: List[SearchRequest] = []

    def __call__(self, request: SearchRequest, continuation) -> None:
        self.requests.append(request)
        if self.error is not None:
            continuation(None, self.error)
            return
        if self.respond_none:
            continuation(None, None)
            return
        hits = [SearchHit(index=request.indices[0], id=str(i), source=r) for i, r in enumerate(self.records)]
        continuation(SearchResponse(hits=hits, total=len(hits)), None)


class _Sink:
    """Completion sink that counts invocations."""  # docstring: exactly-once 计数

    def __init__(self) -> None:
        self.calls: List[Tuple[Optional[IngestDocument], Optional[BaseException]]] = []

    def __call__(self, document: Optional[IngestDocument], error: Optional[BaseException]) -> None:
        self.calls.append((document, error))

    @property
    def document(self) -> Optional[IngestDocument]:
        return self.calls[0][0]

    @property
    def error(self) -> Optional[BaseException]:
        return self.calls[0][1]


def _processor(runner, **overrides: Any) -> MatchProcessor:
    cfg: Dict[str, Any] = {
        "policy_name": "users",
        "field": "email",
        "target_field": "user",
        "match_field": "email",
    }
    cfg.update(overrides)
    return MatchProcessor(config=MatchProcessorConfig(**cfg), search_runner=runner, tag="p-1")


def test_scenario_single_record_written_as_list() -> None:
    """key=X, one record {"a":1}, max_matches=3 → target becomes [{"a":1}]."""  # docstring: 单条也写 list
    runner = _StubRunner(records=[{"a": 1}])
    sink = _Sink()
    doc = IngestDocument({"email": "X"})

    _processor(runner, max_matches=3).process(doc, sink)

    assert len(sink.calls) == 1
    assert sink.error is None
    assert sink.document is doc
    assert doc.source["user"] == [{"a": 1}]


def test_scenario_zero_matches_leaves_document_unchanged() -> None:
    runner = _StubRunner(records=[])
    sink = _Sink()
    doc = IngestDocument({"email": "X"})

    _processor(runner).process(doc, sink)

    assert len(sink.calls) == 1
    assert sink.error is None
    assert doc.to_dict() == {"email": "X"}
    assert "user" not in doc.source


@pytest.mark.parametrize("override", [True, False])
def test_empty_result_ignores_override_flag(override: bool) -> None:
    """Empty result set never writes, regardless of override."""  # docstring: 空结果与 override 无关
    source = {"email": "X", "user": "keep"}
    doc = IngestDocument(copy.deepcopy(source))
    sink = _Sink()

    _processor(_StubRunner(records=[]), override=override).process(doc, sink)

    assert len(sink.calls) == 1
    assert doc.to_dict() == source


def test_query_uses_key_match_field_and_cap() -> None:
    runner = _StubRunner(records=[])
    _processor(runner, match_field="mail", max_matches=5).process(IngestDocument({"email": "a@b.c"}), _Sink())

    assert len(runner.requests) == 1
    req = runner.requests[0]
    assert req.indices == [".enrich-users"]
    assert req.term.field == "mail"
    assert req.term.value == "a@b.c"
    assert req.source.size == 5
    assert req.source.from_ == 0


def test_k_records_written_in_response_order() -> None:
    records = [{"n": 3}, {"n": 1}, {"n": 2}]
    doc = IngestDocument({"email": "X"})
    sink = _Sink()

    _processor(_StubRunner(records=records), max_matches=3).process(doc, sink)

    assert sink.error is None
    assert doc.source["user"] == records  # docstring: 保持响应顺序，不重排


def test_non_conforming_backend_is_capped() -> None:
    """Backend returning more than max_matches must be truncated."""  # docstring: 上限在合并阶段再次保证
    records = [{"n": i} for i in range(10)]
    doc = IngestDocument({"email": "X"})

    _processor(_StubRunner(records=records), max_matches=2).process(doc, _Sink())

    assert doc.source["user"] == [{"n": 0}, {"n": 1}]


def test_override_disabled_protects_existing_target() -> None:
    original = {"id": 7, "tags": ["a", "b"]}
    doc = IngestDocument({"email": "X", "user": copy.deepcopy(original)})
    sink = _Sink()

    _processor(_StubRunner(records=[{"a": 1}]), override=False).process(doc, sink)

    assert len(sink.calls) == 1
    assert sink.error is None
    assert sink.document is doc
    assert doc.source["user"] == original


def test_override_disabled_protects_explicit_null_target() -> None:
    """A present-but-null target still counts as existing."""  # docstring: has_field 对 None 返回 True
    doc = IngestDocument({"email": "X", "user": None})
    _processor(_StubRunner(records=[{"a": 1}]), override=False).process(doc, _Sink())
    assert doc.source["user"] is None


def test_override_disabled_writes_when_target_absent() -> None:
    doc = IngestDocument({"email": "X"})
    _processor(_StubRunner(records=[{"a": 1}]), override=False).process(doc, _Sink())
    assert doc.source["user"] == [{"a": 1}]


def test_override_enabled_replaces_prior_value() -> None:
    doc = IngestDocument({"email": "X", "user": "old"})
    _processor(_StubRunner(records=[{"a": 1}])).process(doc, _Sink())
    assert doc.source["user"] == [{"a": 1}]


def test_nested_target_path_is_created() -> None:
    doc = IngestDocument({"email": "X"})
    _processor(_StubRunner(records=[{"a": 1}]), target_field="enriched.user").process(doc, _Sink())
    assert doc.source == {"email": "X", "enriched": {"user": [{"a": 1}]}}


def test_written_records_are_copies_of_hit_sources() -> None:
    record = {"a": 1}
    doc = IngestDocument({"email": "X"})
    _processor(_StubRunner(records=[record])).process(doc, _Sink())

    doc.source["user"][0]["a"] = 2
    assert record == {"a": 1}  # docstring: 写入的是新 dict，不与响应共享


def test_missing_field_with_ignore_missing_passes_through() -> None:
    runner = _StubRunner(records=[{"a": 1}])
    doc = IngestDocument({"other": 1})
    sink = _Sink()

    _processor(runner, ignore_missing=True).process(doc, sink)

    assert len(sink.calls) == 1
    assert sink.error is None
    assert sink.document is doc
    assert doc.to_dict() == {"other": 1}
    assert runner.requests == []  # docstring: 未 dispatch 查询


def test_null_field_with_ignore_missing_passes_through() -> None:
    runner = _StubRunner(records=[{"a": 1}])
    doc = IngestDocument({"email": None})
    sink = _Sink()

    _processor(runner, ignore_missing=True).process(doc, sink)

    assert sink.error is None
    assert runner.requests == []


def test_missing_field_without_ignore_missing_fails() -> None:
    runner = _StubRunner(records=[{"a": 1}])
    sink = _Sink()

    _processor(runner).process(IngestDocument({"other": 1}), sink)

    assert len(sink.calls) == 1
    assert sink.document is None
    assert isinstance(sink.error, FieldNotFoundError)
    assert sink.error.error_code == "DOCUMENT__FIELD_NOT_FOUND"
    assert runner.requests == []


def test_non_string_field_fails_with_type_mismatch() -> None:
    sink = _Sink()
    _processor(_StubRunner()).process(IngestDocument({"email": 42}), sink)

    assert len(sink.calls) == 1
    assert sink.document is None
    assert isinstance(sink.error, FieldTypeMismatchError)
    assert sink.error.detail == {"path": "email", "expected": "str", "actual": "int"}


def test_malformed_target_path_reported_through_sink() -> None:
    """Write conflict during merge surfaces via on_done, not as a raise."""  # docstring: 父节点为标量
    doc = IngestDocument({"email": "X", "user": "scalar"})
    sink = _Sink()

    _processor(_StubRunner(records=[{"a": 1}]), target_field="user.profile").process(doc, sink)

    assert len(sink.calls) == 1
    assert sink.document is None
    assert isinstance(sink.error, FieldPathError)


def test_runner_error_forwarded_unmodified() -> None:
    err = ExternalDependencyError(message="backend down")
    sink = _Sink()

    _processor(_StubRunner(error=err)).process(IngestDocument({"email": "X"}), sink)

    assert len(sink.calls) == 1
    assert sink.document is None
    assert sink.error is err  # docstring: 同一对象，不包装


def test_runner_raising_synchronously_is_reported() -> None:
    def _raising_runner(request, continuation) -> None:
        raise RuntimeError("dispatch failed")

    sink = _Sink()
    _processor(_raising_runner).process(IngestDocument({"email": "X"}), sink)

    assert len(sink.calls) == 1
    assert isinstance(sink.error, RuntimeError)


def test_runner_delivering_nothing_fails_with_pipeline_error() -> None:
    sink = _Sink()
    _processor(_StubRunner(respond_none=True)).process(IngestDocument({"email": "X"}), sink)

    assert len(sink.calls) == 1
    assert isinstance(sink.error, PipelineError)


def test_double_continuation_is_a_programming_error() -> None:
    """A runner calling its continuation twice must not complete twice."""  # docstring: 单次完成守卫

    def _twice(request, continuation) -> None:
        continuation(SearchResponse(hits=[]), None)
        continuation(SearchResponse(hits=[]), None)

    sink = _Sink()
    with pytest.raises(CompletionAlreadyInvokedError):
        _processor(_twice).process(IngestDocument({"email": "X"}), sink)
    assert len(sink.calls) == 1


def test_runner_raising_after_delivery_is_reraised() -> None:
    """Once the continuation has completed, a later runner exception propagates to the caller."""  # docstring: 已完成，不再经 on_done 报告

    def _deliver_then_raise(request, continuation) -> None:
        continuation(SearchResponse(hits=[]), None)
        raise RuntimeError("runner bookkeeping failed")

    sink = _Sink()
    with pytest.raises(RuntimeError, match="bookkeeping"):
        _processor(_deliver_then_raise).process(IngestDocument({"email": "X"}), sink)
    assert len(sink.calls) == 1
    assert sink.error is None
    assert sink.document.to_dict() == {"email": "X"}


@pytest.mark.parametrize(
    "source,runner_kwargs,cfg",
    [
        ({"other": 1}, {}, {"ignore_missing": True}),
        ({"other": 1}, {}, {}),
        ({"email": 1}, {}, {}),
        ({"email": "X"}, {"records": []}, {}),
        ({"email": "X", "user": 1}, {"records": [{"a": 1}]}, {"override": False}),
        ({"email": "X"}, {"records": [{"a": 1}]}, {}),
        ({"email": "X"}, {"error": RuntimeError("boom")}, {}),
        ({"email": "X", "user": "s"}, {"records": [{"a": 1}]}, {"target_field": "user.x"}),
    ],
)
def test_exactly_once_in_every_branch(source, runner_kwargs, cfg) -> None:
    sink = _Sink()
    _processor(_StubRunner(**runner_kwargs), **cfg).process(IngestDocument(source), sink)

    assert len(sink.calls) == 1
    document, error = sink.calls[0]
    assert (document is None) != (error is None)  # docstring: 二选一


def test_identical_inputs_yield_identical_outputs() -> None:
    source = {"email": "X", "nested": {"k": [1, 2]}}
    runner = _StubRunner(records=[{"a": 1}, {"b": 2}])
    processor = _processor(runner, max_matches=2)

    d1 = IngestDocument(copy.deepcopy(source))
    d2 = IngestDocument(copy.deepcopy(source))
    processor.process(d1, _Sink())
    processor.process(d2, _Sink())

    assert d1.to_dict() == d2.to_dict()


def test_execute_is_unsupported() -> None:
    with pytest.raises(UnsupportedOperationError):
        _processor(_StubRunner()).execute(IngestDocument({"email": "X"}))


def test_processor_exposes_config() -> None:
    p = _processor(_StubRunner(), max_matches=4, ignore_missing=True, override=False)
    assert p.type == "enrich"
    assert p.tag == "p-1"
    assert p.policy_name == "users"
    assert p.field == "email"
    assert p.target_field == "user"
    assert p.match_field == "email"
    assert p.max_matches == 4
    assert p.ignore_missing is True
    assert p.override is False


def test_processor_tag_defaults_to_uuid() -> None:
    cfg = MatchProcessorConfig(policy_name="users", field="email", target_field="user", match_field="email")
    p = MatchProcessor(config=cfg, search_runner=_StubRunner())
    assert len(p.tag) == 36


@pytest.mark.asyncio
async def test_execute_async_resolves_document() -> None:
    doc = IngestDocument({"email": "X"})
    result = await _processor(_StubRunner(records=[{"a": 1}])).execute_async(doc)
    assert result is doc
    assert doc.source["user"] == [{"a": 1}]


@pytest.mark.asyncio
async def test_execute_async_raises_reported_error() -> None:
    with pytest.raises(FieldNotFoundError):
        await _processor(_StubRunner()).execute_async(IngestDocument({}))


@pytest.mark.asyncio
async def test_execute_async_with_deferred_continuation() -> None:
    """Continuation fired later on the loop, after process returned."""  # docstring: 真正的挂起点

    loop = asyncio.get_running_loop()

    def _deferred(request, continuation) -> None:
        hit = SearchHit(index=request.indices[0], id="1", source={"a": 1})
        loop.call_later(0.01, continuation, SearchResponse(hits=[hit]), None)

    doc = IngestDocument({"email": "X"})
    result = await _processor(_deferred).execute_async(doc)
    assert result is doc
    assert doc.source["user"] == [{"a": 1}]


@pytest.mark.asyncio
async def test_concurrent_invocations_are_independent() -> None:
    loop = asyncio.get_running_loop()

    def _by_key(request, continuation) -> None:
        key = request.term.value
        delay = 0.03 if key == "slow" else 0.0
        hit = SearchHit(index=request.indices[0], id=key, source={"key": key})
        loop.call_later(delay, continuation, SearchResponse(hits=[hit]), None)

    processor = _processor(_by_key)
    slow = IngestDocument({"email": "slow"})
    fast = IngestDocument({"email": "fast"})
    await asyncio.gather(processor.execute_async(slow), processor.execute_async(fast))

    assert slow.source["user"] == [{"key": "slow"}]
    assert fast.source["user"] == [{"key": "fast"}]
