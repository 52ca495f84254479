# src/ingest_enrich/backend/pipelines/base/timing.py

"""
[职责] timing 基础设施：为 services 提供阶段计时（ms）收集与导出能力，支撑日志与 HTTP 响应中的 timing_ms。
[边界] 不做分布式 tracing；不负责日志落地；仅提供轻量计时器与可序列化的 dict。
[上游关系] services/enrich_service 在 enrich 执行前后调用。
[下游关系] 结构化日志字段、EnrichExecuteResponse.timing_ms。
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator


def _now_ms() -> float:
    """High resolution relative timestamp in ms."""  # docstring: 仅用于相对耗时计算
    return time.perf_counter() * 1000.0


@dataclass
class TimingCollector:
    """
    [职责] TimingCollector：收集各阶段耗时并导出 dict[str, float]（ms）。
    [边界] 不做线程安全保证；假设单请求/单协程内使用。
    """

    _stages_ms: Dict[str, float] = field(default_factory=dict)
    _start_ms: float = field(default_factory=_now_ms)

    def add_ms(self, key: str, ms: float, *, accumulate: bool = True) -> None:
        k = str(key).strip()
        if not k:
            return
        v = max(float(ms), 0.0)  # docstring: 负数截断为 0
        if accumulate:
            self._stages_ms[k] = self._stages_ms.get(k, 0.0) + v
        else:
            self._stages_ms[k] = v

    @contextmanager
    def stage(self, key: str, *, accumulate: bool = False) -> Iterator[None]:
        """
        [职责] 上下文管理器形式的阶段计时，退出时（含异常退出）写入耗时。
        [边界] 默认不累加，同名 stage 后写覆盖先写。
        """
        start = _now_ms()
        try:
            yield
        finally:
            self.add_ms(key, _now_ms() - start, accumulate=accumulate)

    def total_ms(self) -> float:
        return _now_ms() - self._start_ms

    def to_dict(self, *, include_total: bool = True, total_key: str = "total_ms") -> Dict[str, float]:
        out = dict(self._stages_ms)
        if include_total:
            out[total_key] = float(self.total_ms())
        return out
