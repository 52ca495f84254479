# src/ingest_enrich/backend/utils/constants.py

"""
[职责] 集中定义默认常量与协议字段名（索引命名/查询参数/trace/timing），降低跨模块硬编码。
[边界] 不包含运行时可变配置；不读取环境变量。
[上游关系] pipelines/kb/services/api 在构建查询、记录日志与响应时引用。
[下游关系] 参考索引的填充方必须使用同一 ENRICH_INDEX_PREFIX 才能被查询命中。
"""

from __future__ import annotations


PROCESSOR_TYPE = "enrich"  # docstring: processor 注册类型名

ENRICH_INDEX_PREFIX = ".enrich-"  # docstring: 参考索引 base name 前缀

SEARCH_PREFERENCE_LOCAL = "_local"  # docstring: 优先本地副本执行（locality hint）

DEFAULT_MAX_MATCHES = 1  # docstring: max_matches 默认值
MAX_MATCHES_LIMIT = 128  # docstring: max_matches 上限（同时是查询 page size 上限）

TRACE_ID_KEY = "trace_id"  # docstring: trace_id 字段
REQUEST_ID_KEY = "request_id"  # docstring: request_id 字段
PROCESSOR_TAG_KEY = "processor_tag"  # docstring: processor tag 字段
POLICY_NAME_KEY = "policy_name"  # docstring: policy 名称字段

TIMING_TOTAL_MS_KEY = "total_ms"  # docstring: timing_ms 的总耗时 key（含单位）
