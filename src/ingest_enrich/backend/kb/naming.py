# src/ingest_enrich/backend/kb/naming.py

"""
[职责] 参考索引命名约定：由 policy 名称确定性推导 base index name。
[边界] 纯函数；不访问后端；不做索引生命周期管理（创建/刷新/别名切换由外部负责）。
[上游关系] query builder 与参考索引填充方共同依赖。
[下游关系] SearchRequest.indices、ReferenceRepo 的 index_name 过滤。
"""

from __future__ import annotations

from ingest_enrich.backend.utils.constants import ENRICH_INDEX_PREFIX


def get_base_name(policy_name: str) -> str:
    """Return the reference index base name for a policy, e.g. `users` -> `.enrich-users`."""
    return ENRICH_INDEX_PREFIX + policy_name
