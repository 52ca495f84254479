# src/ingest_enrich/backend/db/repo/__init__.py

"""
[职责] db.repo 聚合导出：集中暴露仓储对象，供 kb 客户端与测试调用。
[边界] 仅做导入与 __all__ 暴露。
"""

from __future__ import annotations

from .reference_repo import ReferenceRepo

__all__ = [
    "ReferenceRepo",
]
