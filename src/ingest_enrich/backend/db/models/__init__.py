# src/ingest_enrich/backend/db/models/__init__.py

"""
[职责] db.models 聚合导出：集中声明 ORM Models，供 init_db 自动注册元数据。
[边界] 仅做导入与 __all__ 暴露；不包含任何业务逻辑。
"""

from __future__ import annotations

from ..base import Base
from .reference import EnrichRecordModel

__all__ = [
    "Base",
    "EnrichRecordModel",
]
