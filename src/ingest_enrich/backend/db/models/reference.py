# src/ingest_enrich/backend/db/models/reference.py

from __future__ import annotations

import uuid
from typing import Any, Dict

from sqlalchemy import JSON, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ..base import Base, TimestampMixin


class EnrichRecordModel(Base, TimestampMixin):
    """
    [职责] 参考索引记录：按 index_name 分组存储的完整记录体（source JSON），按写入顺序编号。
    [边界] 只读语义由调用方保证（processor 不写）；不做字段级 schema；不负责索引生命周期。
    [上游关系] 外部填充流程（或测试/开发脚本）通过 ReferenceRepo.add_records 写入。
    [下游关系] ReferenceRepo.search 按 match_field 精确匹配并按 seq 输出 SearchHit。
    """

    __tablename__ = "enrich_record"
    __table_args__ = (
        UniqueConstraint("index_name", "seq", name="uq_enrich_record_index_seq"),
        Index("ix_enrich_record_index_seq", "index_name", "seq"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
        comment="记录ID（UUID字符串）",  # docstring: 返回为 SearchHit.id
    )

    index_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="参考索引名（.enrich-<policy>）",  # docstring: 查询作用域
    )

    seq: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="索引内写入顺序",  # docstring: 自然顺序（常量打分下的返回顺序）
    )

    source: Mapped[Dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        comment="完整记录体",  # docstring: 合并进文档的原始记录
    )
