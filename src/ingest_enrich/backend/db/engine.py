# src/ingest_enrich/backend/db/engine.py

"""
[职责] 数据库引擎与会话工厂：创建 AsyncEngine / AsyncSession，并提供 init_db/drop_db。
[边界] 不包含 ORM Model 定义；不包含事务编排；不负责迁移。
[上游关系] config.py / 环境变量提供数据库连接配置；应用启动时可调用 init_db。
[下游关系] api/deps.py、kb/reference_client.py 依赖 sessionmaker；tests 可传入独立 engine。
"""

from __future__ import annotations

import os
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from ingest_enrich.config import settings

from .base import Base


def _default_db_url() -> str:
    """Local sqlite file under repo-root/.Local."""  # docstring: 最小可用配置
    db_path = settings.local_db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite+aiosqlite:///{db_path.as_posix()}"


def resolve_db_url(override: Optional[str] = None) -> str:
    """
    Resolve database URL.

    Priority:
        1) explicit override
        2) settings: INGEST_ENRICH_DATABASE_URL (loads .env)
        3) env: INGEST_ENRICH_DATABASE_URL
        4) env: DATABASE_URL
        5) fallback: local sqlite file
    """
    if override:
        return override
    s_url = str(settings.INGEST_ENRICH_DATABASE_URL or "").strip()
    if s_url:
        return s_url
    env_url = os.getenv("INGEST_ENRICH_DATABASE_URL", "").strip()
    if env_url:
        return env_url
    env_url2 = os.getenv("DATABASE_URL", "").strip()
    if env_url2:
        return env_url2
    return _default_db_url()


def create_engine(*, url: Optional[str] = None, echo: Optional[bool] = None) -> AsyncEngine:
    """Create AsyncEngine (aiosqlite for SQLite)."""  # docstring: 生产/测试复用；测试可传入内存库
    db_url = resolve_db_url(url)
    db_echo = echo if echo is not None else (os.getenv("SQL_ECHO", "0") == "1")  # docstring: SQL 打印开关
    return create_async_engine(
        db_url,
        echo=db_echo,
        pool_pre_ping=True,
    )


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create async sessionmaker."""  # docstring: 统一 expire_on_commit 行为
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


_ENGINE: Optional[AsyncEngine] = None
_SESSION_FACTORY: Optional[async_sessionmaker[AsyncSession]] = None


def get_engine() -> AsyncEngine:
    """Lazily create the process-wide engine."""  # docstring: 避免 import 时创建连接/目录
    global _ENGINE
    if _ENGINE is None:
        _ENGINE = create_engine()
    return _ENGINE


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    global _SESSION_FACTORY
    if _SESSION_FACTORY is None:
        _SESSION_FACTORY = create_sessionmaker(get_engine())
    return _SESSION_FACTORY


async def init_db(*, engine: Optional[AsyncEngine] = None) -> None:
    """
    Initialize database schema (create_all).

    Local/dev use only; the reference index is normally populated elsewhere.
    """
    from . import models  # noqa: F401  # docstring: 强制注册 ORM 表

    eng = engine or get_engine()
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_db(*, engine: Optional[AsyncEngine] = None) -> None:
    """Drop all tables (drop_all). Tests/dev reset only."""  # docstring: 幂等；表不存在也安全
    from . import models  # noqa: F401

    eng = engine or get_engine()
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

