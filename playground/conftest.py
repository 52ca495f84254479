# playground/conftest.py

"""
[职责] playground 公共 fixtures：为每个测试提供独立 sqlite 文件库的 engine/sessionmaker/session。
[边界] 不使用默认本地库（.Local）；不填充参考索引数据（由各 gate 自行写入）。
[上游关系] backend/db/engine.py（create_engine/create_sessionmaker/init_db/drop_db）。
[下游关系] sql_gate / kb_gate / fastapi_gate 复用 session fixture。
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import AsyncIterator

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

_REPO_ROOT = Path(__file__).resolve().parents[1]
_SRC_ROOT = _REPO_ROOT / "src"
if str(_SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(_SRC_ROOT))  # docstring: ensure local src import

from ingest_enrich.backend.db.engine import create_engine, create_sessionmaker, drop_db, init_db  # noqa: E402


@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    """Isolated sqlite file engine with schema created."""  # docstring: 防污染默认本地库
    db_file = tmp_path / "playground.db"
    eng = create_engine(url=f"sqlite+aiosqlite:///{db_file}", echo=False)
    await init_db(engine=eng)
    try:
        yield eng
    finally:
        await drop_db(engine=eng)
        await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_sessionmaker(engine)


@pytest_asyncio.fixture
async def session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with session_factory() as s:
        yield s
