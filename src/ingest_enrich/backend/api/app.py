# src/ingest_enrich/backend/api/app.py

"""
[职责] FastAPI app factory：注册 middleware 与 routers，启动时配置日志，关闭时释放搜索客户端连接池。
[边界] 不创建表（参考索引由外部填充）；不持有业务状态。
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from ingest_enrich.backend.api.deps import close_search_clients
from ingest_enrich.backend.api.middleware import TraceContextMiddleware
from ingest_enrich.backend.api.routers.enrich import router as enrich_router
from ingest_enrich.backend.api.routers.health import router as health_router
from ingest_enrich.backend.utils.logging_ import configure_logging
from ingest_enrich.config import settings


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    await close_search_clients()  # docstring: shutdown 时关闭缓存的 httpx client


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="ingest_enrich", debug=settings.DEBUG, lifespan=_lifespan)
    app.add_middleware(TraceContextMiddleware)
    app.include_router(health_router)
    app.include_router(enrich_router)
    return app
