# src/ingest_enrich/backend/kb/http_client.py

"""
[职责] HttpSearchClient：面向 Elasticsearch/OpenSearch 兼容 `_search` 接口的 async 搜索客户端（httpx）。
[边界] 不重试；超时由 httpx.Timeout 控制并以 ExternalDependencyError 报告；不管理索引。
[上游关系] kb/runner.create_search_runner 包装本客户端；配置来自 settings 或显式参数。
[下游关系] 远端搜索后端；响应解析为 SearchResponse。
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

import httpx

from ingest_enrich.backend.schemas.search import SearchRequest, SearchResponse
from ingest_enrich.backend.utils.errors import ExternalDependencyError


class HttpSearchClient:
    """Search client for an `_search` HTTP endpoint."""

    def __init__(
        self,
        *,
        endpoint: str,
        timeout_s: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self._endpoint = endpoint.rstrip("/")  # docstring: 后端 base URL
        self._owns_client = client is None  # docstring: 仅关闭自己创建的 client
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_s), headers=headers)

    @classmethod
    def from_settings(cls) -> "HttpSearchClient":
        from ingest_enrich.config import settings

        endpoint = str(settings.INGEST_ENRICH_SEARCH_ENDPOINT or "").strip()
        if not endpoint:
            raise ValueError("INGEST_ENRICH_SEARCH_ENDPOINT is not set")
        return cls(endpoint=endpoint, timeout_s=float(settings.INGEST_ENRICH_SEARCH_TIMEOUT_S))

    def _search_url(self, request: SearchRequest) -> str:
        return f"{self._endpoint}/{','.join(request.indices)}/_search"

    async def search(self, request: SearchRequest) -> SearchResponse:
        params: Dict[str, Any] = {}
        if request.preference:
            params["preference"] = request.preference  # docstring: locality hint

        try:
            resp = await self._client.post(self._search_url(request), params=params, json=request.to_body())
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ExternalDependencyError(
                message="search backend returned an error status",
                detail={"status_code": exc.response.status_code, "indices": list(request.indices)},
                cause=exc,
                retryable=exc.response.status_code >= 500,
            ) from exc
        except httpx.HTTPError as exc:
            raise ExternalDependencyError(
                message="search backend request failed",
                detail={"indices": list(request.indices), "error": exc.__class__.__name__},
                cause=exc,
            ) from exc

        try:
            payload = resp.json()
            if not isinstance(payload, Mapping):
                raise TypeError(f"expected a JSON object, got {type(payload).__name__}")
            return SearchResponse.from_es_body(payload)
        except (ValueError, TypeError, AttributeError) as exc:  # docstring: 含 JSONDecodeError 与 pydantic ValidationError
            raise ExternalDependencyError(
                message="search backend returned a malformed body",
                detail={"indices": list(request.indices), "error": exc.__class__.__name__},
                cause=exc,
                retryable=False,
            ) from exc

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
