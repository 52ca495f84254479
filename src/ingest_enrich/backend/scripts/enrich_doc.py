# src/ingest_enrich/backend/scripts/enrich_doc.py

"""
[职责] CLI：对一个 JSON 文档执行一次 match enrich 并输出结果（本地调试/回放）。
[边界] 不填充参考索引；--init-db 仅创建表结构；失败以非 0 退出码与 JSON 错误体输出。
[上游关系] 命令行调用。
[下游关系] services/enrich_service + kb 客户端（SQL 参考索引或 HTTP 后端）。
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any, Dict, Optional, Sequence

from ingest_enrich.backend.db.engine import create_engine, create_sessionmaker, init_db
from ingest_enrich.backend.kb.http_client import HttpSearchClient
from ingest_enrich.backend.kb.reference_client import ReferenceIndexClient
from ingest_enrich.backend.services.enrich_service import EnrichService
from ingest_enrich.backend.utils.errors import to_http_error


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run one document through an enrich match processor.")
    parser.add_argument("--policy", required=True)  # docstring: policy 名称
    parser.add_argument("--field", required=True)  # docstring: 源字段路径
    parser.add_argument("--target-field", required=True)  # docstring: 目标字段路径
    parser.add_argument("--match-field", required=True)  # docstring: 参考索引匹配字段
    parser.add_argument("--max-matches", type=int, default=None)
    parser.add_argument("--ignore-missing", action="store_true")
    parser.add_argument("--no-override", dest="override", action="store_false")
    parser.add_argument("--document", default="-")  # docstring: JSON 文件路径，"-" 读取 stdin
    parser.add_argument("--db-url", dest="db_url", default=None)  # docstring: 显式 DB 连接串
    parser.add_argument("--endpoint", default=None)  # docstring: HTTP 搜索后端（优先于 DB）
    parser.add_argument("--init-db", action="store_true")  # docstring: 先 create_all
    return parser


def _load_document(path: str) -> Dict[str, Any]:
    if path == "-":
        return json.load(sys.stdin)
    with open(path, "r", encoding="utf-8") as fh:
        return json.load(fh)


async def _run_async(args: argparse.Namespace) -> Dict[str, Any]:
    config: Dict[str, Any] = {
        "policy_name": args.policy,
        "field": args.field,
        "target_field": args.target_field,
        "match_field": args.match_field,
        "ignore_missing": bool(args.ignore_missing),
        "override": bool(args.override),
        "max_matches": args.max_matches,
    }
    document = _load_document(args.document)

    if args.endpoint:
        http_client = HttpSearchClient(endpoint=args.endpoint)
        try:
            result = await EnrichService.from_client(http_client).execute(document, config)
        finally:
            await http_client.aclose()
        return result.document.to_dict()

    engine = create_engine(url=args.db_url)
    try:
        if args.init_db:
            await init_db(engine=engine)
        client = ReferenceIndexClient(session_factory=create_sessionmaker(engine))
        result = await EnrichService.from_client(client).execute(document, config)
        return result.document.to_dict()
    finally:
        await engine.dispose()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    [职责] CLI 入口：解析参数并执行 enrich。
    [边界] 捕获异常并转为非 0 退出码（错误体与 HTTP 层一致）。
    """
    args = _build_parser().parse_args(list(argv) if argv is not None else None)
    try:
        output = asyncio.run(_run_async(args))
    except Exception as exc:
        _, payload = to_http_error(exc)
        print(json.dumps(payload, ensure_ascii=False), file=sys.stderr)
        return 1
    print(json.dumps(output, ensure_ascii=False, default=str))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
