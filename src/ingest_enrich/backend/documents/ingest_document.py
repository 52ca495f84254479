# src/ingest_enrich/backend/documents/ingest_document.py

"""
[职责] IngestDocument：单个 ingest 文档的字段访问抽象（按点分路径读/写/存在性检查），原地修改不复制。
[边界] 不做 schema 校验；不做元数据（_index/_id）管理；路径语法仅支持 "a.b.0.c"（list 段使用整数下标）。
[上游关系] pipeline engine / services / api 以 dict 构造文档后交给 processor。
[下游关系] MatchProcessor 通过 get_field_value/has_field/set_field_value 读取 lookup key 与写入匹配记录。
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, MutableMapping, Optional, Tuple

from ingest_enrich.backend.utils.errors import FieldNotFoundError, FieldPathError, FieldTypeMismatchError


_MISSING = object()  # docstring: 路径解析失败哨兵（区别于值为 None）


def _split_path(path: str) -> List[str]:
    """
    [职责] 将点分路径拆分为段列表。
    [边界] 空路径/空段直接报错；不支持转义点号。
    """
    raw = str(path or "").strip()
    if not raw:
        raise FieldPathError(str(path), reason="path cannot be null nor empty")
    parts = raw.split(".")
    if any(not p for p in parts):
        raise FieldPathError(raw, reason="path contains an empty segment")
    return parts


def _as_index(part: str, size: int) -> Optional[int]:
    try:
        idx = int(part)
    except ValueError:
        return None
    if idx < 0 or idx >= size:
        return None
    return idx


def _resolve(root: Any, parts: List[str]) -> Tuple[Any, Optional[str]]:
    """
    [职责] 沿路径解析值；返回 (value, None) 或 (_MISSING, 第一个缺失段)。
    [边界] 中间节点为标量、list 下标非法/越界均视为缺失。
    """
    cur = root
    for part in parts:
        if isinstance(cur, Mapping):
            if part not in cur:
                return _MISSING, part
            cur = cur[part]
        elif isinstance(cur, list):
            idx = _as_index(part, len(cur))
            if idx is None:
                return _MISSING, part
            cur = cur[idx]
        else:
            return _MISSING, part
    return cur, None


class IngestDocument:
    """
    [职责] 包装文档 source（有序 dict），提供按路径的字段读写。
    [边界] 非线程安全；同一文档同一时刻只应被一个 processor 调用处理。
    [上游关系] 调用方持有并传入；processor 原地修改。
    [下游关系] to_dict() 供 services/api 输出。
    """

    def __init__(self, source: Optional[MutableMapping[str, Any]] = None) -> None:
        self._source: MutableMapping[str, Any] = source if source is not None else {}

    @property
    def source(self) -> MutableMapping[str, Any]:
        return self._source

    def get_field_value(self, path: str, expected_type: type = object, ignore_missing: bool = False) -> Any:
        """
        [职责] 读取路径上的值并做类型检查。
        [边界] 路径缺失或值为 None：ignore_missing=True 返回 None，否则抛 FieldNotFoundError；
               类型不符抛 FieldTypeMismatchError（不做隐式转换）。
        """
        parts = _split_path(path)
        value, missing = _resolve(self._source, parts)
        if value is _MISSING or value is None:
            if ignore_missing:
                return None
            raise FieldNotFoundError(path, missing=missing or parts[-1])
        if not isinstance(value, expected_type):
            raise FieldTypeMismatchError(path, expected=expected_type, actual=type(value))
        return value

    def has_field(self, path: str) -> bool:
        """Return True if the path resolves, even to an explicit None."""
        value, _ = _resolve(self._source, _split_path(path))
        return value is not _MISSING

    def set_field_value(self, path: str, value: Any) -> None:
        """
        [职责] 在路径上写入值，缺失的中间 map 自动创建；已存在的值直接替换。
        [边界] 中间节点为标量或 list 下标非法时抛 FieldPathError（不静默覆盖父节点）。
        """
        parts = _split_path(path)
        cur: Any = self._source
        for part in parts[:-1]:
            if isinstance(cur, MutableMapping):
                nxt = cur.get(part)
                if nxt is None:
                    nxt = {}
                    cur[part] = nxt  # docstring: 自动创建中间 map
                cur = nxt
            elif isinstance(cur, list):
                idx = _as_index(part, len(cur))
                if idx is None:
                    raise FieldPathError(path, reason=f"[{part}] is not a valid index for a list of size [{len(cur)}]")
                cur = cur[idx]
            else:
                raise FieldPathError(
                    path, reason=f"cannot set [{part}] with parent object of type [{type(cur).__name__}]"
                )

        leaf = parts[-1]
        if isinstance(cur, MutableMapping):
            cur[leaf] = value
        elif isinstance(cur, list):
            idx = _as_index(leaf, len(cur))
            if idx is None:
                raise FieldPathError(path, reason=f"[{leaf}] is not a valid index for a list of size [{len(cur)}]")
            cur[idx] = value
        else:
            raise FieldPathError(path, reason=f"cannot set [{leaf}] with parent object of type [{type(cur).__name__}]")

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._source)

    def __repr__(self) -> str:
        return f"IngestDocument(source={self._source!r})"
