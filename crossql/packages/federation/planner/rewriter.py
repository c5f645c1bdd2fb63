from __future__ import annotations

import re

from crossql.packages.federation.models.plans import QuerySource

_WAREHOUSE_PREFIXED_RE = re.compile(r"\brs\.([a-z0-9_]+)\.([a-z0-9_]+)", re.IGNORECASE)
_TRANSACTIONAL_BRACKETED_RE = re.compile(r"\bss\.\[([^\]]+)\]\.([a-z0-9_]+)", re.IGNORECASE)
_TRANSACTIONAL_PREFIXED_RE = re.compile(r"\bss\.([a-z0-9_]+)\.([a-z0-9_]+)", re.IGNORECASE)


def rewrite_for_warehouse(sql: str) -> str:
    """rs.schema.table -> schema.table"""
    return _WAREHOUSE_PREFIXED_RE.sub(r"\1.\2", sql)


def rewrite_for_transactional(sql: str) -> str:
    """ss.[schema].table and ss.schema.table -> [schema].[table]"""
    rewritten = _TRANSACTIONAL_BRACKETED_RE.sub(r"[\1].[\2]", sql)
    return _TRANSACTIONAL_PREFIXED_RE.sub(r"[\1].[\2]", rewritten)


def rewrite(sql: str, target: QuerySource) -> str:
    if target == QuerySource.WAREHOUSE:
        return rewrite_for_warehouse(sql)
    if target == QuerySource.TRANSACTIONAL:
        return rewrite_for_transactional(sql)
    raise ValueError(f"Cannot rewrite identifiers for source '{target.value}'.")
