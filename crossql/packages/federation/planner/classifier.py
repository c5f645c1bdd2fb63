"""
Lexical routing of a SQL string to the backend(s) its prefixed table references name.

Detection is regex-only: a prefix that appears inside a string literal or a
comment is counted like any other reference.
"""

from __future__ import annotations

import re

from crossql.packages.federation.models.plans import QueryClassification, QuerySource

WAREHOUSE_REF_RE = re.compile(r"\brs\.[a-z0-9_]+\.[a-z0-9_]+", re.IGNORECASE)
TRANSACTIONAL_REF_RES = (
    re.compile(r"\bss\.\[[^\]]+\]\.[a-z0-9_]+", re.IGNORECASE),
    re.compile(r"\bss\.[a-z0-9_]+\.[a-z0-9_]+", re.IGNORECASE),
)


def references_warehouse(sql: str) -> bool:
    return WAREHOUSE_REF_RE.search(sql) is not None


def references_transactional(sql: str) -> bool:
    return any(pattern.search(sql) for pattern in TRANSACTIONAL_REF_RES)


def classify(sql: str) -> QueryClassification:
    warehouse = references_warehouse(sql)
    transactional = references_transactional(sql)
    if warehouse and transactional:
        return QueryClassification.CROSS
    if warehouse:
        return QueryClassification.WAREHOUSE
    if transactional:
        return QueryClassification.TRANSACTIONAL
    return QueryClassification.UNPREFIXED


def default_source_for_unprefixed(sql: str) -> QuerySource:
    """
    Best-effort dialect sniffing for queries without a source prefix.
    LIMIT without TOP reads as Redshift; TOP or bracket quoting reads as
    SQL Server, which is also the fallback.
    """
    lowered = sql.lower()
    if "limit " in lowered and "top " not in lowered:
        return QuerySource.WAREHOUSE
    return QuerySource.TRANSACTIONAL
