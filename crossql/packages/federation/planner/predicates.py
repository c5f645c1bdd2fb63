from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from crossql.packages.common.crossql_common.errors.federation_errors import UnroutablePredicateError

logger = logging.getLogger(__name__)

_AND_RE = re.compile(r"\s+AND\s+", re.IGNORECASE)


@dataclass(slots=True)
class SplitPredicates:
    left: list[str] = field(default_factory=list)
    right: list[str] = field(default_factory=list)
    dropped: list[str] = field(default_factory=list)


def _alias_pattern(alias: str) -> re.Pattern[str]:
    return re.compile(rf"\b{re.escape(alias)}\.", re.IGNORECASE)


def split_where_clause(
    where: str | None,
    left_alias: str,
    right_alias: str,
    *,
    strict: bool = False,
) -> SplitPredicates:
    """
    Split a WHERE clause on top-level AND and route each conjunct to the side
    whose alias it mentions, with that alias qualifier stripped.

    The split is purely textual: parentheses, OR and BETWEEN ... AND are not
    understood. A conjunct naming the left alias goes left even if it also
    names the right one.
    """
    split = SplitPredicates()
    if not where or not where.strip():
        return split

    left_re = _alias_pattern(left_alias)
    right_re = _alias_pattern(right_alias)

    for raw in _AND_RE.split(where.strip()):
        conjunct = raw.strip()
        if not conjunct:
            continue
        if left_re.search(conjunct):
            split.left.append(left_re.sub("", conjunct))
        elif right_re.search(conjunct):
            split.right.append(right_re.sub("", conjunct))
        elif strict:
            raise UnroutablePredicateError(conjunct)
        else:
            logger.warning("Dropping WHERE condition that references neither join side: %s", conjunct)
            split.dropped.append(conjunct)
    return split
