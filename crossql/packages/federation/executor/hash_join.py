from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from crossql.packages.common.crossql_common.errors.federation_errors import FederatedExecutionError
from crossql.packages.connectors.crossql_connectors.api.connector import QueryResult, Row
from crossql.packages.federation.models.plans import JoinType


def join_key(value: Any) -> str:
    """Keys compare as lower-cased strings; NULL joins as the empty string."""
    return "" if value is None else str(value).lower()


def resolve_column(columns: Sequence[str], column: str, *, side: str) -> str:
    if not columns or column in columns:
        return column
    lowered = column.lower()
    for candidate in columns:
        if candidate.lower() == lowered:
            return candidate
    raise FederatedExecutionError(
        f"Join column '{column}' is not present in the {side} result (columns: {', '.join(columns)})",
        source=side,
    )


@dataclass(slots=True)
class HashJoin:
    """
    In-memory equi-join of a warehouse (left) result with a transactional
    (right) result. The right side is indexed; the left side is probed in
    order, so matched and left-unmatched rows keep warehouse order and
    right-unmatched rows follow in transactional order.
    """

    join_type: JoinType
    left_alias: str
    right_alias: str
    left_column: str
    right_column: str
    limit: Optional[int] = None

    def run(self, left: QueryResult, right: QueryResult) -> list[Row]:
        left_key = resolve_column(left.columns, self.left_column, side="redshift")
        right_key = resolve_column(right.columns, self.right_column, side="sqlserver")

        index: dict[str, list[Row]] = defaultdict(list)
        for row in right.rows:
            index[join_key(row.get(right_key))].append(row)

        joined: list[Row] = []
        for left_row in left.rows:
            if self._full(joined):
                break
            matches = index.get(join_key(left_row.get(left_key)))
            if matches:
                for right_row in matches:
                    if self._full(joined):
                        break
                    joined.append(self._merge(left_row, right_row))
            elif self.join_type.keeps_unmatched_left:
                joined.append(self._merge(left_row, self._nulls(right.columns)))

        if self.join_type.keeps_unmatched_right:
            left_keys = {join_key(row.get(left_key)) for row in left.rows}
            for right_row in right.rows:
                if self._full(joined):
                    break
                if join_key(right_row.get(right_key)) not in left_keys:
                    joined.append(self._merge(self._nulls(left.columns), right_row))

        return joined

    def _full(self, joined: list[Row]) -> bool:
        return self.limit is not None and len(joined) >= self.limit

    @staticmethod
    def _nulls(columns: Sequence[str]) -> Row:
        return {column: None for column in columns}

    def _merge(self, left_row: Row, right_row: Row) -> Row:
        merged: Row = {f"{self.left_alias}_{column}": value for column, value in left_row.items()}
        for column, value in right_row.items():
            merged[f"{self.right_alias}_{column}"] = value
        return merged
