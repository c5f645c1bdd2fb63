from __future__ import annotations

import asyncio
import logging
import time

from crossql.packages.common.crossql_common.errors.federation_errors import FederatedExecutionError
from crossql.packages.connectors.crossql_connectors.api.connector import SqlConnector
from crossql.packages.federation.executor.hash_join import HashJoin
from crossql.packages.federation.models.plans import JoinSpec, QuerySource, TableRef
from crossql.packages.federation.models.results import FederatedQueryResult

_SOURCE_LABELS = {
    QuerySource.WAREHOUSE: "Redshift",
    QuerySource.TRANSACTIONAL: "SQL Server",
}


def build_subquery(table: TableRef, conjuncts: list[str]) -> str:
    sql = f"SELECT * FROM {table.qualified_name()}"
    if conjuncts:
        sql += " WHERE " + " AND ".join(conjuncts)
    return sql


class FederatedJoinExecutor:
    """Runs both sides of a JoinSpec concurrently and joins the rows in memory."""

    def __init__(
        self,
        *,
        warehouse: SqlConnector,
        transactional: SqlConnector,
        logger: logging.Logger | None = None,
    ) -> None:
        self._warehouse = warehouse
        self._transactional = transactional
        self._logger = logger or logging.getLogger(__name__)

    async def execute(self, spec: JoinSpec) -> FederatedQueryResult:
        start = time.perf_counter()
        left_sql = build_subquery(spec.left, spec.left_conjuncts)
        right_sql = build_subquery(spec.right, spec.right_conjuncts)
        self._logger.info("Dispatching cross-source sub-queries: redshift=%s sqlserver=%s", left_sql, right_sql)

        outcomes = await asyncio.gather(
            self._warehouse.execute(left_sql),
            self._transactional.execute(right_sql),
            return_exceptions=True,
        )
        # Both sides are awaited before either failure is reported; warehouse first.
        for source, outcome in zip((QuerySource.WAREHOUSE, QuerySource.TRANSACTIONAL), outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                self._logger.error("%s sub-query failed: %s", _SOURCE_LABELS[source], outcome)
                raise FederatedExecutionError(
                    f"{_SOURCE_LABELS[source]} sub-query failed: {outcome}",
                    source=source.value,
                ) from outcome
        left_result, right_result = outcomes

        self._logger.info(
            "Joining %s redshift rows with %s sqlserver rows (%s JOIN)",
            left_result.rowcount,
            right_result.rowcount,
            spec.join_type.value,
        )
        rows = HashJoin(
            join_type=spec.join_type,
            left_alias=spec.left.alias,
            right_alias=spec.right.alias,
            left_column=spec.predicate.left_column,
            right_column=spec.predicate.right_column,
            limit=spec.limit,
        ).run(left_result, right_result)

        return FederatedQueryResult(
            columns=list(rows[0].keys()) if rows else [],
            rows=rows,
            row_count=len(rows),
            execution_time_ms=int((time.perf_counter() - start) * 1000),
            source=QuerySource.CROSS,
        )
