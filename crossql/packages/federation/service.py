from __future__ import annotations

import asyncio
import logging
import time

from crossql.packages.common.crossql_common.errors.application_errors import InvalidRequest
from crossql.packages.common.crossql_common.errors.connector_errors import ConnectorError
from crossql.packages.common.crossql_common.monitoring import record_query
from crossql.packages.connectors.crossql_connectors.api.connector import SqlConnector, run_sync
from crossql.packages.federation.executor import FederatedJoinExecutor
from crossql.packages.federation.models import (
    FederatedQueryResult,
    HealthStatus,
    QueryClassification,
    QuerySource,
    SourceHealth,
    UnifiedSchema,
)
from crossql.packages.federation.planner import (
    classify,
    default_source_for_unprefixed,
    parse_cross_source_join,
    rewrite,
)
from crossql.packages.federation.schema_cache import SchemaCache, SchemaCacheInfo, SchemaMap

BACKEND_SOURCES = (QuerySource.WAREHOUSE, QuerySource.TRANSACTIONAL)


class FederatedQueryService:
    """
    Routes a SQL string to Redshift, SQL Server, or the cross-source join path
    based on the rs./ss. prefixes of the tables it references.
    """

    def __init__(
        self,
        *,
        warehouse: SqlConnector,
        transactional: SqlConnector,
        schema_cache: SchemaCache,
        strict_predicates: bool = False,
        health_check_timeout_s: float = 10.0,
        join_executor: FederatedJoinExecutor | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._connectors: dict[QuerySource, SqlConnector] = {
            QuerySource.WAREHOUSE: warehouse,
            QuerySource.TRANSACTIONAL: transactional,
        }
        self._schema_cache = schema_cache
        self._strict_predicates = strict_predicates
        self._health_check_timeout_s = health_check_timeout_s
        self._join_executor = join_executor or FederatedJoinExecutor(
            warehouse=warehouse,
            transactional=transactional,
        )
        self._logger = logger or logging.getLogger(__name__)

    def connector_for(self, source: QuerySource) -> SqlConnector:
        try:
            return self._connectors[source]
        except KeyError:
            raise InvalidRequest(f"No single backend serves source '{source.value}'.") from None

    async def execute(self, sql: str) -> FederatedQueryResult:
        start = time.perf_counter()
        classification = classify(sql)
        source = _source_for(classification, sql)
        self._logger.debug("Classified query as %s -> %s", classification.value, source.value)
        try:
            if source == QuerySource.CROSS:
                spec = parse_cross_source_join(sql, strict_predicates=self._strict_predicates)
                result = await self._join_executor.execute(spec)
            elif classification == QueryClassification.UNPREFIXED:
                result = await self._run_single(source, sql)
            else:
                result = await self._run_single(source, rewrite(sql, source))
        except Exception:
            record_query(source=source.value, status="error", duration_s=time.perf_counter() - start)
            raise
        record_query(source=source.value, status="success", duration_s=time.perf_counter() - start)
        self._logger.info(
            "Query executed on %s (rows=%s elapsed_ms=%s)",
            result.source.value,
            result.row_count,
            result.execution_time_ms,
        )
        return result

    async def _run_single(self, source: QuerySource, sql: str) -> FederatedQueryResult:
        start = time.perf_counter()
        query_result = await self.connector_for(source).execute(sql)
        return FederatedQueryResult(
            columns=query_result.columns,
            rows=query_result.rows,
            row_count=query_result.rowcount,
            execution_time_ms=int((time.perf_counter() - start) * 1000),
            source=source,
        )

    async def get_schema(self, source: QuerySource, *, refresh: bool = False) -> tuple[SchemaMap, bool]:
        """Return (schema map, served-from-cache). Backend failures yield an empty, uncached map."""
        if not refresh:
            cached = await run_sync(self._schema_cache.get, source)
            if cached is not None:
                return cached, True
        try:
            schema_map = await self.connector_for(source).fetch_schema_map()
        except ConnectorError as exc:
            self._logger.error("Failed to fetch %s schema: %s", source.value, exc)
            return {}, False
        await run_sync(self._schema_cache.set, source, schema_map)
        return schema_map, False

    async def get_unified_schema(self, *, refresh: bool = False) -> UnifiedSchema:
        (redshift, redshift_cached), (sqlserver, sqlserver_cached) = await asyncio.gather(
            self.get_schema(QuerySource.WAREHOUSE, refresh=refresh),
            self.get_schema(QuerySource.TRANSACTIONAL, refresh=refresh),
        )
        return UnifiedSchema(
            redshift=redshift,
            sqlserver=sqlserver,
            cached={
                QuerySource.WAREHOUSE.value: redshift_cached,
                QuerySource.TRANSACTIONAL.value: sqlserver_cached,
            },
        )

    async def schema_cache_info(self, source: QuerySource | None = None) -> dict[str, SchemaCacheInfo]:
        sources = BACKEND_SOURCES if source is None else (source,)
        return {item.value: await run_sync(self._schema_cache.info, item) for item in sources}

    async def clear_schema_cache(self, source: QuerySource | None = None) -> dict[str, bool]:
        if source is None:
            return await run_sync(self._schema_cache.clear_all)
        return {source.value: await run_sync(self._schema_cache.clear, source)}

    async def get_health_status(self) -> HealthStatus:
        redshift, sqlserver = await asyncio.gather(
            self._probe(QuerySource.WAREHOUSE),
            self._probe(QuerySource.TRANSACTIONAL),
        )
        return HealthStatus(redshift=redshift, sqlserver=sqlserver)

    async def _probe(self, source: QuerySource) -> SourceHealth:
        try:
            await asyncio.wait_for(
                self.connector_for(source).test_connection(),
                timeout=self._health_check_timeout_s,
            )
        except asyncio.TimeoutError:
            return SourceHealth(connected=False, error="Health check timed out")
        except ConnectorError as exc:
            return SourceHealth(connected=False, error=str(exc))
        return SourceHealth(connected=True)

    async def warm_up(self) -> HealthStatus:
        """Probe both backends once at startup so pool and client problems surface in the logs early."""
        health = await self.get_health_status()
        for source, state in ((QuerySource.WAREHOUSE, health.redshift), (QuerySource.TRANSACTIONAL, health.sqlserver)):
            if state.connected:
                self._logger.info("%s connected", source.value)
            else:
                self._logger.warning("%s not reachable at startup: %s", source.value, state.error)
        return health


def _source_for(classification: QueryClassification, sql: str) -> QuerySource:
    if classification == QueryClassification.CROSS:
        return QuerySource.CROSS
    if classification == QueryClassification.WAREHOUSE:
        return QuerySource.WAREHOUSE
    if classification == QueryClassification.TRANSACTIONAL:
        return QuerySource.TRANSACTIONAL
    return default_source_for_unprefixed(sql)
