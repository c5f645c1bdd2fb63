import logging
from collections import defaultdict
from typing import Any, Dict, Iterator, List, Optional, Tuple

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from crossql.packages.common.crossql_common.errors.connector_errors import (
    BackendUnavailableError,
    ConnectorError,
)
from crossql.packages.connectors.crossql_connectors.api.connector import (
    Row,
    SqlConnector,
    dedupe_columns,
    run_sync,
)

from .config import SQLServerConnectorConfig


def create_sqlserver_engine(config: SQLServerConnectorConfig) -> Engine:
    """Build the pooled engine shared by every request against SQL Server."""
    if config.driver == "pyodbc":
        url = URL.create(
            "mssql+pyodbc",
            username=config.username,
            password=config.password,
            host=config.host,
            port=config.port,
            database=config.database,
            query={
                "driver": config.odbc_driver,
                "Encrypt": "yes" if config.encrypt else "no",
                "TrustServerCertificate": "yes" if config.trust_server_certificate else "no",
            },
        )
        connect_args: Dict[str, Any] = {"timeout": config.login_timeout}
    else:
        url = URL.create(
            "mssql+pymssql",
            username=config.username,
            password=config.password,
            host=config.host,
            port=config.port,
            database=config.database,
        )
        connect_args = {"login_timeout": config.login_timeout, "timeout": config.query_timeout}

    return create_engine(
        url,
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
        pool_timeout=config.pool_timeout,
        pool_recycle=config.pool_recycle,
        pool_pre_ping=True,
        connect_args=connect_args,
    )


def sqlserver_engine_scope(config: SQLServerConnectorConfig) -> Iterator[Engine]:
    engine = create_sqlserver_engine(config)
    try:
        yield engine
    finally:
        engine.dispose()


class SQLServerConnector(SqlConnector):
    """
    Microsoft SQL Server connector over a pooled SQLAlchemy engine.
    """

    DIALECT = "sqlserver"
    SCHEMA_SQL = """
        SELECT s.name AS schema_name, t.name AS table_name
        FROM sys.schemas s
        JOIN sys.tables t ON s.schema_id = t.schema_id
        ORDER BY s.name, t.name
    """

    def __init__(
        self,
        config: SQLServerConnectorConfig,
        engine: Optional[Engine] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(config=config, logger=logger)
        self._config = config
        self._engine = engine

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = create_sqlserver_engine(self._config)
        return self._engine

    def _run(self, sql: str) -> Tuple[List[str], List[Row], int]:
        with self.engine.begin() as conn:
            # no_parameters keeps literal '%' in the statement away from the driver's paramstyle.
            result = conn.exec_driver_sql(sql, execution_options={"no_parameters": True})
            if not result.returns_rows:
                return [], [], max(result.rowcount, 0)
            columns = dedupe_columns(list(result.keys()))
            rows = [dict(zip(columns, record)) for record in result.fetchall()]
            return columns, rows, len(rows)

    async def _execute(self, sql: str) -> Tuple[List[str], List[Row], int]:
        try:
            return await run_sync(self._run, sql)
        except PoolTimeoutError as exc:
            self.logger.error("Timed out acquiring a SQL Server connection: %s", exc)
            raise BackendUnavailableError(f"SQL Server connection pool exhausted: {exc}") from exc
        except DBAPIError as exc:
            if exc.connection_invalidated:
                self.logger.error("SQL Server connection lost: %s", exc)
                raise BackendUnavailableError(f"SQL Server is unavailable: {exc.orig}") from exc
            self.logger.error("SQL Server query failed: %s", exc.orig)
            raise ConnectorError(f"SQL Server query error: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            self.logger.error("SQL Server query failed: %s", exc)
            raise ConnectorError(f"SQL Server query error: {exc}") from exc

    async def test_connection(self) -> None:
        try:
            await self.execute("SELECT 1")
        except ConnectorError as exc:
            self.logger.error("Connection test failed: %s", exc)
            raise ConnectorError(f"Unable to connect to SQL Server: {exc}") from exc

    async def fetch_schema_map(self) -> Dict[str, List[str]]:
        result = await self.execute(self.SCHEMA_SQL)
        schemas: Dict[str, List[str]] = defaultdict(list)
        for row in result.rows:
            schemas[row["schema_name"]].append(row["table_name"])
        return {schema: sorted(tables) for schema, tables in sorted(schemas.items())}
