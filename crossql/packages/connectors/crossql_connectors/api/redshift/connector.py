import logging
import time
from collections import defaultdict
from typing import Any, Dict, Iterator, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError, EndpointConnectionError, NoCredentialsError

from crossql.packages.common.crossql_common.errors.connector_errors import (
    AuthError,
    BackendUnavailableError,
    ConnectorError,
)
from crossql.packages.connectors.crossql_connectors.api.connector import (
    AsyncStatementConnector,
    QueryResult,
    dedupe_columns,
    run_sync,
)
from crossql.packages.connectors.crossql_connectors.api.statement import (
    StatementDescription,
    StatementHandle,
    coerce_field,
    column_names,
    map_status,
)

from .config import RedshiftDataConnectorConfig

_AUTH_ERROR_CODES = {"AccessDeniedException", "UnrecognizedClientException", "ExpiredTokenException"}


def create_redshift_data_client(config: RedshiftDataConnectorConfig) -> Any:
    session = boto3.Session(
        region_name=config.region,
        aws_access_key_id=config.aws_access_key_id or None,
        aws_secret_access_key=config.aws_secret_access_key or None,
    )
    return session.client("redshift-data")


def redshift_client_scope(config: RedshiftDataConnectorConfig) -> Iterator[Any]:
    client = create_redshift_data_client(config)
    try:
        yield client
    finally:
        client.close()


class RedshiftDataConnector(AsyncStatementConnector):
    """
    Amazon Redshift connector built on the Redshift Data API
    (ExecuteStatement / DescribeStatement / GetStatementResult).
    """

    DIALECT = "redshift"
    SYSTEM_SCHEMAS = frozenset({"pg_catalog", "information_schema", "pg_internal"})

    def __init__(
        self,
        config: RedshiftDataConnectorConfig,
        client: Any = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(config=config, logger=logger)
        self._config = config
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = create_redshift_data_client(self._config)
        return self._client

    def _target(self) -> Dict[str, str]:
        target = {"Database": self._config.database}
        if self._config.workgroup_name:
            target["WorkgroupName"] = self._config.workgroup_name
        elif self._config.cluster_identifier:
            target["ClusterIdentifier"] = self._config.cluster_identifier
            if self._config.db_user:
                target["DbUser"] = self._config.db_user
        else:
            raise ConnectorError(
                "Redshift target is not configured: set a workgroup name or a cluster identifier."
            )
        if self._config.secret_arn:
            target["SecretArn"] = self._config.secret_arn
        return target

    async def _invoke(self, operation: str, **kwargs: Any) -> Dict[str, Any]:
        method = getattr(self.client, operation)
        try:
            return await run_sync(method, **kwargs)
        except (EndpointConnectionError, NoCredentialsError) as exc:
            self.logger.error("Redshift Data API unreachable during %s: %s", operation, exc)
            raise BackendUnavailableError(f"Redshift is unavailable: {exc}") from exc
        except ClientError as exc:
            error = exc.response.get("Error", {})
            message = error.get("Message") or str(exc)
            self.logger.error("Redshift %s failed: %s", operation, message)
            if error.get("Code") in _AUTH_ERROR_CODES:
                raise AuthError(f"Redshift authentication failed: {message}") from exc
            raise ConnectorError(f"Redshift query error: {message}") from exc
        except BotoCoreError as exc:
            self.logger.error("Redshift %s failed: %s", operation, exc)
            raise ConnectorError(f"Redshift query error: {exc}") from exc

    async def submit_statement(self, sql: str) -> StatementHandle:
        response = await self._invoke("execute_statement", Sql=sql, **self._target())
        handle = StatementHandle(statement_id=response["Id"], sql=sql)
        self.logger.debug("Submitted Redshift statement %s", handle.statement_id)
        return handle

    async def poll_status(self, handle: StatementHandle) -> StatementDescription:
        response = await self._invoke("describe_statement", Id=handle.statement_id)
        return StatementDescription(
            status=map_status(response.get("Status")),
            error=response.get("Error"),
            has_result_set=bool(response.get("HasResultSet", True)),
            result_rows=max(int(response.get("ResultRows") or 0), 0),
        )

    async def fetch_result(self, handle: StatementHandle) -> QueryResult:
        handle.consume()
        start = time.perf_counter()

        columns: List[str] = []
        rows: List[Dict[str, Any]] = []
        next_token: Optional[str] = None
        while True:
            kwargs: Dict[str, Any] = {"Id": handle.statement_id}
            if next_token:
                kwargs["NextToken"] = next_token
            page = await self._invoke("get_statement_result", **kwargs)
            if not columns:
                columns = dedupe_columns(column_names(page.get("ColumnMetadata") or []))
            for record in page.get("Records") or []:
                values = [coerce_field(field) for field in record]
                rows.append(dict(zip(columns, values)))
            next_token = page.get("NextToken")
            if not next_token:
                break

        return QueryResult(
            columns=columns,
            rows=rows,
            rowcount=len(rows),
            elapsed_ms=int((time.perf_counter() - start) * 1000),
            sql=handle.sql,
        )

    async def cancel_statement(self, handle: StatementHandle) -> None:
        await self._invoke("cancel_statement", Id=handle.statement_id)
        self.logger.info("Cancelled Redshift statement %s", handle.statement_id)

    async def test_connection(self) -> None:
        try:
            await self.execute("SELECT 1")
        except ConnectorError as exc:
            self.logger.error("Connection test failed: %s", exc)
            raise ConnectorError(f"Unable to connect to Redshift: {exc}") from exc

    async def fetch_schema_map(self) -> Dict[str, List[str]]:
        schemas: Dict[str, List[str]] = defaultdict(list)
        next_token: Optional[str] = None
        while True:
            kwargs: Dict[str, Any] = dict(self._target())
            if next_token:
                kwargs["NextToken"] = next_token
            page = await self._invoke("list_tables", **kwargs)
            for table in page.get("Tables") or []:
                schema = table.get("schema")
                if not schema or schema in self.SYSTEM_SCHEMAS or table.get("type") == "SYSTEM TABLE":
                    continue
                schemas[schema].append(table["name"])
            next_token = page.get("NextToken")
            if not next_token:
                break
        return {schema: sorted(tables) for schema, tables in sorted(schemas.items())}
