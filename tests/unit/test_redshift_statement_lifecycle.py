from __future__ import annotations

from typing import Any

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from crossql.packages.common.crossql_common.errors.connector_errors import (
    AuthError,
    BackendUnavailableError,
    ConnectorError,
    StatementAbortedError,
    StatementFailedError,
    StatementTimedOutError,
)
from crossql.packages.connectors.crossql_connectors.api.redshift import (
    RedshiftDataConnector,
    RedshiftDataConnectorConfig,
)
from crossql.packages.connectors.crossql_connectors.api.statement import (
    StatementHandle,
    StatementStatus,
    coerce_field,
    map_status,
)


class FakeRedshiftDataClient:
    """Scripted stand-in for the boto3 redshift-data client."""

    def __init__(
        self,
        *,
        statuses: list[dict[str, Any]] | None = None,
        pages: list[dict[str, Any]] | None = None,
        tables: list[dict[str, Any]] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.statuses = statuses or [{"Status": "FINISHED", "HasResultSet": True}]
        self.pages = pages or [{"ColumnMetadata": [], "Records": []}]
        self.tables = tables or []
        self.error = error
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def execute_statement(self, **kwargs):
        self.calls.append(("execute_statement", kwargs))
        if self.error is not None:
            raise self.error
        return {"Id": "stmt-1"}

    def describe_statement(self, **kwargs):
        self.calls.append(("describe_statement", kwargs))
        status = self.statuses[0] if len(self.statuses) == 1 else self.statuses.pop(0)
        return {"Id": kwargs["Id"], **status}

    def get_statement_result(self, **kwargs):
        self.calls.append(("get_statement_result", kwargs))
        index = int(kwargs.get("NextToken", "0"))
        page = dict(self.pages[index])
        if index + 1 < len(self.pages):
            page["NextToken"] = str(index + 1)
        return page

    def cancel_statement(self, **kwargs):
        self.calls.append(("cancel_statement", kwargs))
        return {"Status": True}

    def list_tables(self, **kwargs):
        self.calls.append(("list_tables", kwargs))
        index = int(kwargs.get("NextToken", "0"))
        page: dict[str, Any] = {"Tables": self.tables[index : index + 2]}
        if index + 2 < len(self.tables):
            page["NextToken"] = str(index + 2)
        return page

    def called(self, operation: str) -> list[dict[str, Any]]:
        return [kwargs for name, kwargs in self.calls if name == operation]


def _connector(client: FakeRedshiftDataClient, **overrides: Any) -> RedshiftDataConnector:
    options = {"database": "dev", "workgroup_name": "analytics", "poll_interval_s": 0, "max_wait_s": 5}
    options.update(overrides)
    return RedshiftDataConnector(config=RedshiftDataConnectorConfig(**options), client=client)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("SUBMITTED", StatementStatus.RUNNING),
        ("PICKED", StatementStatus.RUNNING),
        ("STARTED", StatementStatus.RUNNING),
        ("FINISHED", StatementStatus.FINISHED),
        ("FAILED", StatementStatus.FAILED),
        ("ABORTED", StatementStatus.ABORTED),
        (None, StatementStatus.RUNNING),
    ],
)
def test_map_status(raw, expected) -> None:
    assert map_status(raw) == expected


@pytest.mark.parametrize(
    ("field", "expected"),
    [
        ({"stringValue": "abc"}, "abc"),
        ({"longValue": 42}, 42),
        ({"doubleValue": 1.5}, 1.5),
        ({"booleanValue": False}, False),
        ({"isNull": True}, None),
        ({"isNull": True, "stringValue": "ignored"}, None),
        ({}, None),
    ],
)
def test_coerce_field(field, expected) -> None:
    assert coerce_field(field) == expected


@pytest.mark.anyio
async def test_polls_until_finished_and_pages_results() -> None:
    client = FakeRedshiftDataClient(
        statuses=[{"Status": "SUBMITTED"}, {"Status": "STARTED"}, {"Status": "FINISHED", "HasResultSet": True}],
        pages=[
            {
                "ColumnMetadata": [{"name": "id"}, {"name": "name"}, {"name": "id"}],
                "Records": [[{"longValue": 1}, {"stringValue": "Ada"}, {"longValue": 7}]],
            },
            {"Records": [[{"longValue": 2}, {"isNull": True}, {"longValue": 8}]]},
        ],
    )
    connector = _connector(client)

    result = await connector.execute("SELECT * FROM public.customers")

    assert client.called("execute_statement") == [
        {"Sql": "SELECT * FROM public.customers", "Database": "dev", "WorkgroupName": "analytics"}
    ]
    assert len(client.called("describe_statement")) == 3
    assert client.called("get_statement_result")[1] == {"Id": "stmt-1", "NextToken": "1"}
    assert result.columns == ["id", "name", "id_1"]
    assert result.rows == [
        {"id": 1, "name": "Ada", "id_1": 7},
        {"id": 2, "name": None, "id_1": 8},
    ]
    assert result.rowcount == 2


@pytest.mark.anyio
async def test_cluster_target_uses_identifier_and_db_user() -> None:
    client = FakeRedshiftDataClient()
    connector = _connector(
        client,
        workgroup_name=None,
        cluster_identifier="prod-cluster",
        db_user="reporter",
        secret_arn="arn:aws:secretsmanager:us-east-1:1:secret:rs",
    )

    await connector.execute("SELECT 1")

    assert client.called("execute_statement")[0] == {
        "Sql": "SELECT 1",
        "Database": "dev",
        "ClusterIdentifier": "prod-cluster",
        "DbUser": "reporter",
        "SecretArn": "arn:aws:secretsmanager:us-east-1:1:secret:rs",
    }


@pytest.mark.anyio
async def test_missing_target_is_a_connector_error() -> None:
    connector = _connector(FakeRedshiftDataClient(), workgroup_name=None)

    with pytest.raises(ConnectorError, match="not configured"):
        await connector.execute("SELECT 1")


@pytest.mark.anyio
async def test_failed_statement_carries_backend_error() -> None:
    client = FakeRedshiftDataClient(statuses=[{"Status": "FAILED", "Error": "relation \"nope\" does not exist"}])

    with pytest.raises(StatementFailedError) as excinfo:
        await _connector(client).execute("SELECT * FROM nope")

    assert str(excinfo.value) == 'Query failed: relation "nope" does not exist'
    assert excinfo.value.statement_id == "stmt-1"
    assert client.called("get_statement_result") == []


@pytest.mark.anyio
async def test_aborted_statement() -> None:
    client = FakeRedshiftDataClient(statuses=[{"Status": "ABORTED"}])

    with pytest.raises(StatementAbortedError, match="Query was aborted"):
        await _connector(client).execute("SELECT 1")


@pytest.mark.anyio
async def test_timeout_without_cancel() -> None:
    client = FakeRedshiftDataClient(statuses=[{"Status": "STARTED"}])

    with pytest.raises(StatementTimedOutError, match="Query timeout"):
        await _connector(client, max_wait_s=0).execute("SELECT 1")

    assert client.called("cancel_statement") == []


@pytest.mark.anyio
async def test_timeout_cancels_when_configured() -> None:
    client = FakeRedshiftDataClient(statuses=[{"Status": "STARTED"}])
    connector = _connector(client, max_wait_s=0.05, poll_interval_s=0.01, cancel_on_timeout=True)

    with pytest.raises(StatementTimedOutError):
        await connector.execute("SELECT 1")

    assert client.called("cancel_statement") == [{"Id": "stmt-1"}]


@pytest.mark.anyio
async def test_statement_without_result_set_reports_affected_rows() -> None:
    client = FakeRedshiftDataClient(statuses=[{"Status": "FINISHED", "HasResultSet": False, "ResultRows": 3}])

    result = await _connector(client).execute("DELETE FROM public.stale")

    assert result.columns == []
    assert result.rows == []
    assert result.rowcount == 3
    assert client.called("get_statement_result") == []


@pytest.mark.anyio
async def test_result_can_only_be_fetched_once() -> None:
    connector = _connector(FakeRedshiftDataClient())
    handle = StatementHandle(statement_id="stmt-1", sql="SELECT 1")

    await connector.fetch_result(handle)

    with pytest.raises(ConnectorError, match="already been fetched"):
        await connector.fetch_result(handle)


@pytest.mark.anyio
async def test_client_errors_are_mapped() -> None:
    denied = ClientError(
        {"Error": {"Code": "AccessDeniedException", "Message": "not authorized"}}, "ExecuteStatement"
    )
    with pytest.raises(AuthError, match="not authorized"):
        await _connector(FakeRedshiftDataClient(error=denied)).execute("SELECT 1")

    invalid = ClientError({"Error": {"Code": "ValidationException", "Message": "bad sql"}}, "ExecuteStatement")
    with pytest.raises(ConnectorError, match="Redshift query error: bad sql"):
        await _connector(FakeRedshiftDataClient(error=invalid)).execute("SELECT 1")

    unreachable = EndpointConnectionError(endpoint_url="https://redshift-data.us-east-1.amazonaws.com")
    with pytest.raises(BackendUnavailableError):
        await _connector(FakeRedshiftDataClient(error=unreachable)).execute("SELECT 1")


@pytest.mark.anyio
async def test_schema_map_skips_system_tables_and_sorts() -> None:
    client = FakeRedshiftDataClient(
        tables=[
            {"schema": "sales", "name": "orders", "type": "TABLE"},
            {"schema": "pg_catalog", "name": "pg_class", "type": "SYSTEM TABLE"},
            {"schema": "public", "name": "customers", "type": "TABLE"},
            {"schema": "public", "name": "addresses", "type": "VIEW"},
            {"schema": "public", "name": "stl_query", "type": "SYSTEM TABLE"},
        ]
    )

    schema_map = await _connector(client).fetch_schema_map()

    assert schema_map == {"public": ["addresses", "customers"], "sales": ["orders"]}
    assert list(schema_map) == ["public", "sales"]
    assert len(client.called("list_tables")) == 3


@pytest.mark.anyio
async def test_connection_check_wraps_failures() -> None:
    client = FakeRedshiftDataClient(statuses=[{"Status": "FAILED", "Error": "boom"}])

    with pytest.raises(ConnectorError, match="Unable to connect to Redshift"):
        await _connector(client).test_connection()
