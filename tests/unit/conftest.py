from __future__ import annotations

import asyncio
from typing import Any

import pytest

from crossql.packages.common.crossql_common.errors.connector_errors import ConnectorError
from crossql.packages.connectors.crossql_connectors.api.config import BaseConnectorConfig
from crossql.packages.connectors.crossql_connectors.api.connector import SqlConnector


class FakeConnector(SqlConnector):
    """In-memory connector that records every statement it is asked to run."""

    def __init__(
        self,
        *,
        dialect: str = "fake",
        columns: list[str] | None = None,
        rows: list[dict[str, Any]] | None = None,
        error: Exception | None = None,
        schema: dict[str, list[str]] | None = None,
        healthy: bool = True,
        delay_s: float = 0.0,
    ) -> None:
        super().__init__(config=BaseConnectorConfig())
        self.DIALECT = dialect
        self.columns = columns or []
        self.rows = rows or []
        self.error = error
        self.schema = schema or {}
        self.healthy = healthy
        self.delay_s = delay_s
        self.executed: list[str] = []
        self.schema_fetches = 0
        self.completed = False

    async def _execute(self, sql: str):
        self.executed.append(sql)
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        self.completed = True
        if self.error is not None:
            raise self.error
        return list(self.columns), [dict(row) for row in self.rows], len(self.rows)

    async def test_connection(self) -> None:
        if not self.healthy:
            raise ConnectorError(f"Unable to connect to {self.DIALECT}")

    async def fetch_schema_map(self) -> dict[str, list[str]]:
        self.schema_fetches += 1
        if self.error is not None:
            raise self.error
        return self.schema


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def fake_connector():
    return FakeConnector
