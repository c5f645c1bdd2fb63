"""
Connector interfaces and shared result types for backend SQL access.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from datetime import time as dt_time
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar
from uuid import UUID

from crossql.packages.common.crossql_common.errors.connector_errors import (
    ConnectorError,
    StatementAbortedError,
    StatementFailedError,
    StatementTimedOutError,
)

from .config import AsyncStatementConnectorConfig, BaseConnectorConfig
from .statement import StatementDescription, StatementHandle, StatementStatus

T = TypeVar("T")

Row = Dict[str, Any]


@dataclass(slots=True)
class QueryResult:
    """
    Normalised SQL execution result. Rows are keyed by column name.
    """

    columns: List[str]
    rows: List[Row]
    rowcount: int
    elapsed_ms: int
    sql: str


def _json_safe(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (bytes, bytearray)):
        return value.hex()
    if isinstance(value, (datetime, date, dt_time)):
        return value.isoformat()
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    try:
        json.dumps(value)
        return value
    except TypeError:
        return str(value)


def json_safe_rows(rows: List[Row]) -> List[Row]:
    return [{key: _json_safe(value) for key, value in row.items()} for row in rows]


def dedupe_columns(names: List[str]) -> List[str]:
    """Suffix repeated column names so every row key is distinct (id, id_1, ...)."""
    seen: Dict[str, int] = {}
    result: List[str] = []
    for name in names:
        if name not in seen:
            seen[name] = 0
            result.append(name)
            continue
        seen[name] += 1
        candidate = f"{name}_{seen[name]}"
        while candidate in seen:
            seen[name] += 1
            candidate = f"{name}_{seen[name]}"
        seen[candidate] = 0
        result.append(candidate)
    return result


async def run_sync(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a blocking driver call on the default thread pool."""
    return await asyncio.to_thread(func, *args, **kwargs)


class SqlConnector(ABC):
    """
    Base class for backend SQL connectors.
    """

    DIALECT: str = "generic"

    def __init__(
        self,
        config: BaseConnectorConfig,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

    @abstractmethod
    async def test_connection(self) -> None:
        """
        Test the backend connection.
        Raises ConnectorError if the connection fails.
        """
        raise NotImplementedError

    @abstractmethod
    async def fetch_schema_map(self) -> Dict[str, List[str]]:
        """Return the user-visible tables grouped by schema, both sorted by name."""
        raise NotImplementedError

    async def execute(self, sql: str) -> QueryResult:
        self.logger.debug("Executing SQL on %s: %s", self.DIALECT, sql)

        start = time.perf_counter()
        try:
            columns, rows, rowcount = await self._execute(sql)
        except ConnectorError:
            raise
        except Exception as exc:
            self.logger.error("SQL execution failed on %s: %s", self.DIALECT, exc)
            raise ConnectorError(f"Execution failed: {exc}") from exc

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        self.logger.debug(
            "Execution completed on %s (rows=%s elapsed_ms=%s)", self.DIALECT, rowcount, elapsed_ms
        )
        return QueryResult(columns=columns, rows=rows, rowcount=rowcount, elapsed_ms=elapsed_ms, sql=sql)

    @abstractmethod
    async def _execute(self, sql: str) -> Tuple[List[str], List[Row], int]:
        """Run a statement and return (columns, rows, rowcount)."""
        raise NotImplementedError


class AsyncStatementConnector(SqlConnector):
    """
    Connector for backends that accept a statement, run it in the background
    and expose its status and result through separate calls.
    """

    config: AsyncStatementConnectorConfig

    def __init__(
        self,
        config: AsyncStatementConnectorConfig,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(config=config, logger=logger)

    @abstractmethod
    async def submit_statement(self, sql: str) -> StatementHandle:
        raise NotImplementedError

    @abstractmethod
    async def poll_status(self, handle: StatementHandle) -> StatementDescription:
        raise NotImplementedError

    @abstractmethod
    async def fetch_result(self, handle: StatementHandle) -> QueryResult:
        raise NotImplementedError

    @abstractmethod
    async def cancel_statement(self, handle: StatementHandle) -> None:
        raise NotImplementedError

    async def wait_for_statement(
        self,
        handle: StatementHandle,
        *,
        max_wait_s: Optional[float] = None,
    ) -> StatementDescription:
        max_wait = self.config.max_wait_s if max_wait_s is None else max_wait_s
        start = time.monotonic()
        polls = 0

        while time.monotonic() - start < max_wait:
            description = await self.poll_status(handle)
            polls += 1
            if description.status is StatementStatus.FINISHED:
                self.logger.debug("Statement %s finished after %s polls", handle.statement_id, polls)
                return description
            if description.status is StatementStatus.FAILED:
                raise StatementFailedError(
                    f"Query failed: {description.error}",
                    statement_id=handle.statement_id,
                    backend_error=description.error,
                )
            if description.status is StatementStatus.ABORTED:
                raise StatementAbortedError("Query was aborted")
            await asyncio.sleep(self.config.poll_interval_s)

        self.logger.warning(
            "Statement %s did not finish within %.1fs (%s polls)", handle.statement_id, max_wait, polls
        )
        if self.config.cancel_on_timeout:
            try:
                await self.cancel_statement(handle)
            except ConnectorError as exc:
                self.logger.warning("Failed to cancel statement %s: %s", handle.statement_id, exc)
        raise StatementTimedOutError("Query timeout")

    async def _execute(self, sql: str) -> Tuple[List[str], List[Row], int]:
        handle = await self.submit_statement(sql)
        description = await self.wait_for_statement(handle)
        if not description.has_result_set:
            handle.consume()
            return [], [], description.result_rows
        result = await self.fetch_result(handle)
        return result.columns, result.rows, result.rowcount
