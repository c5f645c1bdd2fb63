"""
Types for statements that are submitted, polled and fetched asynchronously.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional

from crossql.packages.common.crossql_common.errors.connector_errors import ConnectorError


class StatementStatus(str, Enum):
    RUNNING = "RUNNING"
    FINISHED = "FINISHED"
    FAILED = "FAILED"
    ABORTED = "ABORTED"


_TERMINAL_STATUSES = {
    "FINISHED": StatementStatus.FINISHED,
    "FAILED": StatementStatus.FAILED,
    "ABORTED": StatementStatus.ABORTED,
}


def map_status(raw: Optional[str]) -> StatementStatus:
    """Collapse backend states (SUBMITTED, PICKED, STARTED, ...) onto RUNNING."""
    return _TERMINAL_STATUSES.get((raw or "").upper(), StatementStatus.RUNNING)


@dataclass(slots=True)
class StatementHandle:
    statement_id: str
    sql: str = ""
    submitted_at: float = field(default_factory=time.monotonic)
    consumed: bool = field(default=False, repr=False)

    def consume(self) -> None:
        """Mark the result as retrieved. Results can only be fetched once."""
        if self.consumed:
            raise ConnectorError(f"Result for statement {self.statement_id} has already been fetched.")
        self.consumed = True


@dataclass(slots=True)
class StatementDescription:
    status: StatementStatus
    error: Optional[str] = None
    has_result_set: bool = True
    result_rows: int = 0


def coerce_field(value: Mapping[str, Any]) -> Any:
    # First typed slot that carries a value wins.
    if value.get("isNull"):
        return None
    for key in ("stringValue", "longValue", "doubleValue", "booleanValue", "blobValue"):
        if value.get(key) is not None:
            return value[key]
    return None


def column_names(metadata: Iterable[Mapping[str, Any]]) -> List[str]:
    return [meta.get("name") or f"column_{index}" for index, meta in enumerate(metadata)]
