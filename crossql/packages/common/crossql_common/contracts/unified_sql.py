from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

from crossql.packages.federation.models import SchemaSummary, SourceHealth
from crossql.packages.federation.schema_cache import SchemaCacheInfo


class ExecuteQueryRequest(BaseModel):
    query: str | None = Field(default=None, min_length=1)
    # Accepted for clients that still send the older field name.
    sql: str | None = Field(default=None, min_length=1)

    @model_validator(mode="after")
    def _require_statement(self) -> "ExecuteQueryRequest":
        if not self.query and not self.sql:
            raise ValueError("Either 'query' or 'sql' must be provided")
        return self

    @property
    def statement(self) -> str:
        return self.query or self.sql or ""


class ExecuteQueryResponse(BaseModel):
    status: Literal["success"] = "success"
    columns: list[str]
    rows: list[dict[str, Any]]
    row_count: int
    execution_time: int
    source: str
    message: str


class ExecuteQueryErrorResponse(BaseModel):
    status: Literal["error"] = "error"
    columns: list[str] = Field(default_factory=list)
    rows: list[dict[str, Any]] = Field(default_factory=list)
    row_count: int = 0
    execution_time: int = 0
    error: str


class UnifiedSchemaResponse(BaseModel):
    status: Literal["success"] = "success"
    schemas: dict[str, dict[str, list[str]]]
    summary: dict[str, SchemaSummary]
    cached: dict[str, bool]


class SchemaCacheInfoResponse(BaseModel):
    status: Literal["success"] = "success"
    cache: dict[str, SchemaCacheInfo]


class SchemaCacheClearResponse(BaseModel):
    status: Literal["success"] = "success"
    cleared: dict[str, bool]


class HealthResponse(BaseModel):
    status: Literal["connected", "partial", "disconnected"]
    redshift: SourceHealth
    sqlserver: SourceHealth


class PrefixHelp(BaseModel):
    prefix: str
    format: str
    example: str


class HelpResponse(BaseModel):
    status: Literal["success"] = "success"
    prefixes: dict[str, PrefixHelp]
    cross_source: dict[str, str]
    notes: list[str]
