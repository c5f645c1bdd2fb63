from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, computed_field

from crossql.packages.federation.models.plans import QuerySource


class FederatedQueryResult(BaseModel):
    columns: list[str] = Field(default_factory=list)
    rows: list[dict[str, Any]] = Field(default_factory=list)
    row_count: int = 0
    execution_time_ms: int = 0
    source: QuerySource


class SourceHealth(BaseModel):
    connected: bool = False
    error: str | None = None


class HealthStatus(BaseModel):
    redshift: SourceHealth
    sqlserver: SourceHealth

    @computed_field  # type: ignore[prop-decorator]
    @property
    def status(self) -> Literal["connected", "partial", "disconnected"]:
        if self.redshift.connected and self.sqlserver.connected:
            return "connected"
        if self.redshift.connected or self.sqlserver.connected:
            return "partial"
        return "disconnected"


class SchemaSummary(BaseModel):
    schemas: int
    tables: int

    @classmethod
    def of(cls, schema_map: dict[str, list[str]]) -> "SchemaSummary":
        return cls(schemas=len(schema_map), tables=sum(len(tables) for tables in schema_map.values()))


class UnifiedSchema(BaseModel):
    redshift: dict[str, list[str]] = Field(default_factory=dict)
    sqlserver: dict[str, list[str]] = Field(default_factory=dict)
    cached: dict[str, bool] = Field(default_factory=dict)

    def summary(self) -> dict[str, SchemaSummary]:
        return {
            QuerySource.WAREHOUSE.value: SchemaSummary.of(self.redshift),
            QuerySource.TRANSACTIONAL.value: SchemaSummary.of(self.sqlserver),
        }
