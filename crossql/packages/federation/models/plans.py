from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, model_validator


class SourcePrefix(str, Enum):
    WAREHOUSE = "rs"
    TRANSACTIONAL = "ss"


class QuerySource(str, Enum):
    WAREHOUSE = "redshift"
    TRANSACTIONAL = "sqlserver"
    CROSS = "cross"


class QueryClassification(str, Enum):
    WAREHOUSE = "warehouse"
    TRANSACTIONAL = "transactional"
    CROSS = "cross"
    UNPREFIXED = "unprefixed"


class JoinType(str, Enum):
    INNER = "INNER"
    LEFT = "LEFT"
    RIGHT = "RIGHT"
    FULL = "FULL"

    @property
    def keeps_unmatched_left(self) -> bool:
        return self in (JoinType.LEFT, JoinType.FULL)

    @property
    def keeps_unmatched_right(self) -> bool:
        return self in (JoinType.RIGHT, JoinType.FULL)


class TableRef(BaseModel):
    source: QuerySource
    schema_name: str = Field(alias="schema")
    table: str
    alias: str

    model_config = {"populate_by_name": True}

    def qualified_name(self) -> str:
        if self.source == QuerySource.TRANSACTIONAL:
            return f"[{self.schema_name}].[{self.table}]"
        return f"{self.schema_name}.{self.table}"


class JoinPredicate(BaseModel):
    left_column: str
    right_column: str


class JoinSpec(BaseModel):
    left: TableRef
    right: TableRef
    join_type: JoinType = JoinType.INNER
    predicate: JoinPredicate
    select_columns: str = "*"
    where_clause: str | None = None
    order_by: str | None = None
    left_conjuncts: list[str] = Field(default_factory=list)
    right_conjuncts: list[str] = Field(default_factory=list)
    limit: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _check_sides(self) -> "JoinSpec":
        if self.left.source != QuerySource.WAREHOUSE:
            raise ValueError("The left side of a cross-source join must be the warehouse table.")
        if self.right.source != QuerySource.TRANSACTIONAL:
            raise ValueError("The right side of a cross-source join must be the transactional table.")
        return self

    def where_fragments_by_alias(self) -> dict[str, list[str]]:
        return {
            self.left.alias: list(self.left_conjuncts),
            self.right.alias: list(self.right_conjuncts),
        }
