from crossql.packages.federation.models.plans import (
    JoinPredicate,
    JoinSpec,
    JoinType,
    QueryClassification,
    QuerySource,
    SourcePrefix,
    TableRef,
)
from crossql.packages.federation.models.results import (
    FederatedQueryResult,
    HealthStatus,
    SchemaSummary,
    SourceHealth,
    UnifiedSchema,
)

__all__ = [
    "JoinPredicate",
    "JoinSpec",
    "JoinType",
    "QueryClassification",
    "QuerySource",
    "SourcePrefix",
    "TableRef",
    "FederatedQueryResult",
    "HealthStatus",
    "SchemaSummary",
    "SourceHealth",
    "UnifiedSchema",
]
