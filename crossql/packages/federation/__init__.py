from crossql.packages.federation.service import FederatedQueryService
from crossql.packages.federation.schema_cache import SchemaCache, SchemaCacheInfo
from crossql.packages.federation.models import (
    FederatedQueryResult,
    HealthStatus,
    JoinSpec,
    JoinType,
    QueryClassification,
    QuerySource,
    UnifiedSchema,
)

__all__ = [
    "FederatedQueryService",
    "SchemaCache",
    "SchemaCacheInfo",
    "FederatedQueryResult",
    "HealthStatus",
    "JoinSpec",
    "JoinType",
    "QueryClassification",
    "QuerySource",
    "UnifiedSchema",
]
