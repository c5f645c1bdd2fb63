from crossql.packages.federation.executor.hash_join import HashJoin, join_key
from crossql.packages.federation.executor.join_executor import FederatedJoinExecutor, build_subquery

__all__ = [
    "HashJoin",
    "join_key",
    "FederatedJoinExecutor",
    "build_subquery",
]
