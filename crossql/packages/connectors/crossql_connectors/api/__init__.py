from .config import AsyncStatementConnectorConfig, BaseConnectorConfig
from .connector import AsyncStatementConnector, QueryResult, SqlConnector, run_sync
from .statement import StatementDescription, StatementHandle, StatementStatus

__all__ = [
    "AsyncStatementConnectorConfig",
    "BaseConnectorConfig",
    "AsyncStatementConnector",
    "QueryResult",
    "SqlConnector",
    "run_sync",
    "StatementDescription",
    "StatementHandle",
    "StatementStatus",
]
