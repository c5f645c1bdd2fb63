from .config import SQLServerConnectorConfig
from .connector import SQLServerConnector, create_sqlserver_engine, sqlserver_engine_scope

__all__ = [
    "SQLServerConnectorConfig",
    "SQLServerConnector",
    "create_sqlserver_engine",
    "sqlserver_engine_scope",
]
