from typing import Literal

from ..config import BaseConnectorConfig


class SQLServerConnectorConfig(BaseConnectorConfig):
    host: str
    port: int = 1433
    database: str
    username: str
    password: str
    # Honoured by the pyodbc driver; pymssql takes TLS settings from freetds.conf.
    encrypt: bool = True
    trust_server_certificate: bool = False
    driver: Literal["pymssql", "pyodbc"] = "pymssql"
    odbc_driver: str = "ODBC Driver 18 for SQL Server"
    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = 600
    pool_recycle: int = 3600
    login_timeout: int = 60
    query_timeout: int = 3600
