from typing import Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(".env", "crossql/.env"), env_ignore_empty=True, extra="ignore"
    )
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "crossql"
    ENVIRONMENT: Literal["local", "staging", "development", "production"] = "local"

    UVICORN_RELOAD: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    CORS_ENABLED: bool = True

    # Warehouse (Redshift Data API)
    AWS_REGION: str = "us-east-1"
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    REDSHIFT_DATABASE: str = "dev"
    REDSHIFT_WORKGROUP_NAME: str = ""
    REDSHIFT_CLUSTER_IDENTIFIER: str = ""
    REDSHIFT_DB_USER: str = ""
    REDSHIFT_SECRET_ARN: str = ""
    REDSHIFT_POLL_INTERVAL_S: float = 1.0
    REDSHIFT_MAX_WAIT_S: float = 60.0
    REDSHIFT_CANCEL_ON_TIMEOUT: bool = False

    # Transactional (SQL Server)
    SQLSERVER_HOST: str = "localhost"
    SQLSERVER_PORT: int = 1433
    SQLSERVER_DATABASE: str = "master"
    SQLSERVER_USER: str = ""
    SQLSERVER_PASSWORD: str = ""
    SQLSERVER_ENCRYPT: bool = True
    SQLSERVER_TRUST_CERT: bool = False
    SQLSERVER_DRIVER: Literal["pymssql", "pyodbc"] = "pymssql"
    SQLSERVER_POOL_SIZE: int = 10
    SQLSERVER_MAX_OVERFLOW: int = 20
    SQLSERVER_POOL_TIMEOUT: int = 600
    SQLSERVER_POOL_RECYCLE: int = 3600
    SQLSERVER_LOGIN_TIMEOUT: int = 60
    SQLSERVER_QUERY_TIMEOUT: int = 3600

    # Federation
    SCHEMA_CACHE_DIR: str = ".cache/schemas"
    SCHEMA_CACHE_TTL_SECONDS: int = 60 * 60 * 24 * 30  # 30 days
    FEDERATION_STRICT_PREDICATES: bool = False
    FEDERATION_WARMUP_ON_STARTUP: bool = True

    @computed_field  # type: ignore[prop-decorator]
    @property
    def IS_LOCAL(self) -> bool:
        return self.ENVIRONMENT == "local"


settings = Settings()
