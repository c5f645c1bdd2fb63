from __future__ import annotations

from typing import Any

from dependency_injector import containers, providers

from crossql.packages.common.crossql_common.config import Settings, settings
from crossql.packages.connectors.crossql_connectors.api.redshift import (
    RedshiftDataConnector,
    RedshiftDataConnectorConfig,
    redshift_client_scope,
)
from crossql.packages.connectors.crossql_connectors.api.sqlserver import (
    SQLServerConnector,
    SQLServerConnectorConfig,
    sqlserver_engine_scope,
)
from crossql.packages.federation.schema_cache import SchemaCache
from crossql.packages.federation.service import FederatedQueryService


class Container(containers.DeclarativeContainer):
    """Application dependency injection container."""

    wiring_config = containers.WiringConfiguration()

    config = providers.Configuration()

    redshift_config = providers.Singleton(
        RedshiftDataConnectorConfig,
        database=config.redshift.database,
        workgroup_name=config.redshift.workgroup_name,
        cluster_identifier=config.redshift.cluster_identifier,
        db_user=config.redshift.db_user,
        secret_arn=config.redshift.secret_arn,
        region=config.redshift.region,
        aws_access_key_id=config.redshift.aws_access_key_id,
        aws_secret_access_key=config.redshift.aws_secret_access_key,
        poll_interval_s=config.redshift.poll_interval_s,
        max_wait_s=config.redshift.max_wait_s,
        cancel_on_timeout=config.redshift.cancel_on_timeout,
    )
    redshift_client = providers.Resource(redshift_client_scope, config=redshift_config)
    redshift_connector = providers.Singleton(
        RedshiftDataConnector,
        config=redshift_config,
        client=redshift_client,
    )

    sqlserver_config = providers.Singleton(
        SQLServerConnectorConfig,
        host=config.sqlserver.host,
        port=config.sqlserver.port,
        database=config.sqlserver.database,
        username=config.sqlserver.username,
        password=config.sqlserver.password,
        encrypt=config.sqlserver.encrypt,
        trust_server_certificate=config.sqlserver.trust_server_certificate,
        driver=config.sqlserver.driver,
        pool_size=config.sqlserver.pool_size,
        max_overflow=config.sqlserver.max_overflow,
        pool_timeout=config.sqlserver.pool_timeout,
        pool_recycle=config.sqlserver.pool_recycle,
        login_timeout=config.sqlserver.login_timeout,
        query_timeout=config.sqlserver.query_timeout,
    )
    sqlserver_engine = providers.Resource(sqlserver_engine_scope, config=sqlserver_config)
    sqlserver_connector = providers.Singleton(
        SQLServerConnector,
        config=sqlserver_config,
        engine=sqlserver_engine,
    )

    schema_cache = providers.Singleton(
        SchemaCache,
        base_dir=config.schema_cache.dir,
        ttl_seconds=config.schema_cache.ttl_seconds,
    )

    federated_query_service = providers.Singleton(
        FederatedQueryService,
        warehouse=redshift_connector,
        transactional=sqlserver_connector,
        schema_cache=schema_cache,
        strict_predicates=config.federation.strict_predicates,
    )


def _build_config(settings_obj: Settings) -> dict[str, Any]:
    return {
        "redshift": {
            "database": settings_obj.REDSHIFT_DATABASE,
            "workgroup_name": settings_obj.REDSHIFT_WORKGROUP_NAME or None,
            "cluster_identifier": settings_obj.REDSHIFT_CLUSTER_IDENTIFIER or None,
            "db_user": settings_obj.REDSHIFT_DB_USER or None,
            "secret_arn": settings_obj.REDSHIFT_SECRET_ARN or None,
            "region": settings_obj.AWS_REGION or None,
            "aws_access_key_id": settings_obj.AWS_ACCESS_KEY_ID or None,
            "aws_secret_access_key": settings_obj.AWS_SECRET_ACCESS_KEY or None,
            "poll_interval_s": settings_obj.REDSHIFT_POLL_INTERVAL_S,
            "max_wait_s": settings_obj.REDSHIFT_MAX_WAIT_S,
            "cancel_on_timeout": settings_obj.REDSHIFT_CANCEL_ON_TIMEOUT,
        },
        "sqlserver": {
            "host": settings_obj.SQLSERVER_HOST,
            "port": settings_obj.SQLSERVER_PORT,
            "database": settings_obj.SQLSERVER_DATABASE,
            "username": settings_obj.SQLSERVER_USER,
            "password": settings_obj.SQLSERVER_PASSWORD,
            "encrypt": settings_obj.SQLSERVER_ENCRYPT,
            "trust_server_certificate": settings_obj.SQLSERVER_TRUST_CERT,
            "driver": settings_obj.SQLSERVER_DRIVER,
            "pool_size": settings_obj.SQLSERVER_POOL_SIZE,
            "max_overflow": settings_obj.SQLSERVER_MAX_OVERFLOW,
            "pool_timeout": settings_obj.SQLSERVER_POOL_TIMEOUT,
            "pool_recycle": settings_obj.SQLSERVER_POOL_RECYCLE,
            "login_timeout": settings_obj.SQLSERVER_LOGIN_TIMEOUT,
            "query_timeout": settings_obj.SQLSERVER_QUERY_TIMEOUT,
        },
        "schema_cache": {
            "dir": settings_obj.SCHEMA_CACHE_DIR,
            "ttl_seconds": settings_obj.SCHEMA_CACHE_TTL_SECONDS,
        },
        "federation": {
            "strict_predicates": settings_obj.FEDERATION_STRICT_PREDICATES,
        },
    }


def build_container(settings_obj: Settings = settings) -> Container:
    """Build a Container with settings bound to configuration providers."""
    container = Container()
    container.config.from_dict(_build_config(settings_obj))
    return container
