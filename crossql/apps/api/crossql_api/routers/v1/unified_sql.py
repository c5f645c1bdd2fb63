import logging
import time
from typing import Literal, Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from crossql.apps.api.crossql_api.ioc import Container
from crossql.packages.common.crossql_common.contracts.unified_sql import (
    ExecuteQueryErrorResponse,
    ExecuteQueryRequest,
    ExecuteQueryResponse,
    HealthResponse,
    HelpResponse,
    PrefixHelp,
    SchemaCacheClearResponse,
    SchemaCacheInfoResponse,
    UnifiedSchemaResponse,
)
from crossql.packages.common.crossql_common.errors.federation_errors import SUPPORTED_CROSS_SOURCE_FORMAT
from crossql.packages.connectors.crossql_connectors.api.connector import json_safe_rows
from crossql.packages.federation.models import QuerySource
from crossql.packages.federation.service import FederatedQueryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sqlv2", tags=["sqlv2"])

CacheSource = Literal["redshift", "sqlserver"]


def _error_message(exc: Exception) -> str:
    if isinstance(exc, ValidationError):
        return "; ".join(error["msg"].removeprefix("Value error, ") for error in exc.errors())
    return str(exc) or "Query execution failed"


@router.post(
    "/execute",
    response_model=ExecuteQueryResponse,
    responses={status.HTTP_400_BAD_REQUEST: {"model": ExecuteQueryErrorResponse}},
)
@inject
async def execute_query(
    request: Request,
    service: FederatedQueryService = Depends(Provide[Container.federated_query_service]),
):
    """
    Execute a query against Redshift (rs.schema.table), SQL Server
    (ss.schema.table or ss.[schema].table), or both through a cross-source join.
    """
    try:
        payload = ExecuteQueryRequest.model_validate(await request.json())
        result = await service.execute(payload.statement)
    except Exception as exc:
        logger.exception("Unified query execution error")
        body = ExecuteQueryErrorResponse(error=_error_message(exc))
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body.model_dump())

    return ExecuteQueryResponse(
        columns=result.columns,
        rows=json_safe_rows(result.rows),
        row_count=result.row_count,
        execution_time=result.execution_time_ms,
        source=result.source.value,
        message=f"Query executed successfully ({result.row_count} rows from {result.source.value})",
    )


@router.get("/schema", response_model=UnifiedSchemaResponse)
@inject
async def get_schema(
    refresh: bool = False,
    service: FederatedQueryService = Depends(Provide[Container.federated_query_service]),
) -> UnifiedSchemaResponse:
    start = time.perf_counter()
    schema = await service.get_unified_schema(refresh=refresh)
    summary = schema.summary()
    logger.info(
        "Unified schema fetched in %sms (redshift=%s sqlserver=%s refresh=%s)",
        int((time.perf_counter() - start) * 1000),
        summary[QuerySource.WAREHOUSE.value].model_dump(),
        summary[QuerySource.TRANSACTIONAL.value].model_dump(),
        refresh,
    )
    return UnifiedSchemaResponse(
        schemas={
            QuerySource.WAREHOUSE.value: schema.redshift,
            QuerySource.TRANSACTIONAL.value: schema.sqlserver,
        },
        summary=summary,
        cached=schema.cached,
    )


@router.get("/schema/cache", response_model=SchemaCacheInfoResponse)
@inject
async def get_schema_cache_info(
    source: Optional[CacheSource] = None,
    service: FederatedQueryService = Depends(Provide[Container.federated_query_service]),
) -> SchemaCacheInfoResponse:
    selected = QuerySource(source) if source else None
    return SchemaCacheInfoResponse(cache=await service.schema_cache_info(selected))


@router.delete("/schema/cache", response_model=SchemaCacheClearResponse)
@inject
async def clear_schema_cache(
    source: Optional[CacheSource] = None,
    service: FederatedQueryService = Depends(Provide[Container.federated_query_service]),
) -> SchemaCacheClearResponse:
    selected = QuerySource(source) if source else None
    return SchemaCacheClearResponse(cleared=await service.clear_schema_cache(selected))


@router.get("/health", response_model=HealthResponse)
@inject
async def get_health(
    service: FederatedQueryService = Depends(Provide[Container.federated_query_service]),
) -> HealthResponse:
    health = await service.get_health_status()
    return HealthResponse(status=health.status, redshift=health.redshift, sqlserver=health.sqlserver)


@router.get("/help", response_model=HelpResponse)
async def get_help() -> HelpResponse:
    return HelpResponse(
        prefixes={
            QuerySource.WAREHOUSE.value: PrefixHelp(
                prefix="rs.",
                format="rs.schema.table",
                example="SELECT * FROM rs.public.customers LIMIT 10",
            ),
            QuerySource.TRANSACTIONAL.value: PrefixHelp(
                prefix="ss.",
                format="ss.schema.table or ss.[schema].table",
                example="SELECT TOP 10 * FROM ss.dbo.orders",
            ),
        },
        cross_source={
            "format": SUPPORTED_CROSS_SOURCE_FORMAT,
            "example": (
                "SELECT * FROM rs.public.customers c "
                "LEFT JOIN ss.[dbo].orders o ON c.id = o.customer_id "
                "WHERE c.region = 'EU' AND o.status = 'open' LIMIT 100"
            ),
        },
        notes=[
            "Use rs. prefix for Redshift tables",
            "Use ss. prefix for SQL Server tables",
            "Queries without prefix default to SQL Server unless they use LIMIT without TOP",
            "Cross-source JOINs are executed client-side with INNER, LEFT, RIGHT or FULL semantics",
            "WHERE conditions are pushed to the backend whose alias they reference",
            "ORDER BY is not applied to cross-source results",
        ],
    )
