from __future__ import annotations

import asyncio
import threading

import pytest
from prometheus_client import REGISTRY

from crossql.packages.common.crossql_common.errors.application_errors import InvalidRequest
from crossql.packages.common.crossql_common.errors.connector_errors import ConnectorError
from crossql.packages.common.crossql_common.errors.federation_errors import (
    FederatedExecutionError,
    QueryParsingError,
)
from crossql.packages.federation.models import QuerySource
from crossql.packages.federation.schema_cache import SchemaCache
from crossql.packages.federation.service import FederatedQueryService


@pytest.fixture
def warehouse(fake_connector):
    return fake_connector(
        dialect="redshift",
        columns=["id", "name"],
        rows=[{"id": 1, "name": "Ada"}, {"id": 2, "name": "Grace"}],
        schema={"public": ["customers"]},
    )


@pytest.fixture
def transactional(fake_connector):
    return fake_connector(
        dialect="sqlserver",
        columns=["customer_id", "total"],
        rows=[{"customer_id": 2, "total": 30}],
        schema={"dbo": ["orders", "returns"]},
    )


@pytest.fixture
def schema_cache(tmp_path) -> SchemaCache:
    return SchemaCache(base_dir=str(tmp_path / "schemas"), ttl_seconds=3600)


@pytest.fixture
def service(warehouse, transactional, schema_cache) -> FederatedQueryService:
    return FederatedQueryService(warehouse=warehouse, transactional=transactional, schema_cache=schema_cache)


def _query_count(source: str, status: str) -> float:
    value = REGISTRY.get_sample_value(
        "crossql_federated_queries_total", {"source": source, "status": status}
    )
    return value or 0.0


@pytest.mark.anyio
async def test_warehouse_query_is_rewritten_and_routed(service, warehouse, transactional) -> None:
    result = await service.execute("SELECT * FROM rs.public.customers LIMIT 10")

    assert warehouse.executed == ["SELECT * FROM public.customers LIMIT 10"]
    assert transactional.executed == []
    assert result.source == QuerySource.WAREHOUSE
    assert result.row_count == 2
    assert result.columns == ["id", "name"]


@pytest.mark.anyio
async def test_transactional_query_is_rewritten_and_routed(service, warehouse, transactional) -> None:
    result = await service.execute("SELECT TOP 5 * FROM ss.dbo.orders")

    assert transactional.executed == ["SELECT TOP 5 * FROM [dbo].[orders]"]
    assert warehouse.executed == []
    assert result.source == QuerySource.TRANSACTIONAL


@pytest.mark.anyio
@pytest.mark.parametrize(
    ("sql", "expected"),
    [
        ("SELECT * FROM customers LIMIT 3", QuerySource.WAREHOUSE),
        ("SELECT TOP 3 * FROM customers", QuerySource.TRANSACTIONAL),
    ],
)
async def test_unprefixed_query_runs_verbatim_on_heuristic_source(
    service, warehouse, transactional, sql, expected
) -> None:
    result = await service.execute(sql)

    target = warehouse if expected == QuerySource.WAREHOUSE else transactional
    assert target.executed == [sql]
    assert result.source == expected


@pytest.mark.anyio
async def test_cross_source_query_joins_both_sides(service, warehouse, transactional) -> None:
    result = await service.execute(
        "SELECT * FROM rs.public.customers c JOIN ss.dbo.orders o ON c.id = o.customer_id WHERE o.total > 5"
    )

    assert warehouse.executed == ["SELECT * FROM public.customers"]
    assert transactional.executed == ["SELECT * FROM [dbo].[orders] WHERE total > 5"]
    assert result.source == QuerySource.CROSS
    assert result.rows == [{"c_id": 2, "c_name": "Grace", "o_customer_id": 2, "o_total": 30}]


@pytest.mark.anyio
async def test_unparseable_cross_query_is_rejected(service, warehouse, transactional) -> None:
    with pytest.raises(QueryParsingError):
        await service.execute("SELECT * FROM ss.dbo.orders o JOIN rs.public.customers c ON c.id = o.customer_id")

    assert warehouse.executed == []
    assert transactional.executed == []


@pytest.mark.anyio
async def test_strict_predicates_are_forwarded(warehouse, transactional, schema_cache) -> None:
    service = FederatedQueryService(
        warehouse=warehouse,
        transactional=transactional,
        schema_cache=schema_cache,
        strict_predicates=True,
    )

    with pytest.raises(QueryParsingError):
        await service.execute(
            "SELECT * FROM rs.public.customers c JOIN ss.dbo.orders o ON c.id = o.customer_id WHERE 1 = 1"
        )


@pytest.mark.anyio
async def test_outcomes_are_counted(service, fake_connector, schema_cache) -> None:
    success_before = _query_count("redshift", "success")
    await service.execute("SELECT * FROM rs.public.customers")
    assert _query_count("redshift", "success") == success_before + 1

    failing = FederatedQueryService(
        warehouse=fake_connector(),
        transactional=fake_connector(error=ConnectorError("down")),
        schema_cache=schema_cache,
    )
    error_before = _query_count("cross", "error")
    with pytest.raises(FederatedExecutionError):
        await failing.execute("SELECT * FROM rs.public.a a JOIN ss.dbo.b b ON a.id = b.id")
    assert _query_count("cross", "error") == error_before + 1


@pytest.mark.anyio
async def test_schema_is_cached_until_refresh(service, warehouse) -> None:
    first, first_cached = await service.get_schema(QuerySource.WAREHOUSE)
    second, second_cached = await service.get_schema(QuerySource.WAREHOUSE)
    refreshed, refreshed_cached = await service.get_schema(QuerySource.WAREHOUSE, refresh=True)

    assert first == second == refreshed == {"public": ["customers"]}
    assert (first_cached, second_cached, refreshed_cached) == (False, True, False)
    assert warehouse.schema_fetches == 2


@pytest.mark.anyio
async def test_schema_failure_is_empty_and_not_cached(fake_connector, transactional, schema_cache) -> None:
    broken = fake_connector(error=ConnectorError("no route"))
    service = FederatedQueryService(warehouse=broken, transactional=transactional, schema_cache=schema_cache)

    unified = await service.get_unified_schema()

    assert unified.redshift == {}
    assert unified.sqlserver == {"dbo": ["orders", "returns"]}
    assert unified.cached == {"redshift": False, "sqlserver": False}
    assert unified.summary()["sqlserver"].tables == 2
    assert schema_cache.get(QuerySource.WAREHOUSE) is None


@pytest.mark.anyio
async def test_cache_info_and_clear(service) -> None:
    await service.get_unified_schema()

    info = await service.schema_cache_info()
    assert info["redshift"].exists and info["sqlserver"].exists
    assert list(await service.schema_cache_info(QuerySource.TRANSACTIONAL)) == ["sqlserver"]

    assert await service.clear_schema_cache(QuerySource.WAREHOUSE) == {"redshift": True}
    assert await service.clear_schema_cache() == {"redshift": False, "sqlserver": True}


@pytest.mark.anyio
async def test_schema_cache_files_are_touched_off_the_event_loop(warehouse, transactional, tmp_path) -> None:
    loop_thread = threading.get_ident()
    seen: list[tuple[str, int]] = []

    class RecordingCache(SchemaCache):
        def get(self, source):
            seen.append(("get", threading.get_ident()))
            return super().get(source)

        def set(self, source, data):
            seen.append(("set", threading.get_ident()))
            super().set(source, data)

    service = FederatedQueryService(
        warehouse=warehouse,
        transactional=transactional,
        schema_cache=RecordingCache(base_dir=str(tmp_path / "schemas")),
    )

    await service.get_unified_schema()

    assert sorted(name for name, _ in seen) == ["get", "get", "set", "set"]
    assert all(thread != loop_thread for _, thread in seen)


@pytest.mark.anyio
async def test_cross_source_has_no_single_backend(service) -> None:
    with pytest.raises(InvalidRequest):
        service.connector_for(QuerySource.CROSS)
    with pytest.raises(InvalidRequest):
        await service.schema_cache_info(QuerySource.CROSS)


@pytest.mark.anyio
async def test_health_reports_each_backend(fake_connector, schema_cache) -> None:
    service = FederatedQueryService(
        warehouse=fake_connector(dialect="redshift"),
        transactional=fake_connector(dialect="sqlserver", healthy=False),
        schema_cache=schema_cache,
    )

    health = await service.get_health_status()

    assert health.redshift.connected is True
    assert health.sqlserver.connected is False
    assert "sqlserver" in health.sqlserver.error
    assert health.status == "partial"


@pytest.mark.anyio
async def test_health_probe_times_out(fake_connector, schema_cache) -> None:
    class SlowConnector(fake_connector):
        async def test_connection(self) -> None:
            await asyncio.sleep(1)

    service = FederatedQueryService(
        warehouse=SlowConnector(),
        transactional=SlowConnector(),
        schema_cache=schema_cache,
        health_check_timeout_s=0.01,
    )

    health = await service.get_health_status()

    assert health.status == "disconnected"
    assert health.redshift.error == "Health check timed out"


@pytest.mark.anyio
async def test_warm_up_returns_health(service) -> None:
    health = await service.warm_up()
    assert health.status == "connected"
