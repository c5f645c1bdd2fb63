from contextlib import asynccontextmanager
import inspect
import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.routing import APIRoute
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import Response

from crossql.apps.api.crossql_api.ioc import build_container
from crossql.apps.api.crossql_api.ioc.wiring import wire_packages
from crossql.apps.api.crossql_api.middleware import CorrelationIdMiddleware, ErrorMiddleware
from crossql.apps.api.crossql_api.routers import api_router_v1
from crossql.packages.common.crossql_common.config import settings
from crossql.packages.common.crossql_common.logging import setup_logging
from crossql.packages.common.crossql_common.monitoring import PrometheusMiddleware, metrics_response

load_dotenv()
logger = logging.getLogger(__name__)


def custom_generate_unique_id(route: APIRoute) -> str:
    if len(route.tags) == 0:
        return route.name
    return f"{route.tags[0]}-{route.name}"


container = build_container(settings)
wire_packages(
    container,
    package_names=["crossql.apps.api.crossql_api.routers"],
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the shared Redshift client and SQL Server pool, and release them on shutdown."""
    init_result = container.init_resources()
    if inspect.isawaitable(init_result):
        await init_result
    app.state.container = container
    if settings.FEDERATION_WARMUP_ON_STARTUP:
        await container.federated_query_service().warm_up()
    yield
    shutdown_result = container.shutdown_resources()
    if inspect.isawaitable(shutdown_result):
        await shutdown_result
    logger.info("Backend connections closed")


setup_logging(service_name=settings.PROJECT_NAME)

app = FastAPI(
    title=settings.PROJECT_NAME,
    generate_unique_id_function=custom_generate_unique_id,
    lifespan=lifespan,
)

# Starlette runs the last added middleware first.
app.add_middleware(PrometheusMiddleware, service_name="crossql_api")
app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(ErrorMiddleware)

if settings.CORS_ENABLED:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["Authorization", "Content-Type", "X-Correlation-ID"],
    )

app.include_router(
    api_router_v1,
    prefix=settings.API_V1_STR,
)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/metrics")
def metrics() -> Response:
    return metrics_response()


FastAPIInstrumentor.instrument_app(app)

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "crossql.apps.api.crossql_api.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.UVICORN_RELOAD,
        log_level="info",
    )
