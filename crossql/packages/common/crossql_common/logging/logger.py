"""
Logging setup for the federation service: console output plus OpenTelemetry
OTLP log and trace export, or a rotating log file when the SDK is disabled.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from opentelemetry import _logs, trace
from opentelemetry.exporter.otlp.proto.grpc._log_exporter import (
    OTLPLogExporter as GrpcOTLPLogExporter,
)
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
    OTLPSpanExporter as GrpcOTLPSpanExporter,
)
from opentelemetry.exporter.otlp.proto.http._log_exporter import (
    OTLPLogExporter as HttpOTLPLogExporter,
)
from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
    OTLPSpanExporter as HttpOTLPSpanExporter,
)
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

DEFAULT_LOG_DIR = os.getenv("CROSSQL_LOG_DIR", "./logs")
DEFAULT_LOG_FILE = "crossql.log"
DEFAULT_LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
DEFAULT_SERVICE_NAME = os.getenv("OTEL_SERVICE_NAME", "crossql")

# Driver libraries log every request at INFO; keep them at WARNING unless asked.
NOISY_LOGGERS = ("botocore", "boto3", "urllib3", "sqlalchemy.engine", "pymssql")

_initialized = False


def _build_formatter() -> logging.Formatter:
    return logging.Formatter(
        fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _build_file_handler(log_dir: str, log_file: str, formatter: logging.Formatter) -> RotatingFileHandler:
    os.makedirs(log_dir, exist_ok=True)
    handler = RotatingFileHandler(
        os.path.join(log_dir, log_file),
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    handler.setFormatter(formatter)
    return handler


def _bool_env(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


def otel_disabled() -> bool:
    return _bool_env("OTEL_SDK_DISABLED")


def _exporter_enabled(env_key: str) -> bool:
    return os.getenv(env_key, "otlp").strip().lower() not in {"none", "disabled"}


def _uses_http(env_key: str) -> bool:
    protocol = os.getenv(env_key) or os.getenv("OTEL_EXPORTER_OTLP_PROTOCOL", "grpc")
    return protocol.strip().lower() in {"http/protobuf", "http"}


def _build_log_exporter() -> Optional[object]:
    if not _exporter_enabled("OTEL_LOGS_EXPORTER"):
        return None
    if _uses_http("OTEL_EXPORTER_OTLP_LOGS_PROTOCOL"):
        return HttpOTLPLogExporter()
    return GrpcOTLPLogExporter()


def _build_span_exporter() -> Optional[object]:
    if not _exporter_enabled("OTEL_TRACES_EXPORTER"):
        return None
    if _uses_http("OTEL_EXPORTER_OTLP_TRACES_PROTOCOL"):
        return HttpOTLPSpanExporter()
    return GrpcOTLPSpanExporter()


def _quiet_library_loggers() -> None:
    level = os.getenv("CROSSQL_LIBRARY_LOG_LEVEL", "WARNING").upper()
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level)


def setup_logging(
    *,
    service_name: Optional[str] = None,
    level: str | int = DEFAULT_LOG_LEVEL,
    log_dir: str = DEFAULT_LOG_DIR,
    log_file: str = DEFAULT_LOG_FILE,
    with_console: bool = True,
) -> logging.Logger:
    """
    Configure the root logger. Safe to call more than once; handlers and
    OpenTelemetry providers are only installed on the first call.
    """
    global _initialized

    root = logging.getLogger("")
    root.setLevel(level)

    if _initialized:
        return root
    _initialized = True

    formatter = _build_formatter()
    handlers: list[logging.Handler] = []
    if with_console:
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        handlers.append(console)

    _quiet_library_loggers()

    if otel_disabled():
        handlers.insert(0, _build_file_handler(log_dir, log_file, formatter))
        for handler in handlers:
            root.addHandler(handler)
        return root

    resource = Resource.create({"service.name": service_name or DEFAULT_SERVICE_NAME})

    tracer_provider = TracerProvider(resource=resource)
    trace.set_tracer_provider(tracer_provider)
    span_exporter = _build_span_exporter()
    if span_exporter is not None:
        tracer_provider.add_span_processor(BatchSpanProcessor(span_exporter))

    logger_provider = LoggerProvider(resource=resource)
    _logs.set_logger_provider(logger_provider)
    log_exporter = _build_log_exporter()
    if log_exporter is not None:
        logger_provider.add_log_record_processor(BatchLogRecordProcessor(log_exporter))
        handlers.insert(0, LoggingHandler(level=level, logger_provider=logger_provider))

    LoggingInstrumentor().instrument(set_logging_format=False)

    for handler in handlers:
        root.addHandler(handler)
    return root
