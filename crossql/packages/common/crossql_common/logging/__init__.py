from .logger import otel_disabled, setup_logging

__all__ = ["otel_disabled", "setup_logging"]
