from .correlation_middleware import CorrelationIdMiddleware
from .error_middleware import ErrorMiddleware

__all__ = ["CorrelationIdMiddleware", "ErrorMiddleware"]
