from .prometheus import PrometheusMiddleware, federation_metrics, metrics_response, record_query

__all__ = ["PrometheusMiddleware", "federation_metrics", "metrics_response", "record_query"]
