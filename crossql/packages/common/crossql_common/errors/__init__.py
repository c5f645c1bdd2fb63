from .application_errors import ApplicationError, InvalidRequest
from .connector_errors import (
    AuthError,
    BackendUnavailableError,
    ConnectorError,
    StatementAbortedError,
    StatementFailedError,
    StatementTimedOutError,
)
from .federation_errors import (
    SUPPORTED_CROSS_SOURCE_FORMAT,
    FederatedExecutionError,
    FederationError,
    QueryParsingError,
    UnroutablePredicateError,
)

__all__ = [
    "ApplicationError",
    "InvalidRequest",
    "AuthError",
    "BackendUnavailableError",
    "ConnectorError",
    "StatementAbortedError",
    "StatementFailedError",
    "StatementTimedOutError",
    "SUPPORTED_CROSS_SOURCE_FORMAT",
    "FederatedExecutionError",
    "FederationError",
    "QueryParsingError",
    "UnroutablePredicateError",
]
