from typing import Optional


class ConnectorError(RuntimeError):
    """Base error for connector issues."""


class AuthError(ConnectorError):
    """Raised when authentication fails."""


class BackendUnavailableError(ConnectorError):
    """Raised when a backend cannot be reached or a pooled connection cannot be acquired."""


class StatementFailedError(ConnectorError):
    """Raised when the warehouse reports a submitted statement as FAILED."""

    def __init__(self, message: str, *, statement_id: Optional[str] = None, backend_error: Optional[str] = None) -> None:
        super().__init__(message)
        self.statement_id = statement_id
        self.backend_error = backend_error


class StatementAbortedError(ConnectorError):
    """Raised when a submitted statement was aborted before completion."""


class StatementTimedOutError(ConnectorError):
    """Raised when a submitted statement does not finish within the wait window."""
