SUPPORTED_CROSS_SOURCE_FORMAT = (
    "SELECT * FROM rs.schema.table alias1 "
    "JOIN ss.[schema].table alias2 ON alias1.col = alias2.col"
)


class FederationError(Exception):
    """Base error for cross-source query planning and execution."""


class QueryParsingError(FederationError, ValueError):
    """Raised when a cross-source query falls outside the supported join grammar."""

    def __init__(self, message: str | None = None, *, detail: str | None = None) -> None:
        message = message or (
            f"Could not parse cross-source query. Supported format: {SUPPORTED_CROSS_SOURCE_FORMAT}"
        )
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.detail = detail


class UnroutablePredicateError(QueryParsingError):
    """Raised in strict mode when a WHERE conjunct references neither join side."""

    def __init__(self, conjunct: str) -> None:
        super().__init__(
            f"WHERE condition '{conjunct}' does not reference either joined table alias "
            "and cannot be pushed down to a backend."
        )
        self.conjunct = conjunct


class FederatedExecutionError(FederationError):
    """Raised when a backend sub-query of a cross-source join fails."""

    def __init__(self, message: str, *, source: str) -> None:
        super().__init__(message)
        self.source = source
