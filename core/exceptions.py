from __future__ import annotations

from typing import Iterable, Optional, Tuple


class DatabaseClientError(Exception):
    """Base exception for the database client domain."""


class ConfigurationError(DatabaseClientError):
    """Raised when configuration or environment validation fails."""


class ArgumentError(DatabaseClientError, ValueError):
    """Raised when caller-supplied SQL, options or arguments are structurally invalid."""


class StateError(DatabaseClientError):
    """Raised when a query mutation is illegal in the query's current state."""


class DatabaseExecutionError(DatabaseClientError):
    """Base for failures reported by the connection while executing a query.

    Carries the native error codes and the category they were classified as.
    """

    category: str = "Unclassified"

    def __init__(
        self,
        message: str,
        *,
        native_codes: Iterable[int] = (),
        sqlstate: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.native_codes: Tuple[int, ...] = tuple(native_codes)
        self.sqlstate = sqlstate


class DatabaseConnectionError(DatabaseExecutionError):
    """Raised when the connection is lost or cannot be established."""

    category = "ConnectionError"


class QueryExecutionError(DatabaseExecutionError):
    """Raised when the statement itself is malformed or rejected."""

    category = "QueryError"


class ResultFetchError(DatabaseExecutionError):
    """Raised when the result-fetching protocol was violated."""

    category = "ResultError"


class DatabaseRuntimeError(DatabaseExecutionError):
    """Raised for native failures no error table recognizes."""
