from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, Sequence, Union, runtime_checkable
from core.models import ExecutionResult, NativeError, QuerySnapshot


@dataclass
class StatementHandle:
    """Connection-side statement; opaque to everything but the connection."""

    sql: str
    prepared: bool = False
    native: Any = field(default=None, repr=False)
    closed: bool = False


@runtime_checkable
class DialectProtocol(Protocol):
    """Engine-specific literal rendering and multi-query capability."""

    name: str
    supports_multi_query: bool
    backslash_escapes: bool

    def quote_string(self, value: str) -> str:
        ...

    def quote_blob(self, value: bytes) -> str:
        ...


@runtime_checkable
class ConnectionProtocol(Protocol):
    """Native driver capability: executes SQL, returns a handle or an error code.

    ``last_error()`` describes the failure of the calling thread's last call.
    """

    def execute(self, sql: str) -> Union[StatementHandle, int]:
        ...

    def prepare(self, sql: str) -> Union[StatementHandle, int]:
        ...

    def execute_prepared(
        self, handle: StatementHandle, arguments: Sequence[Any]
    ) -> Union[StatementHandle, int]:
        ...

    def release_statement(self, handle: StatementHandle) -> None:
        ...

    def last_error(self) -> Optional[NativeError]:
        ...

    def close(self) -> None:
        ...


@runtime_checkable
class QueryMutatorProtocol(Protocol):
    """Mutations turning one base statement into a multi-statement request."""

    def bind(self, types: str, arguments: Sequence[Any]) -> "QueryMutatorProtocol":
        ...

    def repeat(self, types: str, arguments: Sequence[Any]) -> "QueryMutatorProtocol":
        ...

    def append(self, sql: str, types: str, arguments: Sequence[Any]) -> "QueryMutatorProtocol":
        ...

    def snapshot(self) -> QuerySnapshot:
        ...


@runtime_checkable
class DatabaseExecutorProtocol(Protocol):
    """Executes queries against the underlying database."""

    async def execute(self, query: Any) -> ExecutionResult:
        ...

    async def close(self) -> None:
        ...
