from __future__ import annotations

import asyncio
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, NoReturn, Optional
from uuid import UUID, uuid4

from core.dialects import get_dialect
from core.error_classifier import classify, classify_errors, exception_class_for
from core.exceptions import ConfigurationError, DatabaseClientError, DatabaseRuntimeError, StateError
from core.interfaces import ConnectionProtocol, DatabaseExecutorProtocol, StatementHandle
from core.mariadb_connection import MariaDbConnection
from core.models import ErrorCategory, ExecutionResult, NativeError, ResultSet
from core.query import Query
from core.substitution import Arguments, as_argument_list
from utils.config import AppConfig

logger = logging.getLogger(__name__)

ConnectionFactory = Callable[[AppConfig], ConnectionProtocol]


class DatabaseClient(DatabaseExecutorProtocol):
    """Creates queries, executes them, and classifies native failures."""

    def __init__(
        self,
        config: AppConfig,
        connection_factory: Optional[ConnectionFactory] = None,
        *,
        name: str = "default",
    ) -> None:
        self.config = config
        self.name = name
        self.engine = config.db_engine
        self.dialect = get_dialect(config.db_engine)
        self._connection_factory = connection_factory or _default_connection_factory
        self._connection: Optional[ConnectionProtocol] = None
        self._lock = threading.RLock()

    def message_prefix(self) -> str:
        return f"Database[{self.name}][{self.engine}][{self.config.db_name}]"

    @property
    def connection(self) -> ConnectionProtocol:
        with self._lock:
            if self._connection is None:
                self._connection = self._connection_factory(self.config)
            return self._connection

    def query(self, sql: str, **options: Any) -> Query:
        """Create a simple (non-prepared) query."""
        return Query(
            sql,
            dialect=self.dialect,
            connection=self.connection,
            options={**self.config.query_options(), **options},
            label=self.message_prefix(),
        )

    def prepare(self, sql: str, types: str = "", arguments: Arguments = (), **options: Any) -> Query:
        """Create a prepared statement holding a copy of arguments."""
        merged = {**self.config.query_options(), **options}
        args = as_argument_list(arguments)
        # Binding a throwaway query validates sql, types and marker count.
        probe = Query(sql, dialect=self.dialect, options=merged, label=self.message_prefix())
        probe.bind(types, args)

        handle = self.connection.prepare(probe.base_sql)
        if isinstance(handle, int):
            self._raise_native(handle, "failed to prepare statement", probe.base_sql)
        return Query(
            sql,
            dialect=self.dialect,
            connection=self.connection,
            statement=handle,
            arguments=args,
            options=merged,
            label=self.message_prefix(),
        )

    async def execute(
        self,
        query: Query,
        *,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> ExecutionResult:
        query_id: UUID = (metadata or {}).get("query_id") or uuid4()

        if not self.config.execute_queries:
            logger.info("Execution disabled via configuration; returning SQL preview only.")
            return ExecutionResult(query_id=query_id, sql=query.effective_sql)

        return await asyncio.to_thread(self._execute_sync, query, query_id)

    def _execute_sync(self, query: Query, query_id: UUID) -> ExecutionResult:
        if query.statement_closed or (query.is_prepared_statement and query.statement is None):
            raise StateError(f"{self.message_prefix()} - query can't execute, statement is closed.")

        start_ts = datetime.now(timezone.utc)
        sql = query.effective_sql
        query.execution += 1
        try:
            if query.is_prepared_statement:
                outcome = self.connection.execute_prepared(query.statement, query.prepared_arguments)
            else:
                outcome = self.connection.execute(sql)
            if isinstance(outcome, int):
                self._raise_native(outcome, "failed executing query", sql)
            result_sets = _result_sets(outcome)
            if outcome is not query.statement:
                self.connection.release_statement(outcome)
        except DatabaseClientError:
            raise
        except Exception as exc:
            logger.exception("%s - query execution failed: %s", self.message_prefix(), exc)
            raise DatabaseRuntimeError(
                f"{self.message_prefix()} - failed executing query, with error: {exc}."
            ) from exc
        finally:
            query.close()

        return ExecutionResult(
            query_id=query_id,
            sql=sql,
            result_sets=result_sets,
            execution_ms=_duration_ms(start_ts),
        )

    def classify(self, code: int, sqlstate: Optional[str] = None) -> ErrorCategory:
        return classify(self.engine, code, sqlstate)

    def _raise_native(self, code: int, action: str, sql: str) -> NoReturn:
        error = self.connection.last_error() or NativeError(code=code)
        codes = [code] if error.code == code else [code, error.code]
        category = classify_errors(self.engine, codes)
        if category is ErrorCategory.UNCLASSIFIED and error.sqlstate:
            category = classify(self.engine, code, error.sqlstate)
        logger.warning(
            "%s - %s, category %s, sql: %s",
            self.message_prefix(),
            action,
            category.value,
            sql[: self.config.log_sql_truncate],
        )
        exc_class = exception_class_for(category)
        raise exc_class(
            f"{self.message_prefix()} - {action}, with error: {error}.",
            native_codes=codes,
            sqlstate=error.sqlstate,
        )

    async def close(self) -> None:
        await asyncio.to_thread(self._close_sync)

    def _close_sync(self) -> None:
        with self._lock:
            try:
                if self._connection is not None:
                    self._connection.close()
            except Exception as exc:
                logger.warning("Error closing connection: %s", exc)
            finally:
                self._connection = None


def _default_connection_factory(config: AppConfig) -> ConnectionProtocol:
    if config.db_engine == "mariadb":
        return MariaDbConnection(config)
    raise ConfigurationError(
        f"No connection capability available for engine '{config.db_engine}'; pass a connection_factory."
    )


def _result_sets(handle: StatementHandle) -> List[ResultSet]:
    native: Dict[str, Any] = handle.native or {}
    return list(native.get("result_sets", []))


def _duration_ms(start_time: datetime) -> int:
    delta = datetime.now(timezone.utc) - start_time
    return int(delta.total_seconds() * 1000)
