from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

from pydantic import ValidationError

from core.exceptions import ArgumentError, StateError
from core.interfaces import ConnectionProtocol, DialectProtocol, QueryMutatorProtocol, StatementHandle
from core.models import QueryOptions, QuerySnapshot
from core.substitution import (
    Arguments,
    as_argument_list,
    minify,
    sql_fragments,
    substitute_fragments,
    trim_sql,
    validate_arguments,
)

logger = logging.getLogger(__name__)

STATEMENT_SEPARATOR = "; "


class Query(QueryMutatorProtocol):
    """One logical, possibly multi-statement, SQL command.

    A simple query's base SQL can be bound to arguments (``bind``), repeated
    with new arguments (``repeat``) or followed by other statements
    (``append``). Repeating or appending forecloses binding; appending
    forecloses repeating. A prepared statement allows no text mutation at
    all. Instances are not safe for concurrent mutation.
    """

    def __init__(
        self,
        sql: str,
        *,
        dialect: DialectProtocol,
        connection: Optional[ConnectionProtocol] = None,
        statement: Optional[StatementHandle] = None,
        arguments: Optional[Arguments] = None,
        options: Optional[Mapping[str, Any]] = None,
        label: str = "Database",
    ) -> None:
        self.dialect = dialect
        self.label = label
        self._connection = connection
        self._options = _parse_options(options, label)

        base_sql = trim_sql(sql or "")
        if not base_sql:
            raise ArgumentError(f"{label} - sql length[{len(sql or '')}] is effectively empty.")
        if self._options.sql_minify:
            base_sql = trim_sql(minify(base_sql))

        self._base_sql = base_sql
        self._tampered_sql: Optional[str] = None
        self._statement = statement
        self._prepared_arguments: List[Any] = as_argument_list(arguments) if statement else []
        self._is_prepared_statement = statement is not None and statement.prepared
        self._is_multi_query = False
        self._is_repeat_statement = False
        self._sql_appended = False
        self._statement_closed = False
        self.execution = 0

        if self._options.multi_query:
            if not dialect.supports_multi_query:
                raise StateError(f"{label} - {dialect.name} doesn't support multi-query.")
            self._is_multi_query = True

    @property
    def base_sql(self) -> str:
        return self._base_sql

    @property
    def effective_sql(self) -> str:
        return self._tampered_sql if self._tampered_sql is not None else self._base_sql

    @property
    def is_prepared_statement(self) -> bool:
        return self._is_prepared_statement

    @property
    def is_multi_query(self) -> bool:
        return self._is_multi_query

    @property
    def is_repeat_statement(self) -> bool:
        return self._is_repeat_statement

    @property
    def sql_appended(self) -> bool:
        return self._sql_appended

    @property
    def statement_closed(self) -> bool:
        return self._statement_closed

    @property
    def statement(self) -> Optional[StatementHandle]:
        return self._statement

    @property
    def prepared_arguments(self) -> List[Any]:
        return list(self._prepared_arguments)

    @property
    def options(self) -> QueryOptions:
        return self._options

    def snapshot(self) -> QuerySnapshot:
        return QuerySnapshot(
            base_sql=self._base_sql,
            effective_sql=self.effective_sql,
            is_prepared_statement=self._is_prepared_statement,
            is_multi_query=self._is_multi_query,
            is_repeat_statement=self._is_repeat_statement,
            sql_appended=self._sql_appended,
            statement_closed=self._statement_closed,
        )

    def bind(self, types: str, arguments: Arguments) -> "Query":
        """Substitute the base statement's parameter markers by arguments.

        The base SQL stays reusable; binding again starts over from it.
        Arguments are consumed once, not referred.
        """
        self._ensure_open("bind")
        if self._is_repeat_statement:
            raise StateError(
                f"{self.label} - passing parameters to base sql is illegal when base sql has been repeated."
            )
        if self._sql_appended:
            raise StateError(
                f"{self.label} - passing parameters to base sql is illegal"
                " after another sql string has been appended."
            )
        self._reject_prepared("passing parameters to prepared statement is illegal")

        self._tampered_sql = self._render(self._base_sql, types, arguments)
        return self

    def repeat(self, types: str, arguments: Arguments) -> "Query":
        """Append a copy of the base statement, substituted by new arguments."""
        self._ensure_open("repeat")
        self._ensure_multi_query_support()
        if self._sql_appended:
            raise StateError(
                f"{self.label} - repeating base sql is illegal after another sql string has been appended."
            )
        self._reject_prepared("repeating prepared statement is illegal")

        repeated = self._render(self._base_sql, types, arguments)
        self._tampered_sql = self.effective_sql + STATEMENT_SEPARATOR + repeated
        self._is_multi_query = self._is_repeat_statement = True
        return self

    def append(self, sql: str, types: str, arguments: Arguments) -> "Query":
        """Append another statement, substituting its own parameter markers."""
        self._ensure_open("append")
        appendix = trim_sql(sql or "")
        if not appendix:
            raise ArgumentError(f"{self.label} - sql length[{len(sql or '')}] is effectively empty.")
        self._reject_prepared("appending to prepared statement is illegal")
        self._ensure_multi_query_support()

        rendered = self._render(appendix, types, arguments)
        self._tampered_sql = self.effective_sql + STATEMENT_SEPARATOR + rendered
        self._is_multi_query = self._sql_appended = True
        return self

    def close(self) -> None:
        """Release the connection-side statement, if any. Closed is final."""
        if self._statement_closed:
            return
        self._release_statement()
        self._statement_closed = True

    def _render(self, sql: str, types: str, arguments: Arguments) -> str:
        args = as_argument_list(arguments)
        level = self._options.validate_arguments
        if level and (types or args):
            try:
                validate_arguments(types, args, actual_types=level > 1)
            except ArgumentError as exc:
                raise ArgumentError(f"{self.label} - {exc}") from None

        try:
            fragments = sql_fragments(sql, args, self.dialect.backslash_escapes)
            if not fragments:
                return sql
            return substitute_fragments(fragments, types, args, self.dialect)
        except ArgumentError as exc:
            raise ArgumentError(f"{self.label} - {exc}") from None

    def _ensure_open(self, method: str) -> None:
        if self._statement_closed:
            raise StateError(f"{self.label} - {method}() is illegal, statement is closed.")

    def _ensure_multi_query_support(self) -> None:
        if not self.dialect.supports_multi_query:
            raise StateError(f"{self.label} - {self.dialect.name} doesn't support multi-query.")

    def _reject_prepared(self, message: str) -> None:
        if not self._is_prepared_statement:
            return
        self._release_statement()
        raise StateError(f"{self.label} - {message}.")

    def _release_statement(self) -> None:
        self._prepared_arguments = []
        statement, self._statement = self._statement, None
        if statement is None or statement.closed:
            return
        if self._connection is not None:
            self._connection.release_statement(statement)
        statement.closed = True
        logger.debug("%s - released statement for: %.80s", self.label, statement.sql)


def _parse_options(options: Optional[Mapping[str, Any]], label: str) -> QueryOptions:
    try:
        return QueryOptions(**dict(options or {}))
    except ValidationError as exc:
        raise ArgumentError(f"{label} - query options invalid: {exc}") from exc
