from __future__ import annotations

import logging
import re
import threading
from typing import Any, Dict, List, Optional, Sequence, Union

import pymysql
import pymysql.cursors
from pymysql.constants import CLIENT

from core.error_codes import CONNECT_ERROR_CODE
from core.interfaces import ConnectionProtocol, StatementHandle
from core.models import NativeError, ResultSet
from core.substitution import split_fragments
from utils.config import AppConfig

logger = logging.getLogger(__name__)

_SQLSTATE_RE = re.compile(r"^#?([0-9A-Z]{5})\b")
STATEMENT_NOT_PREPARED = 2030


class MariaDbConnection(ConnectionProtocol):
    """MariaDB/MySQL capability built on PyMySQL.

    Failures never escape as driver exceptions: ``execute`` and friends
    return the native error code and keep the error for ``last_error()``.
    One PyMySQL connection is shared, so every round trip holds the lock.
    ``last_error()`` reports the last failure seen by the calling thread.
    """

    def __init__(self, config: AppConfig) -> None:
        self.config = config
        self._connection: Optional[pymysql.connections.Connection] = None
        self._errors = threading.local()
        self._lock = threading.RLock()

    def connect(self) -> Union[pymysql.connections.Connection, int]:
        with self._lock:
            if self._connection is not None and self._connection.open:
                return self._connection
            try:
                self._connection = pymysql.connect(
                    host=self.config.db_host,
                    port=self.config.db_port,
                    user=self.config.db_user,
                    password=self.config.db_password,
                    database=self.config.db_name or None,
                    charset=self.config.db_charset,
                    connect_timeout=self.config.db_connect_timeout,
                    client_flag=CLIENT.MULTI_STATEMENTS,
                    cursorclass=pymysql.cursors.DictCursor,
                    autocommit=True,
                )
            except pymysql.MySQLError as exc:
                self._connection = None
                return self._record(exc, default_code=CONNECT_ERROR_CODE)
            logger.info("Connected to MariaDB at %s:%s", self.config.db_host, self.config.db_port)
            return self._connection

    @property
    def is_connected(self) -> bool:
        return self._connection is not None and bool(self._connection.open)

    def execute(self, sql: str) -> Union[StatementHandle, int]:
        return self._run(StatementHandle(sql=sql), None)

    def prepare(self, sql: str) -> Union[StatementHandle, int]:
        # PyMySQL has no server-side prepared statements; the handle keeps
        # the sql with driver placeholders and binds at every execution.
        fragments = split_fragments(sql, backslash_escapes=True)
        driver_sql = "%s".join(fragment.replace("%", "%%") for fragment in fragments)
        connection = self.connect()
        if isinstance(connection, int):
            return connection
        return StatementHandle(sql=sql, prepared=True, native={"driver_sql": driver_sql})

    def execute_prepared(
        self, handle: StatementHandle, arguments: Sequence[Any]
    ) -> Union[StatementHandle, int]:
        if handle.closed:
            self._errors.last = NativeError(code=STATEMENT_NOT_PREPARED, message="Statement not prepared")
            return STATEMENT_NOT_PREPARED
        return self._run(handle, tuple(arguments))

    def _run(self, handle: StatementHandle, arguments: Optional[Sequence[Any]]) -> Union[StatementHandle, int]:
        with self._lock:
            connection = self.connect()
            if isinstance(connection, int):
                return connection
            cursor = connection.cursor()
            try:
                if arguments is None:
                    cursor.execute(handle.sql)
                else:
                    cursor.execute(handle.native["driver_sql"], arguments)
                result_sets = [self._read_result_set(cursor)]
                while cursor.nextset():
                    result_sets.append(self._read_result_set(cursor))
            except pymysql.MySQLError as exc:
                return self._record(exc)
            finally:
                cursor.close()

        handle.native = {**(handle.native or {}), "result_sets": result_sets}
        return handle

    @staticmethod
    def _read_result_set(cursor: pymysql.cursors.Cursor) -> ResultSet:
        columns: List[str] = [desc[0] for desc in cursor.description or []]
        rows: List[Dict[str, Any]] = list(cursor.fetchall() or []) if cursor.description else []
        return ResultSet(
            columns=columns,
            rows=rows,
            affected_rows=max(cursor.rowcount, 0) if not columns else 0,
            insert_id=cursor.lastrowid or None,
        )

    def release_statement(self, handle: StatementHandle) -> None:
        handle.native = None
        handle.closed = True

    def last_error(self) -> Optional[NativeError]:
        return getattr(self._errors, "last", None)

    def close(self) -> None:
        with self._lock:
            try:
                if self._connection is not None and self._connection.open:
                    self._connection.close()
            except pymysql.MySQLError as exc:
                logger.warning("Error closing MariaDB connection: %s", exc)
            finally:
                self._connection = None

    def _record(self, exc: pymysql.MySQLError, default_code: int = 0) -> int:
        code = default_code
        message = str(exc)
        if exc.args and isinstance(exc.args[0], int):
            code = exc.args[0]
            message = str(exc.args[1]) if len(exc.args) > 1 else ""
        match = _SQLSTATE_RE.match(message)
        self._errors.last = NativeError(
            code=code,
            sqlstate=match.group(1) if match else None,
            message=message,
        )
        return code
