from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Union

import pytest

from core.dialects import MariaDbDialect, MsSqlDialect
from core.interfaces import ConnectionProtocol, StatementHandle
from core.models import NativeError, ResultSet
from utils.config import AppConfig, reset_config_cache


class FakeConnection(ConnectionProtocol):
    """In-memory connection capability; fails for SQL listed in ``failures``."""

    def __init__(
        self,
        failures: Optional[Dict[str, NativeError]] = None,
        result_sets: Optional[List[ResultSet]] = None,
    ) -> None:
        self.failures = dict(failures or {})
        self.result_sets = result_sets or [ResultSet(columns=["x"], rows=[{"x": 1}])]
        self.executed: List[Any] = []
        self.prepared: List[str] = []
        self.released: List[StatementHandle] = []
        self.closed = False
        self._last_error: Optional[NativeError] = None

    def _fail(self, sql: str) -> Optional[int]:
        error = self.failures.get(sql)
        if error is None:
            return None
        self._last_error = error
        return error.code

    def execute(self, sql: str) -> Union[StatementHandle, int]:
        self.executed.append(sql)
        code = self._fail(sql)
        if code is not None:
            return code
        return StatementHandle(sql=sql, native={"result_sets": list(self.result_sets)})

    def prepare(self, sql: str) -> Union[StatementHandle, int]:
        self.prepared.append(sql)
        code = self._fail(sql)
        if code is not None:
            return code
        return StatementHandle(sql=sql, prepared=True)

    def execute_prepared(
        self, handle: StatementHandle, arguments: Sequence[Any]
    ) -> Union[StatementHandle, int]:
        self.executed.append((handle.sql, list(arguments)))
        handle.native = {"result_sets": list(self.result_sets)}
        return handle

    def release_statement(self, handle: StatementHandle) -> None:
        self.released.append(handle)

    def last_error(self) -> Optional[NativeError]:
        return self._last_error

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def mariadb() -> MariaDbDialect:
    return MariaDbDialect()


@pytest.fixture
def mssql() -> MsSqlDialect:
    return MsSqlDialect()


@pytest.fixture
def fake_connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def make_connection():
    return FakeConnection


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(DB_ENGINE="mariadb", DB_HOST="db.test", DB_NAME="shop", LOG_FILE="test.log")


@pytest.fixture(autouse=True)
def _clear_config_cache():
    reset_config_cache()
    yield
    reset_config_cache()
