from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ErrorCategory(str, Enum):
    """Semantic category of a native engine error."""

    CONNECTION = "ConnectionError"
    QUERY = "QueryError"
    RESULT = "ResultError"
    UNCLASSIFIED = "Unclassified"


class NativeError(BaseModel):
    """A raw error reported by the driver."""

    model_config = ConfigDict(frozen=True)

    code: int
    sqlstate: Optional[str] = None
    message: str = ""

    def __str__(self) -> str:
        state = f"[{self.sqlstate}]" if self.sqlstate else ""
        return f"({self.code}){state} {self.message}".rstrip()


class QueryOptions(BaseModel):
    """Options accepted when creating a query; unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    multi_query: bool = False
    sql_minify: bool = False
    validate_arguments: int = Field(default=1, ge=0, le=2)


class QuerySnapshot(BaseModel):
    """Read-only view of a query's current text and state flags."""

    model_config = ConfigDict(frozen=True)

    base_sql: str
    effective_sql: str
    is_prepared_statement: bool
    is_multi_query: bool
    is_repeat_statement: bool
    sql_appended: bool
    statement_closed: bool


class ResultSet(BaseModel):
    """One result set produced by a (possibly multi-statement) execution."""

    columns: List[str] = Field(default_factory=list)
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    affected_rows: int = 0
    insert_id: Optional[int] = None

    @property
    def row_count(self) -> int:
        return len(self.rows)


class ExecutionResult(BaseModel):
    """Structured representation of a query execution."""

    query_id: UUID = Field(default_factory=uuid4)
    sql: str
    result_sets: List[ResultSet] = Field(default_factory=list)
    execution_ms: Optional[int] = None

    @field_validator("sql")
    @classmethod
    def _strip_sql(cls, value: str) -> str:
        return value.strip()

    @property
    def rows(self) -> List[Dict[str, Any]]:
        if not self.result_sets:
            return []
        return self.result_sets[0].rows

    @property
    def row_count(self) -> int:
        return sum(result.row_count for result in self.result_sets)
