from __future__ import annotations

import re
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Type

from core.error_codes import CONNECT_ERROR_CODE, get_table
from core.exceptions import (
    DatabaseConnectionError,
    DatabaseExecutionError,
    DatabaseRuntimeError,
    QueryExecutionError,
    ResultFetchError,
)
from core.models import ErrorCategory

_SQLSTATE_RE = re.compile(r"^[0-9A-Z]{5}$")

EXCEPTION_CLASSES: Mapping[ErrorCategory, Type[DatabaseExecutionError]] = MappingProxyType(
    {
        ErrorCategory.CONNECTION: DatabaseConnectionError,
        ErrorCategory.QUERY: QueryExecutionError,
        ErrorCategory.RESULT: ResultFetchError,
        ErrorCategory.UNCLASSIFIED: DatabaseRuntimeError,
    }
)


def classify(engine: str, code: int, sqlstate: Optional[str] = None) -> ErrorCategory:
    """Map a native error code to its semantic category.

    Tables are consulted in fixed priority: connection, query, result.
    When no table knows the code, an SQLSTATE (if given) decides by class.
    Never raises; an unknown engine or code yields ``Unclassified``.
    """
    table = get_table(engine)
    if table is not None:
        if code in table.connection:
            return ErrorCategory.CONNECTION
        if code in table.query:
            return ErrorCategory.QUERY
        if code in table.result:
            return ErrorCategory.RESULT
    if sqlstate:
        return classify_sqlstate(sqlstate)
    return ErrorCategory.UNCLASSIFIED


def classify_sqlstate(sqlstate: str) -> ErrorCategory:
    state = str(sqlstate).strip().upper()
    if not _SQLSTATE_RE.match(state):
        return ErrorCategory.UNCLASSIFIED
    if state.startswith(("08", "28")):
        return ErrorCategory.CONNECTION
    if state == "HY010" or state.startswith("24"):
        return ErrorCategory.RESULT
    if state.startswith(("42", "22", "23")):
        return ErrorCategory.QUERY
    return ErrorCategory.UNCLASSIFIED


def classify_errors(engine: str, codes: Iterable[int]) -> ErrorCategory:
    """Classify a list of native codes; the first recognized code decides.

    If none is recognized but the first code is the connect pseudo-code,
    the failure happened while connecting.
    """
    code_list = list(codes)
    for code in code_list:
        category = classify(engine, code)
        if category is not ErrorCategory.UNCLASSIFIED:
            return category
    if code_list and code_list[0] == CONNECT_ERROR_CODE:
        return ErrorCategory.CONNECTION
    return ErrorCategory.UNCLASSIFIED


def exception_class_for(category: ErrorCategory) -> Type[DatabaseExecutionError]:
    return EXCEPTION_CLASSES[category]
