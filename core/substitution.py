"""Parameter marker substitution.

Splits SQL text at ``?`` markers that sit outside quoted strings, quoted
identifiers and comments, then interleaves typed literal values.

Type characters:

- ``i``: integer
- ``d``: float (double)
- ``s``: string
- ``b``: blob

An empty type string means every argument is a string.
"""
from __future__ import annotations

import math
import re
from decimal import Decimal
from typing import Any, List, Mapping, Sequence, Union

from core.exceptions import ArgumentError
from core.interfaces import DialectProtocol

SQL_PARAMETER = "?"
SQL_TRIM = " \t\n\r\0\x0B;"
PARAMETER_TYPE_CHARS = ("i", "d", "s", "b")

_BINARY_TYPES = (bytes, bytearray, memoryview)
_SCALAR_TYPES = (int, float, Decimal, str) + _BINARY_TYPES
_INTEGER_RE = re.compile(r"^[+-]?[0-9]+$")
_NUMBER_RE = re.compile(r"^[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?$")

Arguments = Union[Sequence[Any], Mapping[Any, Any]]


def trim_sql(sql: str) -> str:
    return sql.strip(SQL_TRIM)


def as_argument_list(arguments: Arguments) -> List[Any]:
    """Copy arguments into a fresh list; mappings contribute their values in order."""
    if arguments is None:
        return []
    if isinstance(arguments, Mapping):
        return list(arguments.values())
    if isinstance(arguments, (str, bytes)):
        raise ArgumentError("arguments must be a sequence of values, not a single string.")
    return list(arguments)


def split_fragments(sql: str, backslash_escapes: bool = True) -> List[str]:
    """Split SQL at parameter markers; returns markers + 1 fragments.

    ``backslash_escapes`` selects MariaDB/MySQL lexing: backslash escapes in
    strings, ``#`` line comments and ``--`` comments only when followed by
    whitespace. Otherwise any ``--`` starts a comment.
    """
    fragments: List[str] = []
    length = len(sql)
    start = 0
    index = 0
    quote = ""
    while index < length:
        char = sql[index]
        if quote:
            if char == "\\" and backslash_escapes and quote in ("'", '"'):
                index += 2
                continue
            if char == quote:
                # Doubled closing char is an escaped literal char.
                if index + 1 < length and sql[index + 1] == quote:
                    index += 2
                    continue
                quote = ""
            index += 1
            continue

        if char in ("'", '"', "`"):
            quote = char
        elif char == "[":
            quote = "]"
        elif _starts_line_comment(sql, index, backslash_escapes):
            newline = sql.find("\n", index)
            index = length if newline < 0 else newline
            continue
        elif sql.startswith("/*", index):
            end = sql.find("*/", index + 2)
            index = length if end < 0 else end + 2
            continue
        elif char == SQL_PARAMETER:
            fragments.append(sql[start:index])
            start = index + 1
        index += 1

    fragments.append(sql[start:])
    return fragments


def _starts_line_comment(sql: str, index: int, mysql_lexing: bool) -> bool:
    if not mysql_lexing:
        return sql.startswith("--", index)
    if sql[index] == "#":
        return True
    if not sql.startswith("--", index):
        return False
    following = sql[index + 2:index + 3]
    return following == "" or following.isspace()


def sql_fragments(sql: str, arguments: Sequence[Any], backslash_escapes: bool = True) -> List[str]:
    """Split SQL and check that the argument count matches the marker count.

    Returns an empty list when the SQL has no parameter markers.
    """
    fragments = split_fragments(sql, backslash_escapes)
    n_params = len(fragments) - 1
    n_args = len(arguments)
    if n_args != n_params:
        raise ArgumentError(
            f"arguments length[{n_args}] doesn't match sql's {SQL_PARAMETER}-parameters count[{n_params}]."
        )
    return fragments if n_params else []


def check_type_chars(types: str) -> None:
    invalid = [
        f"index[{index}] char[{char}]"
        for index, char in enumerate(types)
        if char not in PARAMETER_TYPE_CHARS
    ]
    if invalid:
        raise ArgumentError(f"types invalid {', '.join(invalid)}.")


def validate_arguments(types: str, arguments: Sequence[Any], actual_types: bool = False) -> None:
    """Validate type chars against arguments.

    With ``actual_types`` the argument values are checked loosely against
    their type chars: ``i`` accepts stringed integers, ``d`` accepts integers
    and stringed numbers, ``s`` and ``b`` accept any scalar but bool.
    """
    if types and len(types) != len(arguments):
        raise ArgumentError(
            f"types length[{len(types)}] doesn't match arguments length[{len(arguments)}]."
        )
    check_type_chars(types)
    if not actual_types:
        return

    invalid = []
    for index, value in enumerate(arguments):
        char = types[index] if types else "s"
        if isinstance(value, bool) or not isinstance(value, _SCALAR_TYPES):
            invalid.append(f"index[{index}] char[{char}] type[{type(value).__name__}] is not scalar")
        elif char == "i" and not (isinstance(value, int) or _is_stringed(value, _INTEGER_RE)):
            invalid.append(
                f"index[{index}] char[{char}] type[{type(value).__name__}]"
                " is neither integer nor stringed integer"
            )
        elif char == "d" and not (
            isinstance(value, (int, float, Decimal)) or _is_stringed(value, _NUMBER_RE)
        ):
            invalid.append(
                f"index[{index}] char[{char}] type[{type(value).__name__}]"
                " is neither number nor stringed number"
            )
    if invalid:
        raise ArgumentError(f"arguments invalid {', '.join(invalid)}.")


def _is_stringed(value: Any, pattern: "re.Pattern[str]") -> bool:
    return isinstance(value, str) and bool(pattern.match(value.strip()))


def _is_finite(value: Union[float, Decimal]) -> bool:
    # Signaling NaN can't be converted to float.
    if isinstance(value, Decimal):
        return value.is_finite()
    return math.isfinite(value)


def render_argument(value: Any, type_char: str, dialect: DialectProtocol, index: int = 0) -> str:
    if isinstance(value, bool) or not isinstance(value, _SCALAR_TYPES):
        raise ArgumentError(
            f"arguments index[{index}] type[{type(value).__name__}] is not integer|float|string|binary."
        )

    if type_char == "i":
        if isinstance(value, int):
            return str(value)
        if isinstance(value, (float, Decimal)) and _is_finite(value) and value == int(value):
            return str(int(value))
        if _is_stringed(value, _INTEGER_RE):
            return value.strip()
        raise ArgumentError(f"arguments index[{index}] value is not an integer.")

    if type_char == "d":
        if isinstance(value, int):
            return str(value)
        if isinstance(value, (float, Decimal)):
            if not _is_finite(value):
                raise ArgumentError(f"arguments index[{index}] value is not a finite number.")
            return repr(value) if isinstance(value, float) else str(value)
        if _is_stringed(value, _NUMBER_RE):
            return value.strip()
        raise ArgumentError(f"arguments index[{index}] value is not a number.")

    if type_char in ("s", "b"):
        if isinstance(value, _BINARY_TYPES):
            return dialect.quote_blob(bytes(value))
        return dialect.quote_string(str(value))

    raise ArgumentError(
        f"types index[{index}] char[{type_char}] is not {'|'.join(PARAMETER_TYPE_CHARS)}."
    )


def substitute(sql: str, types: str, arguments: Arguments, dialect: DialectProtocol) -> str:
    """Return SQL with every parameter marker replaced by a rendered literal."""
    args = as_argument_list(arguments)
    fragments = sql_fragments(sql, args, dialect.backslash_escapes)
    if not fragments:
        return sql
    return substitute_fragments(fragments, types, args, dialect)


def substitute_fragments(
    fragments: Sequence[str], types: str, arguments: Sequence[Any], dialect: DialectProtocol
) -> str:
    n_params = len(fragments) - 1
    type_chars = types or "s" * n_params
    if len(type_chars) != n_params:
        raise ArgumentError(
            f"types length[{len(types)}] doesn't match sql's {SQL_PARAMETER}-parameters count[{n_params}]."
        )
    parts = []
    for index in range(n_params):
        parts.append(fragments[index])
        parts.append(render_argument(arguments[index], type_chars[index], dialect, index))
    parts.append(fragments[n_params])
    return "".join(parts)


def minify(sql: str) -> str:
    """Drop carriage returns, line indentation and line comments; fold newlines."""
    sql = sql.replace("\r", "")
    sql = re.sub(r"\n[ \t]+", "\n", sql)
    sql = re.sub(r"(^|\n)--[^\n]*", "", sql)
    return sql.replace("\n", " ").strip()
