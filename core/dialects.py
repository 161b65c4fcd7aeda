from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from pymysql.converters import escape_string

from core.error_codes import normalize_engine
from core.exceptions import ConfigurationError
from core.interfaces import DialectProtocol


class MariaDbDialect(DialectProtocol):
    """MariaDB/MySQL literals: backslash escaping, hex blob literals."""

    name = "mariadb"
    supports_multi_query = True
    backslash_escapes = True

    def quote_string(self, value: str) -> str:
        return "'" + escape_string(value) + "'"

    def quote_blob(self, value: bytes) -> str:
        return "X'" + value.hex() + "'"


class MsSqlDialect(DialectProtocol):
    """SQL Server literals: doubled quotes, 0x blob literals.

    Multi-query text is not supported; batches go through separate queries.
    """

    name = "mssql"
    supports_multi_query = False
    backslash_escapes = False

    def quote_string(self, value: str) -> str:
        return "N'" + value.replace("\0", "").replace("'", "''") + "'"

    def quote_blob(self, value: bytes) -> str:
        return "0x" + value.hex().upper()


DIALECTS: Mapping[str, DialectProtocol] = MappingProxyType(
    {
        MariaDbDialect.name: MariaDbDialect(),
        MsSqlDialect.name: MsSqlDialect(),
    }
)


def get_dialect(engine: str) -> DialectProtocol:
    try:
        return DIALECTS[normalize_engine(engine)]
    except KeyError:
        raise ConfigurationError(
            f"Unsupported database engine '{engine}'; expected one of: {', '.join(DIALECTS)}."
        ) from None
