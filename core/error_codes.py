"""Native error code tables, per engine family.

Each table splits an engine's relevant native codes into connection, query
and result related codes. Codes may also be listed as inclusive ranges.
The tables are process-wide constants; nothing mutates them.
"""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import FrozenSet, Iterator, Mapping, Optional, Tuple

CodeRange = Tuple[int, int]

# Pseudo-code a client reports as first error when it could not connect at all.
CONNECT_ERROR_CODE = 1


@dataclass(frozen=True)
class CodeGroup:
    codes: FrozenSet[int] = frozenset()
    ranges: Tuple[CodeRange, ...] = ()

    def __contains__(self, code: object) -> bool:
        if not isinstance(code, int) or isinstance(code, bool):
            return False
        if code in self.codes:
            return True
        return any(low <= code <= high for low, high in self.ranges)

    def expand(self) -> Iterator[int]:
        yield from self.codes
        for low, high in self.ranges:
            yield from range(low, high + 1)


@dataclass(frozen=True)
class ErrorCodeTable:
    engine: str
    connection: CodeGroup
    query: CodeGroup
    result: CodeGroup


MARIADB = ErrorCodeTable(
    engine="mariadb",
    connection=CodeGroup(
        codes=frozenset(
            {
                2001,  # Can't create UNIX socket
                2002,  # Can't connect to local server through socket
                2003,  # Can't connect to server on host
                2004,  # Can't create TCP/IP socket
                2005,  # Unknown server host
                2006,  # Server has gone away
                2007,  # Protocol mismatch
                2009,  # Wrong host info
                2010,  # Localhost via UNIX socket
                2011,  # Via TCP/IP
                2012,  # Error in server handshake
                2013,  # Lost connection during query
                2024,  # Error connecting to slave
                2025,  # Error connecting to master
                2026,  # SSL connection error
                2048,  # Invalid connection handle
                2055,  # Lost connection, system error
                1040,  # Too many connections
                1042,  # Can't get hostname for your address
                1043,  # Bad handshake
                1044,  # Access denied to database
                1045,  # Access denied for user
                1053,  # Server shutdown in progress
            }
        )
    ),
    query=CodeGroup(
        codes=frozenset(
            {
                2030,  # Statement not prepared
                2031,  # No data supplied for parameters
                2033,  # No parameters exist in the statement
                2056,  # Statement closed indirectly
                1005,
                1006,
                1007,
                1008,
                1010,
                1046,  # No database selected
                1048,  # Column cannot be null
                1049,  # Unknown database
                1050,  # Table already exists
                1051,  # Unknown table
                1052,  # Column is ambiguous
                1054,  # Unknown column
                1055,
                1056,
                1057,
                1058,  # Column count doesn't match value count
                1059,
                1060,
                1061,
                1062,  # Duplicate entry
                1063,
                1064,  # Syntax error
                1066,
                1067,
                1068,
                1069,
                1070,
                1071,
                1072,
                1073,
                1074,
                1075,
                1136,
                1142,  # Command denied for table
                1143,  # Command denied for column
                1146,  # Table doesn't exist
                1215,
                1216,
                1217,
                1239,
                1364,  # Field doesn't have a default value
                1370,  # Command denied for routine
                1451,
                1506,
                1553,
                1557,
                1701,
                1725,
                1740,
                1742,
                1761,
                1762,
                1807,
                1821,
                1822,
                1825,
                1826,
            }
        )
    ),
    result=CodeGroup(
        codes=frozenset(
            {
                2014,  # Commands out of sync; typically a missing next result advance
                2050,  # Row retrieval canceled by statement close
                2051,  # Column read without prior row fetch
                2053,  # No result set associated with the statement
                2057,  # Column count differs from bound buffers
                1162,  # Result string longer than max_allowed_packet
                1172,  # Result consisted of more than one row
                1301,  # Result larger than max_allowed_packet, truncated
                1312,  # Procedure can't return a result set here
                1415,  # Not allowed to return a result set
                3684,  # Result string larger than result buffer
                11343,  # Error getting result data
            }
        )
    ),
)

MSSQL = ErrorCodeTable(
    engine="mssql",
    connection=CodeGroup(
        codes=frozenset(
            {
                4060,  # Cannot open database requested by the login
                18456,  # Login failed for user
            }
        )
    ),
    # Syntax, name resolution and constraint errors.
    query=CodeGroup(ranges=((101, 681),)),
    result=CodeGroup(),
)

ENGINE_ALIASES: Mapping[str, str] = MappingProxyType(
    {
        "mysql": "mariadb",
        "sqlsrv": "mssql",
        "sqlserver": "mssql",
    }
)

ERROR_TABLES: Mapping[str, ErrorCodeTable] = MappingProxyType(
    {
        MARIADB.engine: MARIADB,
        MSSQL.engine: MSSQL,
    }
)


def normalize_engine(engine: str) -> str:
    name = (engine or "").strip().lower()
    return ENGINE_ALIASES.get(name, name)


def get_table(engine: str) -> Optional[ErrorCodeTable]:
    return ERROR_TABLES.get(normalize_engine(engine))
