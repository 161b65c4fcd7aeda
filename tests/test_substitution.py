from __future__ import annotations

from decimal import Decimal

import pytest

from core.exceptions import ArgumentError
from core.substitution import (
    as_argument_list,
    check_type_chars,
    minify,
    split_fragments,
    sql_fragments,
    substitute,
    validate_arguments,
)


def test_split_ignores_markers_inside_quotes_and_comments():
    sql = (
        "SELECT '?', ? FROM `a?` WHERE b = \"?\" AND [c?] = ? -- ?\n"
        "AND d = ? /* ? */"
    )
    fragments = split_fragments(sql)
    assert len(fragments) == 4
    assert fragments[0] == "SELECT '?', "


def test_split_handles_doubled_quotes():
    assert len(split_fragments("SELECT 'it''s ?', ?")) == 2


def test_split_backslash_escapes_depend_on_dialect():
    sql = "SELECT 'a\\'?'"
    assert len(split_fragments(sql, backslash_escapes=True)) == 1
    assert len(split_fragments(sql, backslash_escapes=False)) == 2


def test_sql_fragments_checks_argument_count():
    assert sql_fragments("SELECT 1", []) == []
    assert sql_fragments("SELECT ?", [1]) == ["SELECT ", ""]
    with pytest.raises(ArgumentError, match=r"arguments length\[2\]"):
        sql_fragments("SELECT ?", [1, 2])


def test_empty_types_means_all_strings(mariadb):
    assert substitute("SELECT ?, ?", "", ["a", 5], mariadb) == "SELECT 'a', '5'"


def test_typed_rendering(mariadb):
    sql = "INSERT INTO t VALUES (?, ?, ?, ?)"
    assert (
        substitute(sql, "idds", [1, 2.5, Decimal("3.10"), "x"], mariadb)
        == "INSERT INTO t VALUES (1, 2.5, 3.10, 'x')"
    )
    assert substitute("SELECT ?", "i", ["42"], mariadb) == "SELECT 42"
    assert substitute("SELECT ?", "d", [" 1e3 "], mariadb) == "SELECT 1e3"


def test_blob_rendering(mariadb, mssql):
    assert substitute("SELECT ?", "b", [b"\x01\xff"], mariadb) == "SELECT X'01ff'"
    assert substitute("SELECT ?", "b", [bytearray(b"\x01\xff")], mssql) == "SELECT 0x01FF"
    assert substitute("SELECT ?", "b", ["text"], mariadb) == "SELECT 'text'"


def test_string_escaping(mariadb, mssql):
    assert substitute("SELECT ?", "s", ["O'Brien"], mariadb) == "SELECT 'O\\'Brien'"
    assert substitute("SELECT ?", "s", ["a\\b\n"], mariadb) == "SELECT 'a\\\\b\\n'"
    assert substitute("SELECT ?", "s", ["O'Brien"], mssql) == "SELECT N'O''Brien'"
    assert (
        substitute("SELECT ?", "s", ["'; DROP TABLE users; --"], mssql)
        == "SELECT N'''; DROP TABLE users; --'"
    )


def test_values_containing_markers_are_not_resubstituted(mariadb):
    assert substitute("SELECT ?, ?", "ss", ["?", "x"], mariadb) == "SELECT '?', 'x'"


@pytest.mark.parametrize(
    "types, value",
    [
        ("i", "abc"),
        ("i", 1.5),
        ("i", True),
        ("d", float("nan")),
        ("d", "1,5"),
        ("s", None),
        ("s", [1]),
        ("x", 1),
    ],
)
def test_unrenderable_arguments(mariadb, types, value):
    with pytest.raises(ArgumentError):
        substitute("SELECT ?", types, [value], mariadb)


def test_types_length_must_match_markers(mariadb):
    with pytest.raises(ArgumentError, match=r"types length\[2\]"):
        substitute("SELECT ?", "ii", [1], mariadb)


def test_substitution_is_pure(mariadb):
    arguments = [1, "a"]
    first = substitute("SELECT ?, ?", "is", arguments, mariadb)
    second = substitute("SELECT ?, ?", "is", arguments, mariadb)
    assert first == second
    assert arguments == [1, "a"]


def test_mapping_arguments_use_values_in_order(mariadb):
    assert as_argument_list({"b": 2, "a": 1}) == [2, 1]
    assert substitute("SELECT ?, ?", "ii", {"x": 1, "y": 2}, mariadb) == "SELECT 1, 2"
    with pytest.raises(ArgumentError):
        as_argument_list("abc")


def test_check_type_chars_lists_invalid_positions():
    check_type_chars("idsb")
    with pytest.raises(ArgumentError, match=r"index\[1\] char\[x\]"):
        check_type_chars("ix")


def test_validate_arguments_loose_typing():
    validate_arguments("i", ["12"], actual_types=True)
    validate_arguments("d", [3], actual_types=True)
    validate_arguments("d", ["1e3"], actual_types=True)
    validate_arguments("", ["a", 1], actual_types=True)
    with pytest.raises(ArgumentError):
        validate_arguments("i", ["1.5"], actual_types=True)
    with pytest.raises(ArgumentError):
        validate_arguments("s", [True], actual_types=True)
    with pytest.raises(ArgumentError):
        validate_arguments("ii", [1])
    # Without actual type checks only lengths and chars matter.
    validate_arguments("i", ["abc"])


def test_minify():
    sql = "-- header\nSELECT a,\r\n    b\n    -- inner\nFROM t"
    assert minify(sql) == "SELECT a, b FROM t"


@pytest.mark.parametrize(
    "types, value",
    [
        ("i", "١٢٣"),
        ("d", "१.5"),
        ("i", "１"),
    ],
)
def test_numeric_strings_must_use_ascii_digits(mariadb, types, value):
    with pytest.raises(ArgumentError):
        substitute("SELECT ?", types, [value], mariadb)
    with pytest.raises(ArgumentError):
        validate_arguments(types, [value], actual_types=True)


def test_non_finite_decimals_are_argument_errors(mariadb):
    for value in (Decimal("sNaN"), Decimal("NaN"), Decimal("Infinity")):
        with pytest.raises(ArgumentError):
            substitute("SELECT ?", "d", [value], mariadb)
        with pytest.raises(ArgumentError):
            substitute("SELECT ?", "i", [value], mariadb)


def test_mariadb_line_comments(mariadb):
    assert substitute("SELECT ? # why?", "i", [1], mariadb) == "SELECT 1 # why?"
    assert substitute("SELECT ? -- why?", "i", [1], mariadb) == "SELECT 1 -- why?"
    # Without trailing whitespace MariaDB reads "--" as two minus signs.
    assert substitute("SELECT 5--?", "i", [1], mariadb) == "SELECT 5--1"
    assert len(split_fragments("SELECT 1 --", backslash_escapes=True)) == 1


def test_mssql_line_comments():
    assert len(split_fragments("SELECT ? --?", backslash_escapes=False)) == 2
    assert len(split_fragments("SELECT ? # ?", backslash_escapes=False)) == 3
