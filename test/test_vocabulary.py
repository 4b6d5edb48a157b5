"""Tests for the reader, writer and execution-mode vocabularies."""

import pytest
import yaml

from sqlcheck.onto import (
    DiagnosticCode,
    ExecutionMode,
    ReaderKind,
    WriterKind,
    split_optional,
)


def test_membership_by_value():
    assert "read.int" in ReaderKind
    assert "Sql.int64" in WriterKind
    assert "read.integer" not in ReaderKind


@pytest.mark.parametrize(
    "function_name, expected",
    [
        ("read.textOrNone", ("read.text", True)),
        ("read.intOrValueNone", ("read.int", True)),
        ("Sql.stringOrNull", ("Sql.string", True)),
        ("read.bool", ("read.bool", False)),
        ("OrNone", ("OrNone", False)),
    ],
)
def test_split_optional(function_name, expected):
    assert split_optional(function_name) == expected


def test_reader_parse():
    assert ReaderKind.parse("read.uuidArrayOrNone") == (ReaderKind.UUID_ARRAY, True)
    assert ReaderKind.parse("read.int") == (ReaderKind.INT, False)
    # names outside the vocabulary never match an expected reader
    assert ReaderKind.parse("read.something") == (ReaderKind.UNKNOWN, False)


def test_writer_parse():
    assert WriterKind.parse("Sql.int64OrNone") == (WriterKind.INT64, True)
    assert WriterKind.parse("Sql.whatever")[0] is WriterKind.UNKNOWN
    assert WriterKind.INT_ARRAY.is_array
    assert not WriterKind.INT.is_array


def test_execution_mode_parse():
    assert ExecutionMode.parse("Sql.executeAsync") is ExecutionMode.ROWS
    assert ExecutionMode.parse("Sql.executeNonQueryAsync") is ExecutionMode.NON_QUERY
    assert ExecutionMode.parse("Sql.executeRow") is ExecutionMode.ROW
    assert not ExecutionMode.NON_QUERY.returns_rows
    assert ExecutionMode.SCALAR.returns_rows


@pytest.mark.parametrize(
    "function_name, mode",
    [
        ("Sql.executeReader", ExecutionMode.ROWS),
        ("Sql.executeReaderAsync", ExecutionMode.ROWS),
        ("Sql.iter", ExecutionMode.ROWS),
        ("Sql.executeRowOrNoneAsync", ExecutionMode.ROW),
        ("Sql.executeTransaction", ExecutionMode.NON_QUERY),
        ("Sql.executeTransactionAsync", ExecutionMode.NON_QUERY),
    ],
)
def test_execution_aliases(function_name, mode):
    assert ExecutionMode.parse(function_name) is mode


def test_unrecognized_execution_function():
    mode = ExecutionMode.parse("Sql.run")
    assert mode is ExecutionMode.UNKNOWN
    assert mode.returns_rows is None


def test_enums_dump_as_plain_strings():
    dumped = yaml.safe_dump({"code": DiagnosticCode.MISSING_COLUMN})
    assert dumped.strip() == "code: SQL005"
