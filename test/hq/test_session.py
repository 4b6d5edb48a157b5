"""Tests for analysis sessions."""

import threading
import time

import pytest

from sqlcheck.architecture.onto_sql import QueryDescription
from sqlcheck.architecture.operation import SqlOperation
from sqlcheck.db.connection.onto import PostgresConfig
from sqlcheck.errors import DatabaseConnectionError
from sqlcheck.hq import session as session_module
from sqlcheck.hq.analyzer import SemanticAnalyzer
from sqlcheck.hq.session import AnalysisSession
from sqlcheck.onto import DiagnosticCode, Severity


@pytest.fixture()
def config():
    return PostgresConfig(hostname="localhost", database="app", max_connections=2)


def ops(*queries):
    return [
        SqlOperation.from_dict({"query": q, "range": {"start_line": i + 1}})
        for i, q in enumerate(queries)
    ]


def test_open_raises_connection_error(monkeypatch, config):
    error = DatabaseConnectionError("connection refused")
    monkeypatch.setattr(session_module, "get_schema", lambda c: error)

    with pytest.raises(DatabaseConnectionError) as excinfo:
        AnalysisSession.open(config)
    assert excinfo.value is error


def test_open_uses_schema_snapshot(monkeypatch, config, users_schema, users_describer):
    monkeypatch.setattr(session_module, "get_schema", lambda c: users_schema)

    session = AnalysisSession.open(config, describer=users_describer)

    assert session.schema is users_schema
    assert session.analyze(ops("SELECT * FROM users")[0]) == []


def test_each_query_text_described_once(config, users_schema, users_describer):
    session = AnalysisSession(config, users_schema, describer=users_describer)
    batch = ops(
        "SELECT * FROM users",
        "SELECT COUNT(*) FROM users",
        "SELECT * FROM users",
        "SELECT * FROM users",
    )

    results = session.analyze_all(batch)

    assert len(results) == 4
    assert sorted(users_describer.calls) == [
        "SELECT * FROM users",
        "SELECT COUNT(*) FROM users",
    ]
    assert len(session.describer) == 2


def test_results_in_input_order(config, users_schema, users_describer):
    session = AnalysisSession(config, users_schema, describer=users_describer)
    batch = ops("SELECT * FROM users", "SELECT * FROM missing", "SELECT COUNT(*) FROM users")

    results = session.analyze_all(batch)

    assert results[0] == []
    assert [d.code for d in results[1]] == [DiagnosticCode.DESCRIBE_FAILED]
    assert results[1][0].range.start_line == 2
    assert results[2] == []


def test_failing_operation_does_not_affect_others(config, users_schema, users_describer):
    class Exploding(SemanticAnalyzer):
        def analyze(self, operation, describer, schema):
            if operation.query == "SELECT boom":
                raise RuntimeError("boom")
            return super().analyze(operation, describer, schema)

    session = AnalysisSession(
        config, users_schema, describer=users_describer, analyzer=Exploding()
    )

    results = session.analyze_all(ops("SELECT boom", "SELECT * FROM users"))

    (failure,) = results[0]
    assert failure.severity is Severity.ERROR
    assert failure.code is DiagnosticCode.ANALYSIS_FAILED
    assert "boom" in failure.message
    assert results[1] == []


def test_concurrency_is_bounded(config, users_schema):
    lock = threading.Lock()
    state = {"active": 0, "peak": 0}

    class Slow:
        def describe(self, query_text, schema):
            with lock:
                state["active"] += 1
                state["peak"] = max(state["peak"], state["active"])
            time.sleep(0.05)
            with lock:
                state["active"] -= 1
            return QueryDescription()

    session = AnalysisSession(config, users_schema, describer=Slow())
    batch = [
        SqlOperation(
            query=f"DELETE FROM users WHERE user_id = {i}",
            execution="Sql.executeNonQuery",
        )
        for i in range(8)
    ]

    results = session.analyze_all(batch)

    assert results == [[]] * 8
    assert 1 <= state["peak"] <= config.max_connections
