"""Query description through the extended query protocol.

The describer sends a Parse message followed by Describe for the prepared
statement, which makes the server compile the query and report parameter and
result-column types without executing it. psycopg2 does not expose Describe, so
this round trip goes through psycopg's libpq wrapper.

Example:
    >>> describer = QueryDescriber(config)
    >>> description = describer.describe("SELECT * FROM users WHERE user_id = @id", schema)
    >>> [p.name for p in description.parameters]
    ['id']
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import Protocol

import psycopg
from psycopg import pq

from sqlcheck.architecture.onto_sql import (
    DatabaseSchema,
    DataType,
    OutputColumn,
    ParameterInfo,
    QueryDescription,
)
from sqlcheck.db.connection.onto import PostgresConfig
from sqlcheck.errors import DescribeError

from .query import (
    FunctionCall,
    RewrittenQuery,
    bare_placeholder,
    detect_function_call,
    has_placeholders,
    rewrite_named_placeholders,
)

logger = logging.getLogger(__name__)

STATEMENT_NAME = b"sqlcheck_describe"
UNKNOWN_TYPE = DataType.scalar("unknown")


class Describer(Protocol):
    """Anything that can describe query text against a schema snapshot."""

    def describe(
        self, query_text: str, schema: DatabaseSchema
    ) -> QueryDescription | DescribeError: ...


def _error_from_result(result: pq.PGresult, query: str) -> DescribeError:
    primary = result.error_field(pq.DiagnosticField.MESSAGE_PRIMARY)
    sqlstate = result.error_field(pq.DiagnosticField.SQLSTATE)
    raw = primary or result.error_message or b"unknown error"
    return DescribeError(
        raw.decode("utf-8", "replace").strip(),
        query=query,
        sqlstate=sqlstate.decode() if sqlstate else None,
    )


class QueryDescriber:
    """Describe queries against the target database without executing them.

    Every call opens a short-lived autocommit connection, so describers can be
    used from several threads at once; connect and statement timeouts come from
    the configuration.

    Attributes:
        config: PostgreSQL connection configuration
    """

    def __init__(self, config: PostgresConfig):
        self.config = config

    def describe(
        self, query_text: str, schema: DatabaseSchema
    ) -> QueryDescription | DescribeError:
        """Report parameter and output-column metadata of a query.

        Args:
            query_text: Query text, possibly with ``@name`` placeholders
            schema: Snapshot used to resolve type OIDs, column nullability and functions

        Returns:
            QueryDescription, or DescribeError when the server rejects the
            query or cannot be reached
        """
        rewritten = rewrite_named_placeholders(query_text)

        call = detect_function_call(query_text)
        if call is not None:
            resolved = self._describe_function_call(call, rewritten, schema)
            if resolved is not None:
                logger.debug(f"Resolved '{call.name}' through the function registry")
                return resolved

        try:
            with psycopg.connect(self.config.to_dsn(), autocommit=True) as conn:
                return self._describe_prepared(conn, rewritten, schema)
        except psycopg.Error as e:
            logger.warning(f"Describe round trip failed: {e}")
            return DescribeError(str(e).strip(), query=rewritten.text)

    def _describe_prepared(
        self,
        conn: psycopg.Connection,
        rewritten: RewrittenQuery,
        schema: DatabaseSchema,
    ) -> QueryDescription | DescribeError:
        pgconn = conn.pgconn
        encoding = conn.info.encoding

        try:
            query_bytes = rewritten.text.encode(encoding)
        except UnicodeEncodeError as e:
            return DescribeError(
                f"Query text cannot be encoded in the database encoding {encoding}: {e.reason}",
                query=rewritten.text,
            )

        prepared = pgconn.prepare(STATEMENT_NAME, query_bytes)
        if prepared.status != pq.ExecStatus.COMMAND_OK:
            error = _error_from_result(prepared, rewritten.text)
            logger.debug(f"Server rejected query: {error.message}")
            return error

        try:
            described = pgconn.describe_prepared(STATEMENT_NAME)
            if described.status != pq.ExecStatus.COMMAND_OK:
                return _error_from_result(described, rewritten.text)

            parameters = tuple(
                ParameterInfo(
                    position=i + 1,
                    name=rewritten.names.get(i + 1),
                    data_type=self._lookup_type(described.param_type(i), schema),
                )
                for i in range(described.nparams)
            )
            columns = tuple(
                self._output_column(described, i, schema, encoding)
                for i in range(described.nfields)
            )
        finally:
            pgconn.exec_(b"DEALLOCATE " + STATEMENT_NAME)

        return QueryDescription(parameters=parameters, columns=columns)

    @staticmethod
    def _lookup_type(oid: int, schema: DatabaseSchema) -> DataType:
        data_type = schema.type_by_oid(oid)
        if data_type is None:
            logger.debug(f"Type OID {oid} is not in the schema snapshot")
            return UNKNOWN_TYPE
        return data_type

    def _output_column(
        self, described: pq.PGresult, i: int, schema: DatabaseSchema, encoding: str
    ) -> OutputColumn:
        raw_name = described.fname(i)
        name = raw_name.decode(encoding, "replace") if raw_name else "?column?"
        data_type = self._lookup_type(described.ftype(i), schema)

        table = schema.table_by_oid(described.ftable(i)) if described.ftable(i) else None
        column = table.column_at(described.ftablecol(i)) if table is not None else None
        if column is None:
            return OutputColumn(name=name, data_type=data_type)
        return OutputColumn(
            name=name, data_type=data_type, nullable=column.nullable, from_table=True
        )

    @staticmethod
    def _describe_function_call(
        call: FunctionCall, rewritten: RewrittenQuery, schema: DatabaseSchema
    ) -> QueryDescription | None:
        """Resolve ``SELECT fn(args)`` through the function registry.

        Returns None when the registry cannot settle the call on its own
        (unknown or overloaded function, set or composite result, placeholders
        nested inside argument expressions); the generic path handles those.
        """
        overloads = [
            f
            for f in schema.lookup_functions(call.name)
            if f.arity == len(call.arguments)
            and (call.schema_name is None or f.schema_name == call.schema_name)
        ]
        if len(overloads) != 1:
            return None
        function = overloads[0]
        if function.returns_set or function.returns_composite:
            return None

        parameters: dict[int, ParameterInfo] = {}
        for argument, data_type in zip(call.arguments, function.parameter_types):
            placeholder = bare_placeholder(argument)
            if placeholder is None:
                if has_placeholders(argument):
                    return None
                continue
            name, position = placeholder
            if name is not None:
                position = rewritten.position_of(name)
            if position is None:
                return None
            parameters.setdefault(
                position,
                ParameterInfo(
                    position=position,
                    name=rewritten.names.get(position),
                    data_type=data_type,
                ),
            )

        return QueryDescription(
            parameters=tuple(parameters[p] for p in sorted(parameters)),
            columns=(
                OutputColumn(name=function.name, data_type=function.return_type),
            ),
        )


class CachingDescriber:
    """Describe every distinct query text once.

    Concurrent callers asking for the same text wait for the first round trip
    and share its result; results of different texts do not block each other.
    """

    def __init__(self, describer: Describer):
        self._describer = describer
        self._results: dict[str, QueryDescription | DescribeError] = {}
        self._locks: defaultdict[str, threading.Lock] = defaultdict(threading.Lock)
        self._guard = threading.Lock()

    def describe(
        self, query_text: str, schema: DatabaseSchema
    ) -> QueryDescription | DescribeError:
        with self._guard:
            lock = self._locks[query_text]
        with lock:
            if query_text not in self._results:
                self._results[query_text] = self._describer.describe(query_text, schema)
            return self._results[query_text]

    def __len__(self) -> int:
        return len(self._results)


def describe(
    config: PostgresConfig, query_text: str, schema: DatabaseSchema
) -> QueryDescription | DescribeError:
    """Shortcut for ``QueryDescriber(config).describe(query_text, schema)``."""
    return QueryDescriber(config).describe(query_text, schema)
