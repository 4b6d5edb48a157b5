"""sqlcheck: static analysis of embedded SQL against a live PostgreSQL database.

sqlcheck checks SQL call sites, as extracted by a syntactic scanner, against
the real shape of the target database: referenced columns must exist, supplied
parameters must match their expected types, reader/writer functions must fit
the Postgres type, and the execution function must match whether the query
returns rows.

Key Features:
    - Schema snapshot from the system catalogs (tables, columns, enums, functions)
    - Query metadata through prepare/describe, without executing queries
    - Total type compatibility map for reader/writer functions
    - Bounded concurrent analysis of batches of operations

Example:
    >>> from sqlcheck import AnalysisSession, PostgresConfig, SqlOperation
    >>> session = AnalysisSession.open(PostgresConfig.from_env())
    >>> session.analyze(SqlOperation(query="SELECT * FROM users", execution="Sql.execute"))
"""

# --- Core orchestration ---------------------------------------------------
from .hq import AnalysisSession, SemanticAnalyzer, analyze

# --- Data model ------------------------------------------------------------
from .architecture import (
    Column,
    ColumnReadAttempt,
    DatabaseSchema,
    DataType,
    Diagnostic,
    FunctionSignature,
    OutputColumn,
    ParameterInfo,
    ParameterUsage,
    QueryDescription,
    Schema,
    SourceRange,
    SqlOperation,
    Table,
)

# --- Database --------------------------------------------------------------
from .db import PostgresConfig, PostgresConnection, QueryDescriber, get_schema
from .db.postgres import PostgresTypeMapper, describe, expected

# --- Errors ----------------------------------------------------------------
from .errors import DatabaseConnectionError, DescribeError, SqlCheckError

# --- Enums -----------------------------------------------------------------
from .onto import DiagnosticCode, ExecutionMode, ReaderKind, Severity, WriterKind

__all__ = [
    # Orchestration
    "AnalysisSession",
    "SemanticAnalyzer",
    "analyze",
    # Data model
    "Column",
    "ColumnReadAttempt",
    "DataType",
    "DatabaseSchema",
    "Diagnostic",
    "FunctionSignature",
    "OutputColumn",
    "ParameterInfo",
    "ParameterUsage",
    "QueryDescription",
    "Schema",
    "SourceRange",
    "SqlOperation",
    "Table",
    # Database
    "PostgresConfig",
    "PostgresConnection",
    "PostgresTypeMapper",
    "QueryDescriber",
    "describe",
    "expected",
    "get_schema",
    # Errors
    "DatabaseConnectionError",
    "DescribeError",
    "SqlCheckError",
    # Enums
    "DiagnosticCode",
    "ExecutionMode",
    "ReaderKind",
    "Severity",
    "WriterKind",
]
