"""Semantic analysis of one SQL operation.

The analyzer compares what the call site does (parameters written, columns
read, execution function) with what the database reports for the query, and
turns every disagreement into a Diagnostic. Findings are always returned as
data; nothing here raises for a semantic problem.
"""

from __future__ import annotations

import logging

from sqlcheck.architecture.onto_sql import (
    DatabaseSchema,
    OutputColumn,
    ParameterInfo,
    QueryDescription,
)
from sqlcheck.architecture.operation import (
    ColumnReadAttempt,
    Diagnostic,
    ParameterUsage,
    SqlOperation,
)
from sqlcheck.db.postgres.describe import Describer
from sqlcheck.db.postgres.types import PostgresTypeMapper
from sqlcheck.errors import DescribeError
from sqlcheck.onto import DiagnosticCode, ExecutionMode, Severity

logger = logging.getLogger(__name__)


class SemanticAnalyzer:
    """Turn SQL operations into diagnostics.

    The analyzer holds no state between calls: the result of ``analyze`` depends
    only on the operation, the schema snapshot and the describer's answer.

    Attributes:
        type_mapper: Type compatibility map used for every comparison
    """

    def __init__(self, type_mapper: PostgresTypeMapper | None = None):
        self.type_mapper = type_mapper or PostgresTypeMapper()

    def analyze(
        self,
        operation: SqlOperation,
        describer: Describer,
        schema: DatabaseSchema,
    ) -> list[Diagnostic]:
        """Analyze one SQL operation.

        Args:
            operation: Call site extracted by the syntactic scanner
            describer: Source of query metadata (usually a QueryDescriber)
            schema: Session schema snapshot

        Returns:
            list[Diagnostic]: Parameter, column and execution-mode findings, in
            that order; a single diagnostic when the query does not compile;
            empty when the query text is not statically known
        """
        if operation.query is None:
            logger.debug(f"Skipping dynamically built query at {operation.range}")
            return []

        description = describer.describe(operation.query, schema)
        if isinstance(description, DescribeError):
            return [
                Diagnostic(
                    code=DiagnosticCode.DESCRIBE_FAILED,
                    message=description.message,
                    range=operation.range,
                )
            ]

        diagnostics = self.check_parameters(operation, description)
        diagnostics += self.check_columns(operation, description)
        diagnostics += self.check_execution_mode(operation, description)
        logger.debug(
            f"{len(diagnostics)} diagnostics for query at {operation.range}"
        )
        return diagnostics

    def check_parameters(
        self, operation: SqlOperation, description: QueryDescription
    ) -> list[Diagnostic]:
        """Compare expected query parameters with the parameters supplied."""
        expected: dict[str, ParameterInfo] = {}
        for parameter in description.parameters:
            expected.setdefault(parameter.key.lower(), parameter)
        supplied: dict[str, ParameterUsage] = {}
        for usage in operation.parameters:
            supplied.setdefault(usage.name.lower(), usage)

        diagnostics = []
        for key, parameter in expected.items():
            if key not in supplied:
                diagnostics.append(
                    _warning(
                        DiagnosticCode.MISSING_PARAMETER,
                        f"Missing parameter '{parameter.key}' of type {parameter.data_type}",
                        operation.range,
                    )
                )

        if set(supplied) > set(expected):
            redundant = [u.name for k, u in supplied.items() if k not in expected]
            names = ", ".join(f"'{name}'" for name in redundant)
            if expected:
                message = (
                    f"Provided parameters are redundant: {names} "
                    f"are not used by the query"
                )
            else:
                message = (
                    f"Provided parameters are redundant: the query does not use "
                    f"any parameters but {names} are supplied"
                )
            diagnostics.append(
                _warning(DiagnosticCode.REDUNDANT_PARAMETERS, message, operation.range)
            )

        for key, parameter in expected.items():
            usage = supplied.get(key)
            if usage is None:
                continue
            functions = self.type_mapper.expected(parameter.data_type)
            if not functions.accepts_writer(usage.kind):
                diagnostics.append(
                    _warning(
                        DiagnosticCode.PARAMETER_TYPE_MISMATCH,
                        f"Attempting to provide parameter '{usage.name}' of type "
                        f"{parameter.data_type} using function {usage.function}. "
                        f"Please use {functions.canonical_writer} instead",
                        usage.range or operation.range,
                    )
                )
        return diagnostics

    def check_columns(
        self, operation: SqlOperation, description: QueryDescription
    ) -> list[Diagnostic]:
        """Compare the columns read at the call site with the query's output."""
        columns: dict[str, OutputColumn] = {}
        for column in description.columns:
            columns.setdefault(column.name, column)

        diagnostics = []
        for attempt in operation.reads:
            column = columns.get(attempt.column)
            if column is None:
                diagnostics.append(self._missing_column(attempt, columns, operation))
                continue
            functions = self.type_mapper.expected(column.data_type)
            range_ = attempt.range or operation.range
            if not functions.accepts_reader(attempt.kind):
                diagnostics.append(
                    _warning(
                        DiagnosticCode.COLUMN_TYPE_MISMATCH,
                        f"Attempting to read column named '{attempt.column}' of type "
                        f"{column.data_type} using {attempt.function}. "
                        f"Please use {functions.canonical_reader} instead",
                        range_,
                    )
                )
            elif column.from_table and column.nullable and not attempt.optional:
                diagnostics.append(
                    _warning(
                        DiagnosticCode.NULLABLE_COLUMN,
                        f"Column '{attempt.column}' is nullable but is read using "
                        f"{attempt.function}. Please use {attempt.kind}OrNone instead",
                        range_,
                    )
                )
        return diagnostics

    @staticmethod
    def _missing_column(
        attempt: ColumnReadAttempt,
        columns: dict[str, OutputColumn],
        operation: SqlOperation,
    ) -> Diagnostic:
        if columns:
            available = ", ".join(
                f"{name} ({column.data_type})" for name, column in columns.items()
            )
            hint = f"Available columns are {available}"
        else:
            hint = "The query does not return any columns"
        return _warning(
            DiagnosticCode.MISSING_COLUMN,
            f"Attempting to read column named '{attempt.column}' that does not exist "
            f"in the result set. {hint}",
            attempt.range or operation.range,
        )

    @staticmethod
    def check_execution_mode(
        operation: SqlOperation, description: QueryDescription
    ) -> list[Diagnostic]:
        """Check that the execution function matches whether the query returns rows."""
        if operation.execution is ExecutionMode.UNKNOWN:
            logger.debug(
                f"Unrecognized execution function at {operation.range}, "
                f"skipping execution-mode check"
            )
            return []
        returns_rows = len(description.columns) > 0
        if operation.execution.returns_rows and not returns_rows:
            return [
                _warning(
                    DiagnosticCode.EXECUTION_MODE,
                    f"The query does not return any rows but is executed with "
                    f"{operation.execution}. Please use {ExecutionMode.NON_QUERY} instead",
                    operation.range,
                )
            ]
        if not operation.execution.returns_rows and returns_rows:
            return [
                _warning(
                    DiagnosticCode.EXECUTION_MODE,
                    f"The query returns rows but is executed with "
                    f"{operation.execution}. Please use {ExecutionMode.ROWS} instead",
                    operation.range,
                )
            ]
        return []


def _warning(code: DiagnosticCode, message: str, range_) -> Diagnostic:
    return Diagnostic(severity=Severity.WARNING, code=code, message=message, range=range_)


def analyze(
    operation: SqlOperation, describer: Describer, schema: DatabaseSchema
) -> list[Diagnostic]:
    """Shortcut for ``SemanticAnalyzer().analyze(operation, describer, schema)``."""
    return SemanticAnalyzer().analyze(operation, describer, schema)
