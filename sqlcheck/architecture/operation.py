"""SQL operation records handed over by the syntactic scanner, and diagnostics.

A SqlOperation describes one detected call site: the literal query text (if the
scanner could determine it), the parameters written at the call site, the
columns read from the result and the execution function used.

Example:
    >>> op = SqlOperation.from_dict(
    ...     {
    ...         "query": "SELECT username FROM users WHERE user_id = @user_id",
    ...         "range": {"file": "app.py", "start_line": 10},
    ...         "parameters": [{"name": "user_id", "function": "Sql.int64"}],
    ...         "reads": [{"column": "username", "function": "read.text"}],
    ...         "execution": "Sql.execute",
    ...     }
    ... )
"""

from __future__ import annotations

from pydantic import ConfigDict, Field, field_validator

from sqlcheck.onto import (
    DiagnosticCode,
    ExecutionMode,
    ReaderKind,
    Severity,
    WriterKind,
)

from .base import ConfigBaseModel


class SourceRange(ConfigBaseModel):
    """Location of a construct in application source code (1-based lines)."""

    model_config = ConfigDict(frozen=True)

    file: str | None = None
    start_line: int = 1
    start_column: int = 0
    end_line: int | None = None
    end_column: int | None = None

    def __str__(self) -> str:
        location = f"{self.start_line}:{self.start_column}"
        return f"{self.file}:{location}" if self.file else location


class ParameterUsage(ConfigBaseModel):
    """A parameter supplied at the call site together with its writer function."""

    model_config = ConfigDict(frozen=True)

    name: str
    function: str
    range: SourceRange | None = None

    @field_validator("name", mode="before")
    @classmethod
    def _strip_marker(cls, v):
        if isinstance(v, str):
            return v.strip().lstrip("@")
        return v

    @property
    def kind(self) -> WriterKind:
        return WriterKind.parse(self.function)[0]

    @property
    def optional(self) -> bool:
        return WriterKind.parse(self.function)[1]


class ColumnReadAttempt(ConfigBaseModel):
    """A column read from the result set together with its reader function."""

    model_config = ConfigDict(frozen=True)

    column: str
    function: str
    range: SourceRange | None = None

    @property
    def kind(self) -> ReaderKind:
        return ReaderKind.parse(self.function)[0]

    @property
    def optional(self) -> bool:
        return ReaderKind.parse(self.function)[1]


class SqlOperation(ConfigBaseModel):
    """One SQL call site extracted by the syntactic scanner.

    Attributes:
        query: Literal query text; None when the text is built dynamically
        range: Source range of the call site
        parameters: Parameters written at the call site, in source order
        reads: Column read attempts, in source order
        execution: Execution function used by the call site
    """

    model_config = ConfigDict(frozen=True)

    query: str | None = None
    range: SourceRange = Field(default_factory=SourceRange)
    parameters: tuple[ParameterUsage, ...] = ()
    reads: tuple[ColumnReadAttempt, ...] = ()
    execution: ExecutionMode = ExecutionMode.ROWS

    @field_validator("execution", mode="before")
    @classmethod
    def _parse_execution(cls, v):
        if isinstance(v, str) and not isinstance(v, ExecutionMode):
            return ExecutionMode.parse(v)
        return v


class Diagnostic(ConfigBaseModel):
    """A finding reported for one SQL operation."""

    model_config = ConfigDict(frozen=True)

    severity: Severity = Severity.WARNING
    code: DiagnosticCode
    message: str
    range: SourceRange = Field(default_factory=SourceRange)

    @property
    def is_warning(self) -> bool:
        return self.severity is Severity.WARNING

    def __str__(self) -> str:
        return f"{self.range}: {self.severity} {self.code}: {self.message}"
