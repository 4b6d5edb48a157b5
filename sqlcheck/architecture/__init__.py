from .base import ConfigBaseModel
from .onto_sql import (
    Column,
    DatabaseSchema,
    DataType,
    FunctionSignature,
    OutputColumn,
    ParameterInfo,
    QueryDescription,
    Schema,
    Table,
)
from .operation import (
    ColumnReadAttempt,
    Diagnostic,
    ParameterUsage,
    SourceRange,
    SqlOperation,
)

__all__ = [
    "Column",
    "ColumnReadAttempt",
    "ConfigBaseModel",
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
]
