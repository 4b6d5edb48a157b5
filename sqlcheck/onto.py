"""Core enumerations shared across the analyzer.

This module provides the base enumeration class and the closed vocabularies the
analyzer reasons about: reader functions, writer functions, execution modes and
diagnostic severities.

Key Components:
    - BaseEnum: Base class for string-based enumerations with flexible membership testing
    - ReaderKind: Functions used by a call site to read a result column
    - WriterKind: Functions used by a call site to supply a parameter
    - ExecutionMode: How a call site executes its query
    - Severity: Diagnostic severity

Example:
    >>> "read.int" in ReaderKind  # True
    >>> ReaderKind.parse("read.textOrNone")
    (read.text, True)
"""

from enum import EnumMeta

from strenum import StrEnum

# Suffixes that turn a reader/writer into its optional (NULL-accepting) variant.
OPTIONAL_SUFFIXES = ("OrValueNone", "OrNone", "OrNull")


class MetaEnum(EnumMeta):
    """Metaclass for flexible enumeration membership testing.

    Example:
        >>> class MyEnum(BaseEnum):
        ...     VALUE = "value"
        >>> "value" in MyEnum  # True
        >>> "invalid" in MyEnum  # False
    """

    def __contains__(self, member: object) -> bool:
        if isinstance(member, self):
            return True
        try:
            self(member)
            return True
        except ValueError:
            return False


class BaseEnum(StrEnum, metaclass=MetaEnum):
    """Base class for string-based enumerations."""

    def __str__(self) -> str:
        """Return the enum value as string for proper serialization."""
        return self.value

    def __repr__(self) -> str:
        """Return the enum value as string for proper serialization."""
        return self.value


def _register_yaml_representer():
    """Register YAML representer for BaseEnum and all its subclasses to serialize as string values."""
    import yaml

    def base_enum_representer(dumper, data):
        return dumper.represent_scalar("tag:yaml.org,2002:str", str(data.value))

    yaml.add_representer(BaseEnum, base_enum_representer)
    yaml.add_multi_representer(BaseEnum, base_enum_representer)
    yaml.SafeDumper.add_multi_representer(BaseEnum, base_enum_representer)


_register_yaml_representer()


def split_optional(function_name: str) -> tuple[str, bool]:
    """Strip an optional-variant suffix from a function name.

    Args:
        function_name: Name as written at the call site, e.g. ``read.intOrNone``

    Returns:
        tuple[str, bool]: Base name and whether an optional suffix was present
    """
    name = function_name.strip()
    for suffix in OPTIONAL_SUFFIXES:
        if name.endswith(suffix) and len(name) > len(suffix):
            return name[: -len(suffix)], True
    return name, False


class ReaderKind(BaseEnum):
    """Functions a call site can use to read a column of the result set.

    ``UNKNOWN`` stands for any name the analyzer does not recognize; it never
    matches an expected reader.
    """

    INT16 = "read.int16"
    INT = "read.int"
    INT64 = "read.int64"
    DECIMAL = "read.decimal"
    DOUBLE = "read.double"
    FLOAT = "read.float"
    TEXT = "read.text"
    STRING = "read.string"
    BOOL = "read.bool"
    UUID = "read.uuid"
    BYTEA = "read.bytea"
    DATE = "read.date"
    DATETIME = "read.dateTime"
    TIMESTAMP = "read.timestamp"
    TIMESTAMPTZ = "read.timestamptz"
    DATETIME_OFFSET = "read.datetimeOffset"
    TIME = "read.timeOnly"
    INTERVAL = "read.interval"
    INET = "read.inet"
    JSON = "read.json"
    STRING_ARRAY = "read.stringArray"
    INT_ARRAY = "read.intArray"
    INT64_ARRAY = "read.int64Array"
    DECIMAL_ARRAY = "read.decimalArray"
    DOUBLE_ARRAY = "read.doubleArray"
    BOOL_ARRAY = "read.boolArray"
    UUID_ARRAY = "read.uuidArray"
    FIELD_VALUE = "read.fieldValue"
    UNKNOWN = "read.unknown"

    @classmethod
    def parse(cls, function_name: str) -> tuple["ReaderKind", bool]:
        """Translate a call-site reader name into a kind and an optional flag."""
        base, optional = split_optional(function_name)
        if base in cls:
            return cls(base), optional
        return cls.UNKNOWN, optional

    @property
    def is_array(self) -> bool:
        return self.value.endswith("Array")


class WriterKind(BaseEnum):
    """Functions a call site can use to supply a query parameter.

    ``UNKNOWN`` stands for any name the analyzer does not recognize; it never
    matches an expected writer.
    """

    INT16 = "Sql.int16"
    INT = "Sql.int"
    INT64 = "Sql.int64"
    DECIMAL = "Sql.decimal"
    MONEY = "Sql.money"
    DOUBLE = "Sql.double"
    TEXT = "Sql.text"
    STRING = "Sql.string"
    BOOL = "Sql.bool"
    BIT = "Sql.bit"
    UUID = "Sql.uuid"
    BYTEA = "Sql.bytea"
    DATE = "Sql.date"
    TIMESTAMP = "Sql.timestamp"
    TIMESTAMPTZ = "Sql.timestamptz"
    TIME = "Sql.time"
    INTERVAL = "Sql.interval"
    JSONB = "Sql.jsonb"
    STRING_ARRAY = "Sql.stringArray"
    INT_ARRAY = "Sql.intArray"
    INT64_ARRAY = "Sql.int64Array"
    DECIMAL_ARRAY = "Sql.decimalArray"
    DOUBLE_ARRAY = "Sql.doubleArray"
    BOOL_ARRAY = "Sql.boolArray"
    UUID_ARRAY = "Sql.uuidArray"
    PARAMETER = "Sql.parameter"
    DB_NULL = "Sql.dbnull"
    UNKNOWN = "Sql.unknown"

    @classmethod
    def parse(cls, function_name: str) -> tuple["WriterKind", bool]:
        """Translate a call-site writer name into a kind and an optional flag."""
        base, optional = split_optional(function_name)
        if base in cls:
            return cls(base), optional
        return cls.UNKNOWN, optional

    @property
    def is_array(self) -> bool:
        return self.value.endswith("Array")


class ExecutionMode(BaseEnum):
    """How a call site executes its query.

    Attributes:
        ROWS: Row-returning execution (``Sql.execute``)
        ROW: Single row-returning execution (``Sql.executeRow``)
        SCALAR: Single value execution (``Sql.executeScalar``)
        NON_QUERY: Execution that only reports affected rows (``Sql.executeNonQuery``)
        UNKNOWN: Unrecognized execution function; the execution-mode check is skipped
    """

    ROWS = "Sql.execute"
    ROW = "Sql.executeRow"
    SCALAR = "Sql.executeScalar"
    NON_QUERY = "Sql.executeNonQuery"
    UNKNOWN = "Sql.executeUnknown"

    @classmethod
    def parse(cls, function_name: str) -> "ExecutionMode":
        """Translate a call-site execution function, ignoring an ``Async`` suffix.

        Example:
            >>> ExecutionMode.parse("Sql.executeReaderAsync")
            Sql.execute
            >>> ExecutionMode.parse("Sql.run")
            Sql.executeUnknown
        """
        name = function_name.strip()
        if name.endswith("Async"):
            name = name[: -len("Async")]
        if name in EXECUTION_ALIASES:
            return EXECUTION_ALIASES[name]
        if name in cls:
            return cls(name)
        return cls.UNKNOWN

    @property
    def returns_rows(self) -> bool | None:
        """Whether the execution function expects rows; None when unknown."""
        if self is ExecutionMode.UNKNOWN:
            return None
        return self is not ExecutionMode.NON_QUERY


# Execution functions that behave like one of the modes above.
EXECUTION_ALIASES: dict[str, ExecutionMode] = {
    "Sql.executeReader": ExecutionMode.ROWS,
    "Sql.iter": ExecutionMode.ROWS,
    "Sql.toSeq": ExecutionMode.ROWS,
    "Sql.executeRowOrNone": ExecutionMode.ROW,
    "Sql.executeTransaction": ExecutionMode.NON_QUERY,
}


class Severity(BaseEnum):
    """Diagnostic severity."""

    WARNING = "warning"
    ERROR = "error"


class DiagnosticCode(BaseEnum):
    """Stable identifiers of the findings the analyzer can report."""

    DESCRIBE_FAILED = "SQL001"
    MISSING_PARAMETER = "SQL002"
    REDUNDANT_PARAMETERS = "SQL003"
    PARAMETER_TYPE_MISMATCH = "SQL004"
    MISSING_COLUMN = "SQL005"
    COLUMN_TYPE_MISMATCH = "SQL006"
    NULLABLE_COLUMN = "SQL007"
    EXECUTION_MODE = "SQL008"
    ANALYSIS_FAILED = "SQL009"
