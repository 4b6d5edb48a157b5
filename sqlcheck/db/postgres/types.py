"""Type compatibility map between Postgres types and reader/writer functions.

The map is total: every data type the introspector can produce resolves to a
non-empty set of readers and writers. Types without a dedicated entry fall back
to the generic ``read.fieldValue`` / ``Sql.parameter`` kinds, which are also
accepted for every scalar type. Mapped array types accept only array-marked
kinds (and ``Sql.dbnull``).
"""

from __future__ import annotations

from typing import NamedTuple

from sqlcheck.architecture.onto_sql import DataType, normalize_type_name
from sqlcheck.onto import ReaderKind, WriterKind

# Generic kinds that can move any value in and out of the database.
GENERIC_READERS = frozenset({ReaderKind.FIELD_VALUE})
GENERIC_WRITERS = frozenset({WriterKind.PARAMETER, WriterKind.DB_NULL})

# Short and serial spellings mapped onto format_type() names.
TYPE_ALIASES: dict[str, str] = {
    "int2": "smallint",
    "smallserial": "smallint",
    "serial2": "smallint",
    "int": "integer",
    "int4": "integer",
    "serial": "integer",
    "serial4": "integer",
    "int8": "bigint",
    "bigserial": "bigint",
    "serial8": "bigint",
    "decimal": "numeric",
    "float4": "real",
    "float8": "double precision",
    "float": "double precision",
    "varchar": "character varying",
    "char": "character",
    "bpchar": "character",
    '"char"': "character",
    "bool": "boolean",
    "varbit": "bit varying",
    "timestamp": "timestamp without time zone",
    "timestamptz": "timestamp with time zone",
    "time": "time without time zone",
    "timetz": "time with time zone",
}


class ExpectedFunctions(NamedTuple):
    """Readers and writers considered correct for a data type.

    The first entry of each tuple is the canonical function suggested in
    diagnostics. ``generic`` tells whether the generic kinds are accepted too;
    mapped array types turn it off, since a kind without the array marker
    never fits an array. ``Sql.dbnull`` carries no value and fits every type.
    """

    readers: tuple[ReaderKind, ...]
    writers: tuple[WriterKind, ...]
    generic: bool = True

    @property
    def canonical_reader(self) -> ReaderKind:
        return self.readers[0]

    @property
    def canonical_writer(self) -> WriterKind:
        return self.writers[0]

    def accepts_reader(self, kind: ReaderKind) -> bool:
        return kind in self.readers or (self.generic and kind in GENERIC_READERS)

    def accepts_writer(self, kind: WriterKind) -> bool:
        if kind in self.writers or kind is WriterKind.DB_NULL:
            return True
        return self.generic and kind in GENERIC_WRITERS


def _pair(readers, writers) -> ExpectedFunctions:
    return ExpectedFunctions(tuple(readers), tuple(writers))


_STRING = _pair(
    [ReaderKind.TEXT, ReaderKind.STRING], [WriterKind.TEXT, WriterKind.STRING]
)
_STRING_ARRAY = _pair([ReaderKind.STRING_ARRAY], [WriterKind.STRING_ARRAY])
_GENERIC = _pair([ReaderKind.FIELD_VALUE], [WriterKind.PARAMETER])


class PostgresTypeMapper:
    """Resolve the expected reader and writer functions of a data type.

    Example:
        >>> mapper = PostgresTypeMapper()
        >>> mapper.expected(DataType.scalar("bit")).canonical_reader
        read.bool
    """

    SCALARS: dict[str, ExpectedFunctions] = {
        "smallint": _pair([ReaderKind.INT16], [WriterKind.INT16]),
        "integer": _pair([ReaderKind.INT], [WriterKind.INT]),
        "bigint": _pair([ReaderKind.INT64], [WriterKind.INT64]),
        "numeric": _pair([ReaderKind.DECIMAL], [WriterKind.DECIMAL]),
        "money": _pair([ReaderKind.DECIMAL], [WriterKind.MONEY, WriterKind.DECIMAL]),
        "real": _pair([ReaderKind.FLOAT, ReaderKind.DOUBLE], [WriterKind.DOUBLE]),
        "double precision": _pair([ReaderKind.DOUBLE], [WriterKind.DOUBLE]),
        "text": _STRING,
        "character varying": _STRING,
        "character": _STRING,
        "name": _STRING,
        "citext": _STRING,
        "xml": _STRING,
        "boolean": _pair([ReaderKind.BOOL], [WriterKind.BOOL]),
        # bit columns hold booleans in practice
        "bit": _pair([ReaderKind.BOOL], [WriterKind.BIT, WriterKind.BOOL]),
        "uuid": _pair([ReaderKind.UUID], [WriterKind.UUID]),
        "bytea": _pair([ReaderKind.BYTEA], [WriterKind.BYTEA]),
        "date": _pair([ReaderKind.DATE, ReaderKind.DATETIME], [WriterKind.DATE]),
        "timestamp without time zone": _pair(
            [ReaderKind.TIMESTAMP, ReaderKind.DATETIME], [WriterKind.TIMESTAMP]
        ),
        "timestamp with time zone": _pair(
            [ReaderKind.TIMESTAMPTZ, ReaderKind.DATETIME_OFFSET, ReaderKind.DATETIME],
            [WriterKind.TIMESTAMPTZ],
        ),
        "time without time zone": _pair([ReaderKind.TIME], [WriterKind.TIME]),
        "time with time zone": _pair([ReaderKind.TIME], [WriterKind.TIME]),
        "interval": _pair([ReaderKind.INTERVAL], [WriterKind.INTERVAL]),
        "json": _pair(
            [ReaderKind.TEXT, ReaderKind.STRING, ReaderKind.JSON], [WriterKind.JSONB]
        ),
        "jsonb": _pair(
            [ReaderKind.TEXT, ReaderKind.STRING, ReaderKind.JSON], [WriterKind.JSONB]
        ),
        "inet": _pair([ReaderKind.INET], [WriterKind.PARAMETER]),
        "cidr": _pair([ReaderKind.INET], [WriterKind.PARAMETER]),
    }

    ARRAYS: dict[str, ExpectedFunctions] = {
        "text": _STRING_ARRAY,
        "character varying": _STRING_ARRAY,
        "character": _STRING_ARRAY,
        "name": _STRING_ARRAY,
        "citext": _STRING_ARRAY,
        "smallint": _pair([ReaderKind.INT_ARRAY], [WriterKind.INT_ARRAY]),
        "integer": _pair([ReaderKind.INT_ARRAY], [WriterKind.INT_ARRAY]),
        "bigint": _pair([ReaderKind.INT64_ARRAY], [WriterKind.INT64_ARRAY]),
        "numeric": _pair([ReaderKind.DECIMAL_ARRAY], [WriterKind.DECIMAL_ARRAY]),
        "real": _pair([ReaderKind.DOUBLE_ARRAY], [WriterKind.DOUBLE_ARRAY]),
        "double precision": _pair(
            [ReaderKind.DOUBLE_ARRAY], [WriterKind.DOUBLE_ARRAY]
        ),
        "boolean": _pair([ReaderKind.BOOL_ARRAY], [WriterKind.BOOL_ARRAY]),
        "bit": _pair([ReaderKind.BOOL_ARRAY], [WriterKind.BOOL_ARRAY]),
        # uuid arrays need their own reader even though uuids read as strings
        "uuid": _pair([ReaderKind.UUID_ARRAY], [WriterKind.UUID_ARRAY]),
    }

    @staticmethod
    def canonical_name(name: str) -> str:
        """Map alias spellings (``int4``, ``bigserial`` ...) onto catalog names."""
        normalized = normalize_type_name(name)
        return TYPE_ALIASES.get(normalized, normalized)

    def expected(self, data_type: DataType) -> ExpectedFunctions:
        """Return the readers and writers considered correct for a data type.

        Args:
            data_type: Type of a parameter or output column

        Returns:
            ExpectedFunctions: Never empty; unmapped types resolve to the generic kinds
        """
        if data_type.is_array:
            element = data_type.element
            if element is not None and element.is_enum:
                functions = _STRING_ARRAY
            else:
                functions = self.ARRAYS.get(self.canonical_name(data_type.name))
            if functions is None:
                # no array-marked kind exists for this element type
                return _GENERIC
            return functions._replace(generic=False)
        if data_type.is_enum:
            return _STRING
        return self.SCALARS.get(self.canonical_name(data_type.name), _GENERIC)


_default_mapper = PostgresTypeMapper()


def expected(data_type: DataType) -> ExpectedFunctions:
    """Module-level shortcut for ``PostgresTypeMapper().expected``."""
    return _default_mapper.expected(data_type)
