"""Database schema snapshot and query metadata models.

The snapshot is built once per analysis session by the schema introspector and
then shared read-only by every analysis; all models here are frozen.
"""

from __future__ import annotations

import re
from functools import cached_property

from pydantic import ConfigDict, Field, field_validator, model_validator

from .base import ConfigBaseModel

_WHITESPACE = re.compile(r"\s+")


def normalize_type_name(name: str) -> str:
    """Normalize a Postgres type name for identity comparisons.

    Example:
        >>> normalize_type_name("  Timestamp   WITH time zone ")
        'timestamp with time zone'
    """
    return _WHITESPACE.sub(" ", name.strip()).lower()


class DataType(ConfigBaseModel):
    """Normalized Postgres data type.

    Two data types are equal when their normalized names and array flags are
    equal; the array flag is always taken from catalog metadata. For arrays,
    ``name`` is the element type name and ``element`` holds the element type.

    Attributes:
        name: Normalized type name, e.g. ``integer`` or ``timestamp with time zone``
        is_array: Whether the type is an array
        element: Element type, present iff ``is_array``
        is_enum: Whether the type is a user-defined enum
        enum_values: Enum labels in declaration order
    """

    model_config = ConfigDict(frozen=True)

    name: str
    is_array: bool = False
    element: DataType | None = None
    is_enum: bool = False
    enum_values: tuple[str, ...] = ()

    @field_validator("name", mode="before")
    @classmethod
    def _normalize_name(cls, v):
        if isinstance(v, str):
            return normalize_type_name(v)
        return v

    @model_validator(mode="after")
    def _check_element(self):
        if self.is_array != (self.element is not None):
            raise ValueError(
                f"Array type '{self.name}' requires an element type and only arrays may have one"
            )
        return self

    @classmethod
    def scalar(cls, name: str) -> DataType:
        return cls(name=name)

    @classmethod
    def array_of(cls, element: DataType) -> DataType:
        return cls(name=element.name, is_array=True, element=element)

    @classmethod
    def enum(cls, name: str, values: list[str] | tuple[str, ...]) -> DataType:
        return cls(name=name, is_enum=True, enum_values=tuple(values))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DataType):
            return NotImplemented
        return (self.name, self.is_array) == (other.name, other.is_array)

    def __hash__(self) -> int:
        return hash((self.name, self.is_array))

    def __str__(self) -> str:
        return f"{self.name}[]" if self.is_array else self.name


class Column(ConfigBaseModel):
    """Column of a table as reported by the catalog."""

    model_config = ConfigDict(frozen=True)

    name: str
    data_type: DataType
    nullable: bool = True
    ordinal_position: int


class Table(ConfigBaseModel):
    """Table (or view) with its columns in catalog order."""

    model_config = ConfigDict(frozen=True)

    name: str
    schema_name: str
    oid: int | None = None
    columns: tuple[Column, ...] = ()

    def column(self, name: str) -> Column | None:
        return next((c for c in self.columns if c.name == name), None)

    def column_at(self, ordinal_position: int) -> Column | None:
        """Find a column by its attribute number."""
        return next(
            (c for c in self.columns if c.ordinal_position == ordinal_position), None
        )


class Schema(ConfigBaseModel):
    """A Postgres schema (namespace) and its tables keyed by name."""

    model_config = ConfigDict(frozen=True)

    name: str
    tables: dict[str, Table] = Field(default_factory=dict)


class FunctionSignature(ConfigBaseModel):
    """Declared signature of one user function overload."""

    model_config = ConfigDict(frozen=True)

    name: str
    schema_name: str
    parameter_names: tuple[str | None, ...] = ()
    parameter_types: tuple[DataType, ...] = ()
    return_type: DataType
    returns_set: bool = False
    returns_composite: bool = False

    @property
    def arity(self) -> int:
        return len(self.parameter_types)


class DatabaseSchema(ConfigBaseModel):
    """Immutable point-in-time snapshot of the target database.

    Attributes:
        schemas: Schemas keyed by name, tables and columns in catalog order
        enums: Enum labels keyed by enum type name
        functions: Function overloads keyed by lower-cased function name
        types: Data types keyed by catalog OID, used to translate describe results
    """

    model_config = ConfigDict(frozen=True)

    schemas: dict[str, Schema] = Field(default_factory=dict)
    enums: dict[str, tuple[str, ...]] = Field(default_factory=dict)
    functions: dict[str, tuple[FunctionSignature, ...]] = Field(default_factory=dict)
    types: dict[int, DataType] = Field(default_factory=dict)

    def table(self, name: str, schema_name: str = "public") -> Table | None:
        schema = self.schemas.get(schema_name)
        if schema is None:
            return None
        return schema.tables.get(name)

    @cached_property
    def tables_by_oid(self) -> dict[int, Table]:
        return {
            t.oid: t
            for s in self.schemas.values()
            for t in s.tables.values()
            if t.oid is not None
        }

    def table_by_oid(self, oid: int) -> Table | None:
        return self.tables_by_oid.get(oid)

    def type_by_oid(self, oid: int) -> DataType | None:
        return self.types.get(oid)

    def lookup_functions(self, name: str) -> tuple[FunctionSignature, ...]:
        """Return every overload of a function, matching names case-insensitively."""
        return self.functions.get(name.lower(), ())


class ParameterInfo(ConfigBaseModel):
    """Metadata the database reports for one query placeholder.

    Attributes:
        position: 1-based placeholder position
        name: Original placeholder name when the query used ``@name`` syntax
        data_type: Type the database infers for the placeholder
    """

    model_config = ConfigDict(frozen=True)

    position: int
    name: str | None = None
    data_type: DataType

    @property
    def key(self) -> str:
        return self.name if self.name is not None else f"${self.position}"


class OutputColumn(ConfigBaseModel):
    """One result-set column reported for a query.

    ``from_table`` is set when the column maps directly onto a table column,
    in which case ``nullable`` is the table column's nullability.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    data_type: DataType
    nullable: bool = True
    from_table: bool = False


class QueryDescription(ConfigBaseModel):
    """Parameters and output columns of a query, in placeholder and column order."""

    model_config = ConfigDict(frozen=True)

    parameters: tuple[ParameterInfo, ...] = ()
    columns: tuple[OutputColumn, ...] = ()
