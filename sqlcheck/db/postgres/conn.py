"""PostgreSQL connection implementation for schema introspection.

This module reads the system catalogs of the target database and builds the
immutable DatabaseSchema snapshot that every analysis of a session shares.

Key Features:
    - Connection management using psycopg2 (read-only, autocommit session)
    - Type registry built from pg_type: arrays resolved through typelem,
      domains through typbasetype, enums through pg_enum
    - Tables, views and their columns from pg_attribute, in catalog order
    - User function signatures from pg_proc

Example:
    >>> from sqlcheck.db.postgres import PostgresConnection
    >>> from sqlcheck.db.connection import PostgresConfig
    >>> config = PostgresConfig.from_env()
    >>> with PostgresConnection(config) as conn:
    ...     schema = conn.introspect_schema()
    >>> schema.table("users").columns
"""

import logging
from collections import defaultdict
from typing import Any

import psycopg2
from psycopg2.extras import RealDictCursor
from suthing import Timer

from sqlcheck.architecture.onto_sql import (
    Column,
    DatabaseSchema,
    DataType,
    FunctionSignature,
    Schema,
    Table,
)
from sqlcheck.db.connection.onto import PostgresConfig
from sqlcheck.errors import DatabaseConnectionError

from .types import PostgresTypeMapper

logger = logging.getLogger(__name__)

SYSTEM_SCHEMA_FILTER = """
    n.nspname NOT IN ('pg_catalog', 'information_schema')
    AND n.nspname !~ '^pg_toast'
    AND n.nspname !~ '^pg_temp'
"""

# Argument modes that appear in pg_proc.proargtypes
INPUT_ARG_MODES = ("i", "b", "v")


class PostgresConnection:
    """PostgreSQL connection for schema introspection.

    Attributes:
        config: PostgreSQL connection configuration
        conn: psycopg2 connection instance
    """

    def __init__(self, config: PostgresConfig):
        """Open a read-only connection.

        Args:
            config: PostgreSQL connection configuration

        Raises:
            psycopg2.Error: If the server cannot be reached or rejects the login
        """
        self.config = config
        try:
            self.conn = psycopg2.connect(config.to_dsn())
            self.conn.set_session(readonly=True, autocommit=True)
            logger.info(f"Successfully connected to PostgreSQL database '{config}'")
        except psycopg2.Error as e:
            logger.error(f"Failed to connect to PostgreSQL: {e}", exc_info=True)
            raise

    def read(self, query: str, params: tuple | None = None) -> list[dict[str, Any]]:
        """Execute a catalog query and return rows as dictionaries.

        Args:
            query: SQL SELECT query to execute
            params: Optional tuple of parameters for parameterized queries

        Returns:
            List of dictionaries keyed by column name, in result order
        """
        with self.conn.cursor(cursor_factory=RealDictCursor) as cursor:
            if params:
                cursor.execute(query, params)
            else:
                cursor.execute(query)
            return [dict(row) for row in cursor.fetchall()]

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, exc_traceback):
        self.close()
        return False

    def close(self):
        """Close the PostgreSQL connection."""
        if hasattr(self, "conn") and self.conn:
            try:
                self.conn.close()
                logger.debug("PostgreSQL connection closed")
            except psycopg2.Error as e:
                logger.warning(
                    f"Error closing PostgreSQL connection: {e}", exc_info=True
                )

    def get_schema_names(self) -> list[str]:
        """Get all non-system schema names."""
        query = f"""
            SELECT n.nspname AS schema_name
            FROM pg_catalog.pg_namespace n
            WHERE {SYSTEM_SCHEMA_FILTER}
            ORDER BY n.nspname;
        """
        return [row["schema_name"] for row in self.read(query)]

    def get_types(self) -> list[dict[str, Any]]:
        """Get every type known to the database.

        Returns:
            List of dictionaries with keys:
            oid, name, typtype, typcategory, typelem, typbasetype
        """
        query = """
            SELECT
                t.oid,
                pg_catalog.format_type(t.oid, NULL) AS name,
                t.typtype,
                t.typcategory,
                t.typelem,
                t.typbasetype
            FROM pg_catalog.pg_type t
            ORDER BY t.oid;
        """
        return self.read(query)

    def get_enums(self) -> dict[int, list[str]]:
        """Get enum labels in declaration order keyed by enum type OID."""
        query = """
            SELECT e.enumtypid AS oid, e.enumlabel AS label
            FROM pg_catalog.pg_enum e
            ORDER BY e.enumtypid, e.enumsortorder;
        """
        labels: dict[int, list[str]] = defaultdict(list)
        for row in self.read(query):
            labels[row["oid"]].append(row["label"])
        return dict(labels)

    def get_tables(self, schema_name: str | None = None) -> list[dict[str, Any]]:
        """Get tables, views, materialized views and foreign tables.

        Args:
            schema_name: Restrict to one schema; all non-system schemas if None

        Returns:
            List of dictionaries with keys: table_oid, table_name, table_schema
        """
        query = f"""
            SELECT
                c.oid AS table_oid,
                c.relname AS table_name,
                n.nspname AS table_schema
            FROM pg_catalog.pg_class c
            JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
            WHERE c.relkind IN ('r', 'v', 'm', 'p', 'f')
              AND {SYSTEM_SCHEMA_FILTER}
              AND (%s::text IS NULL OR n.nspname = %s::text)
            ORDER BY n.nspname, c.relname;
        """
        return self.read(query, (schema_name, schema_name))

    def get_table_columns(
        self, table_name: str | None = None, schema_name: str | None = None
    ) -> list[dict[str, Any]]:
        """Get columns with their type OIDs and nullability.

        Args:
            table_name: Restrict to one table; all tables if None
            schema_name: Restrict to one schema; all non-system schemas if None

        Returns:
            List of dictionaries with keys: table_schema, table_oid, table_name,
            name, type_oid, ndims, nullable, ordinal_position
        """
        query = f"""
            SELECT
                n.nspname AS table_schema,
                c.oid AS table_oid,
                c.relname AS table_name,
                a.attname AS name,
                a.atttypid AS type_oid,
                a.attndims AS ndims,
                NOT a.attnotnull AS nullable,
                a.attnum AS ordinal_position
            FROM pg_catalog.pg_attribute a
            JOIN pg_catalog.pg_class c ON c.oid = a.attrelid
            JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
            WHERE c.relkind IN ('r', 'v', 'm', 'p', 'f')
              AND a.attnum > 0
              AND NOT a.attisdropped
              AND {SYSTEM_SCHEMA_FILTER}
              AND (%s::text IS NULL OR c.relname = %s::text)
              AND (%s::text IS NULL OR n.nspname = %s::text)
            ORDER BY n.nspname, c.relname, a.attnum;
        """
        return self.read(query, (table_name, table_name, schema_name, schema_name))

    def get_functions(self) -> list[dict[str, Any]]:
        """Get user function signatures.

        Returns:
            List of dictionaries with keys: schema_name, name, arg_types,
            arg_names, arg_modes, return_type, returns_set, return_typtype
        """
        query = f"""
            SELECT
                n.nspname AS schema_name,
                p.proname AS name,
                p.proargtypes::oid[] AS arg_types,
                p.proargnames AS arg_names,
                p.proargmodes::text[] AS arg_modes,
                p.prorettype AS return_type,
                p.proretset AS returns_set,
                rt.typtype AS return_typtype
            FROM pg_catalog.pg_proc p
            JOIN pg_catalog.pg_namespace n ON n.oid = p.pronamespace
            JOIN pg_catalog.pg_type rt ON rt.oid = p.prorettype
            WHERE p.prokind = 'f'
              AND {SYSTEM_SCHEMA_FILTER}
            ORDER BY n.nspname, p.proname, p.oid;
        """
        return self.read(query)

    def introspect_schema(self) -> DatabaseSchema:
        """Build the schema snapshot of the whole database.

        Returns:
            DatabaseSchema: Immutable snapshot of schemas, tables, columns,
            enums, functions and the OID type registry
        """
        with Timer() as klepsidra:
            types = self._build_type_registry()
            schemas = self._build_schemas(types)
            functions = self._build_functions(types)
            enums = {
                t.name: t.enum_values for t in types.values() if t.is_enum and not t.is_array
            }

        n_tables = sum(len(s.tables) for s in schemas.values())
        logger.info(
            f"Introspected {len(schemas)} schemas, {n_tables} tables, "
            f"{len(enums)} enums and {sum(len(f) for f in functions.values())} functions "
            f"in {klepsidra.elapsed:.2f} sec"
        )
        return DatabaseSchema(
            schemas=schemas, enums=enums, functions=functions, types=types
        )

    def _build_type_registry(self) -> dict[int, DataType]:
        rows = {row["oid"]: row for row in self.get_types()}
        enum_labels = self.get_enums()
        resolved: dict[int, DataType] = {}

        def resolve(oid: int, depth: int = 0) -> DataType:
            if oid in resolved:
                return resolved[oid]
            row = rows.get(oid)
            if row is None or depth > 16:
                return DataType.scalar("unknown")
            if row["typtype"] == "d" and row["typbasetype"]:
                data_type = resolve(row["typbasetype"], depth + 1)
            elif row["typcategory"] == "A" and row["typelem"]:
                data_type = DataType.array_of(resolve(row["typelem"], depth + 1))
            elif row["typtype"] == "e":
                data_type = DataType.enum(row["name"], enum_labels.get(oid, []))
            else:
                data_type = DataType.scalar(PostgresTypeMapper.canonical_name(row["name"]))
            resolved[oid] = data_type
            return data_type

        for oid in rows:
            resolve(oid)
        logger.debug(f"Resolved {len(resolved)} catalog types")
        return resolved

    def _build_schemas(self, types: dict[int, DataType]) -> dict[str, Schema]:
        columns_by_table: dict[tuple[str, str], list[Column]] = defaultdict(list)
        for row in self.get_table_columns():
            data_type = types.get(row["type_oid"], DataType.scalar("unknown"))
            if row["ndims"] and not data_type.is_array:
                data_type = DataType.array_of(data_type)
            columns_by_table[(row["table_schema"], row["table_name"])].append(
                Column(
                    name=row["name"],
                    data_type=data_type,
                    nullable=row["nullable"],
                    ordinal_position=row["ordinal_position"],
                )
            )

        tables: dict[str, dict[str, Table]] = {
            name: {} for name in self.get_schema_names()
        }
        for row in self.get_tables():
            key = (row["table_schema"], row["table_name"])
            tables.setdefault(row["table_schema"], {})[row["table_name"]] = Table(
                name=row["table_name"],
                schema_name=row["table_schema"],
                oid=row["table_oid"],
                columns=tuple(columns_by_table.get(key, [])),
            )
        return {
            name: Schema(name=name, tables=schema_tables)
            for name, schema_tables in tables.items()
        }

    def _build_functions(
        self, types: dict[int, DataType]
    ) -> dict[str, tuple[FunctionSignature, ...]]:
        unknown = DataType.scalar("unknown")
        functions: dict[str, list[FunctionSignature]] = defaultdict(list)
        for row in self.get_functions():
            arg_types = list(row["arg_types"] or [])
            arg_names = list(row["arg_names"] or [])
            arg_modes = list(row["arg_modes"] or [])
            if arg_modes:
                # proargnames covers every argument, proargtypes only the inputs
                arg_names = [
                    name
                    for name, mode in zip(arg_names, arg_modes)
                    if mode in INPUT_ARG_MODES
                ]
            arg_names = (arg_names + [None] * len(arg_types))[: len(arg_types)]
            functions[row["name"].lower()].append(
                FunctionSignature(
                    name=row["name"],
                    schema_name=row["schema_name"],
                    parameter_names=tuple(n or None for n in arg_names),
                    parameter_types=tuple(types.get(oid, unknown) for oid in arg_types),
                    return_type=types.get(row["return_type"], unknown),
                    returns_set=row["returns_set"],
                    returns_composite=row["return_typtype"] in ("c", "p"),
                )
            )
        return {name: tuple(overloads) for name, overloads in functions.items()}


def get_schema(config: PostgresConfig) -> DatabaseSchema | DatabaseConnectionError:
    """Connect and build the schema snapshot.

    Args:
        config: PostgreSQL connection configuration

    Returns:
        DatabaseSchema on success; DatabaseConnectionError when the server is
        unreachable, rejects the login, times out or denies catalog access.
        No partial snapshot is ever returned.
    """
    try:
        with PostgresConnection(config) as conn:
            return conn.introspect_schema()
    except psycopg2.Error as e:
        message = str(e).strip() or type(e).__name__
        logger.error(f"Schema introspection of {config} failed: {message}")
        return DatabaseConnectionError(message)
