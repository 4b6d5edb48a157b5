"""Database access: connection configuration and the PostgreSQL implementation."""

from .connection import PostgresConfig
from .postgres import PostgresConnection, QueryDescriber, get_schema

__all__ = [
    "PostgresConfig",
    "PostgresConnection",
    "QueryDescriber",
    "get_schema",
]
