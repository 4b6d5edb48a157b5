"""PostgreSQL implementation of schema introspection and query description.

Key Components:
    - PostgresConnection: catalog introspection into a DatabaseSchema snapshot
    - QueryDescriber: prepare/describe round trips for query metadata
    - PostgresTypeMapper: type compatibility map for reader/writer functions

Example:
    >>> from sqlcheck.db.postgres import get_schema, QueryDescriber
    >>> schema = get_schema(config)
    >>> description = QueryDescriber(config).describe("SELECT * FROM users", schema)
"""

from .conn import PostgresConnection, get_schema
from .describe import QueryDescriber, describe
from .types import ExpectedFunctions, PostgresTypeMapper, expected

__all__ = [
    "ExpectedFunctions",
    "PostgresConnection",
    "PostgresTypeMapper",
    "QueryDescriber",
    "describe",
    "expected",
    "get_schema",
]
