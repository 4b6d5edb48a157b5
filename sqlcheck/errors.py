"""Error taxonomy of the analyzer.

- DatabaseConnectionError: the database cannot be reached, authenticated to or
  its catalogs cannot be read. Fatal to the whole analysis session.
- DescribeError: one query could not be compiled by the database. Scoped to the
  operation that produced it and reported as a single diagnostic.

Both are returned as values by the introspector and the describer; only the
analysis session raises DatabaseConnectionError, to its own caller.
"""


class SqlCheckError(Exception):
    """Base class for analyzer errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SqlCheckError):
            return NotImplemented
        return type(self) is type(other) and self.message == other.message

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.message))


class DatabaseConnectionError(SqlCheckError):
    """Cannot reach, authenticate to, or read catalogs from the database."""


class DescribeError(SqlCheckError):
    """The database rejected a query during the prepare/describe round trip.

    Attributes:
        message: Server-reported error text
        query: Query text as sent to the database (placeholders rewritten)
        sqlstate: SQLSTATE code, when the server provided one
    """

    def __init__(self, message: str, query: str | None = None, sqlstate: str | None = None):
        super().__init__(message)
        self.query = query
        self.sqlstate = sqlstate
