"""Analysis session: one schema snapshot, many operations.

A session introspects the database once, then analyzes any number of SQL
operations against that snapshot. Operations are independent, so batches are
analyzed concurrently; a semaphore caps the number of simultaneous describe
round trips at ``PostgresConfig.max_connections``.

Example:
    >>> session = AnalysisSession.open(PostgresConfig.from_env())
    >>> for op, diagnostics in zip(ops, session.analyze_all(ops)):
    ...     for d in diagnostics:
    ...         print(d)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from suthing import Timer

from sqlcheck.architecture.onto_sql import DatabaseSchema
from sqlcheck.architecture.operation import Diagnostic, SqlOperation
from sqlcheck.db.connection.onto import PostgresConfig
from sqlcheck.db.postgres.conn import get_schema
from sqlcheck.db.postgres.describe import CachingDescriber, Describer, QueryDescriber
from sqlcheck.errors import DatabaseConnectionError
from sqlcheck.onto import DiagnosticCode, Severity

from .analyzer import SemanticAnalyzer

logger = logging.getLogger(__name__)


class AnalysisSession:
    """Analyze SQL operations against one immutable schema snapshot.

    Attributes:
        config: PostgreSQL connection configuration
        schema: Schema snapshot shared by every analysis of the session
        describer: Describer that queries each distinct query text once
        analyzer: Semantic analyzer
    """

    def __init__(
        self,
        config: PostgresConfig,
        schema: DatabaseSchema,
        describer: Describer | None = None,
        analyzer: SemanticAnalyzer | None = None,
    ):
        self.config = config
        self.schema = schema
        self.describer = CachingDescriber(describer or QueryDescriber(config))
        self.analyzer = analyzer or SemanticAnalyzer()

    @classmethod
    def open(cls, config: PostgresConfig, **kwargs) -> AnalysisSession:
        """Introspect the database and start a session.

        Raises:
            DatabaseConnectionError: If the schema snapshot cannot be built
        """
        schema = get_schema(config)
        if isinstance(schema, DatabaseConnectionError):
            raise schema
        return cls(config, schema, **kwargs)

    def analyze(self, operation: SqlOperation) -> list[Diagnostic]:
        """Analyze a single operation."""
        return self.analyzer.analyze(operation, self.describer, self.schema)

    def _analyze_isolated(self, operation: SqlOperation) -> list[Diagnostic]:
        try:
            return self.analyze(operation)
        except Exception as e:
            logger.error(f"Analysis of query at {operation.range} failed: {e}", exc_info=True)
            return [
                Diagnostic(
                    severity=Severity.ERROR,
                    code=DiagnosticCode.ANALYSIS_FAILED,
                    message=f"Analysis failed: {e}",
                    range=operation.range,
                )
            ]

    async def analyze_all_async(
        self, operations: Iterable[SqlOperation]
    ) -> list[list[Diagnostic]]:
        """Analyze operations concurrently.

        Returns:
            Diagnostics per operation, in input order
        """
        operations = list(operations)
        semaphore = asyncio.Semaphore(max(1, self.config.max_connections))

        async def process(operation: SqlOperation) -> list[Diagnostic]:
            async with semaphore:
                return await asyncio.to_thread(self._analyze_isolated, operation)

        with Timer() as klepsidra:
            results = await asyncio.gather(*[process(op) for op in operations])
        n_diagnostics = sum(len(r) for r in results)
        logger.info(
            f"Analyzed {len(operations)} operations ({len(self.describer)} distinct queries), "
            f"{n_diagnostics} diagnostics in {klepsidra.elapsed:.1f} sec"
        )
        return results

    def analyze_all(self, operations: Iterable[SqlOperation]) -> list[list[Diagnostic]]:
        """Synchronous wrapper around ``analyze_all_async``."""
        return asyncio.run(self.analyze_all_async(operations))
