"""
Db2 dialect: the async entry points used by the editor integration.

Every blocking driver interaction (pool checkout, statement execution, row
fetch, describe, pool dispose) runs in a worker thread through
``asyncio.to_thread``. Coroutines only await those calls.

``close()`` releases the whole session pool of the dialect, not the session of
one query. Callers sharing a dialect must not expect per-query isolation on
close.
"""
from __future__ import annotations

import asyncio
from typing import Any, Callable, List, Optional, Sequence, TypeVar

from db2_dialect.common.errors import (
    DriverError,
    ErrorCode,
    InvalidTableIdentifierError,
    MetadataShapeError,
)
from db2_dialect.common.logger import get_logger
from db2_dialect.driver.native import check_dependencies
from db2_dialect.driver.normalizer import driver_error_from_native
from db2_dialect.driver.pool import ConnectionPool
from db2_dialect.execution.executor import StatementExecutor
from db2_dialect.execution.statements import split_statements
from db2_dialect.metadata import mapper, queries as default_queries
from db2_dialect.models import (
    CatalogColumn,
    CatalogFunction,
    CatalogTable,
    Db2Credentials,
    QueryResult,
)

logger = get_logger(__name__)

T = TypeVar("T")


class Db2Dialect:
    """Executes SQL text and catalog lookups against one Db2 database.

    Args:
        credentials (Db2Credentials): Discrete connection fields or a
            pre-built connection string.
        driver (Optional[Any]): Object exposing the ``ibm_db`` functions.
            Defaults to importing ``ibm_db`` on first use.
        pool_size (Optional[int]): Session pool capacity. Defaults to
            ``settings.pool_max_size``.
    """

    queries = default_queries

    def __init__(
        self,
        credentials: Db2Credentials,
        driver: Optional[Any] = None,
        pool_size: Optional[int] = None,
    ) -> None:
        self.credentials = credentials
        self._driver = driver
        self._pool_size = pool_size
        self._pool: Optional[ConnectionPool] = None
        self._connection_string: Optional[str] = None
        self.connection: Optional[ConnectionPool] = None
        self._executor = StatementExecutor(self.connection_id)

    def __str__(self) -> str:
        return f"{self.connection_id} (DB2)"

    @property
    def connection_id(self) -> str:
        return self.credentials.connection_id

    @property
    def is_open(self) -> bool:
        return self.connection is not None

    def _get_pool(self) -> ConnectionPool:
        if self._pool is None:
            self._pool = ConnectionPool(driver=self._driver, max_size=self._pool_size)
        return self._pool

    @staticmethod
    async def _run_blocking(func: Callable[..., T], *args: Any) -> T:
        return await asyncio.to_thread(func, *args)

    def check_dependencies(self) -> None:
        """Raises MissingDependencyError when the native driver is absent."""
        if self._driver is None:
            check_dependencies()

    async def open(self) -> ConnectionPool:
        """Binds the dialect to its session pool. Idempotent."""
        if self.connection is not None:
            return self.connection
        self.check_dependencies()
        self._connection_string = self.credentials.build_connection_string()
        pool = self._get_pool()
        pool.prepare(self._connection_string)
        self.connection = pool
        logger.info(f"Opened dialect {self}.")
        return pool

    async def close(self) -> None:
        """Releases every session of this dialect. No-op when not open."""
        if self.connection is None:
            return
        pool = self.connection
        try:
            await self._run_blocking(pool.release_all)
        finally:
            self.connection = None
        logger.info(f"Closed dialect {self}.")

    def _run_batch(self, pool: ConnectionPool, statements: List[str]) -> List[QueryResult]:
        # Checkout and the batch share one worker thread
        session = pool.acquire(self._connection_string)
        return self._executor.execute_batch(session, statements)

    async def execute_statements(self, statements: Sequence[str]) -> List[QueryResult]:
        """Runs already-split statements as one batch on a fresh session."""
        pool = await self.open()
        return await self._run_blocking(self._run_batch, pool, list(statements))

    async def query(self, query: str) -> List[QueryResult]:
        """Splits ``query`` into statements and runs them in order.

        Returns:
            List[QueryResult]: One result per statement, in statement order.

        Raises:
            DriverError: A statement failed. No partial results are returned.
            DialectConnectionError: No session could be opened.
        """
        statements = split_statements(query)
        return await self.execute_statements(statements)

    async def test_connection(self) -> None:
        await self.query(self.queries.test_connection)

    async def _first_result_rows(self, sql: str) -> List[Any]:
        results = await self.query(sql)
        if not results:
            return []
        return results[0].results

    async def _fetch_catalog(self, sql: str, map_rows: Callable[[List[Any]], List[T]]) -> List[T]:
        rows = await self._first_result_rows(sql)
        try:
            return map_rows(rows)
        except MetadataShapeError as exc:
            logger.warning(f"Ignoring unreadable catalog rows for {self}: {exc}")
            return []

    async def get_tables(self) -> List[CatalogTable]:
        return await self._fetch_catalog(self.queries.fetch_tables, mapper.map_tables)

    async def get_columns(self) -> List[CatalogColumn]:
        return await self._fetch_catalog(self.queries.fetch_columns, mapper.map_columns)

    async def get_functions(self) -> List[CatalogFunction]:
        return await self._fetch_catalog(self.queries.fetch_functions, mapper.map_functions)

    def _current_database_name(self, pool: ConnectionPool) -> str:
        session = pool.acquire(self._connection_string)
        try:
            result = session.query_result(self.queries.current_database)
            if not result.fetch_mode:
                raise DriverError(driver_error_from_native(result), ErrorCode.STATEMENT_FAILED)
            rows = result.fetch_all()
            return rows[0].get("NAME", "") if rows else ""
        finally:
            session.close()

    def _describe(self, pool: ConnectionPool, schema: str, table: str) -> List[QueryResult]:
        database = self._current_database_name(pool)
        session = pool.acquire(self._connection_string)
        try:
            rows = session.describe(database, schema, table)
        finally:
            session.close()
        return [
            QueryResult(
                conn_id=self.connection_id,
                cols=list(rows[0].keys()) if rows else [],
                messages=[],
                query="describe",
                results=rows,
            )
        ]

    async def describe_table(self, prefixed_table: str) -> List[QueryResult]:
        """Describes the columns of ``schema.table`` with the native catalog call."""
        schema, _, table = prefixed_table.partition(".")
        if not schema or not table:
            raise InvalidTableIdentifierError(
                f"Expected a table identifier of the form 'schema.table', got '{prefixed_table}'"
            )
        pool = await self.open()
        return await self._run_blocking(self._describe, pool, schema, table)
