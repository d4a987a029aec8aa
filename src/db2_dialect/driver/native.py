"""Thin object wrapper over the ``ibm_db`` module-level API.

``ibm_db`` exposes C functions operating on opaque handles. The pool and the
executor want connection and cursor objects, so this module binds the handles
to the few calls the dialect needs and turns both of the driver's failure
styles (raised ``Exception`` and ``False`` return values) into ``DriverError``.
"""
import importlib
import importlib.util
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from db2_dialect.common.errors import DialectError, DriverError, ErrorCode, MissingDependencyError
from db2_dialect.common.logger import get_logger
from db2_dialect.driver.normalizer import driver_error_from_native, row_to_mapping

logger = get_logger(__name__)

DRIVER_PACKAGE = "ibm_db"
DRIVER_VERSION = "3.2.0"


def load_driver() -> Any:
    """Imports the ibm_db module on first use."""
    try:
        return importlib.import_module(DRIVER_PACKAGE)
    except ImportError as exc:
        raise MissingDependencyError(DRIVER_PACKAGE, DRIVER_VERSION) from exc


def check_dependencies() -> None:
    """Raises MissingDependencyError when ibm_db is not installed."""
    if importlib.util.find_spec(DRIVER_PACKAGE) is None:
        raise MissingDependencyError(DRIVER_PACKAGE, DRIVER_VERSION)


@contextmanager
def _native_call(error_code: ErrorCode):
    try:
        yield
    except DialectError:
        raise
    except Exception as exc:
        raise DriverError(driver_error_from_native(exc), error_code) from exc


class NativeResult:
    """Row cursor over an ibm_db statement handle.

    A result created from a falsy handle has no fetch mode; it carries the
    driver's error fields instead of rows.
    """

    def __init__(
        self,
        driver: Any,
        stmt: Any,
        error: Optional[str] = None,
        sqlcode: Optional[int] = None,
        message: Optional[str] = None,
        state: Optional[str] = None,
    ):
        self._driver = driver
        self._stmt = stmt
        self._num_fields: Optional[int] = None
        self.error = error
        self.sqlcode = sqlcode
        self.message = message
        self.state = state

    @property
    def fetch_mode(self) -> bool:
        return bool(self._stmt)

    def _has_columns(self) -> bool:
        if self._num_fields is None:
            with _native_call(ErrorCode.FETCH_FAILED):
                self._num_fields = self._driver.num_fields(self._stmt) or 0
        return self._num_fields > 0

    def fetch_row(self) -> Optional[Dict[str, Any]]:
        """Returns the next row, or None once the cursor is exhausted."""
        if not self.fetch_mode or not self._has_columns():
            return None
        with _native_call(ErrorCode.FETCH_FAILED):
            row = self._driver.fetch_assoc(self._stmt)
        if not row:
            return None
        return row_to_mapping(row)

    def fetch_all(self) -> List[Dict[str, Any]]:
        rows = []
        try:
            row = self.fetch_row()
            while row is not None:
                rows.append(row)
                row = self.fetch_row()
        finally:
            self.close()
        return rows

    def close(self) -> None:
        if not self.fetch_mode:
            return
        stmt, self._stmt = self._stmt, None
        try:
            self._driver.free_result(stmt)
        except Exception as exc:
            logger.debug(f"Ignoring failure while freeing statement: {exc}")


class NativeConnection:
    """One open ibm_db connection handle."""

    def __init__(self, driver: Any, handle: Any):
        self._driver = driver
        self._handle = handle

    @classmethod
    def open(cls, driver: Any, connection_string: str) -> "NativeConnection":
        # Credentials travel inside the connection string
        handle = driver.connect(connection_string, "", "")
        if not handle:
            raise DriverError(
                driver_error_from_native(
                    {"state": driver.conn_error(), "message": driver.conn_errormsg()}
                ),
                ErrorCode.CONNECTION_FAILED,
            )
        return cls(driver, handle)

    def _statement_error(self, stmt: Any = None) -> Dict[str, Any]:
        args = (stmt,) if stmt else ()
        return {
            "error": "SQLError",
            "state": self._driver.stmt_error(*args),
            "message": self._driver.stmt_errormsg(*args),
        }

    def query_result(self, sql: str) -> NativeResult:
        """Runs ``sql`` immediately and returns its cursor.

        A failure reported through the ``False`` return value comes back as a
        NativeResult without fetch mode; raised failures become DriverError.
        """
        with _native_call(ErrorCode.STATEMENT_FAILED):
            stmt = self._driver.exec_immediate(self._handle, sql)
            if not stmt:
                return NativeResult(self._driver, None, **self._statement_error())
        return NativeResult(self._driver, stmt)

    def execute_non_query(self, sql: str) -> int:
        """Prepares and executes ``sql``; returns the affected-row count."""
        with _native_call(ErrorCode.STATEMENT_FAILED):
            stmt = self._driver.prepare(self._handle, sql)
            if not stmt:
                raise DriverError(
                    driver_error_from_native(self._statement_error()), ErrorCode.STATEMENT_FAILED
                )
            try:
                if not self._driver.execute(stmt):
                    raise DriverError(
                        driver_error_from_native(self._statement_error(stmt)), ErrorCode.STATEMENT_FAILED
                    )
                return self._driver.num_rows(stmt)
            finally:
                self._free_statement(stmt)

    def _free_statement(self, stmt: Any) -> None:
        try:
            self._driver.free_stmt(stmt)
        except Exception as exc:
            logger.debug(f"Ignoring failure while freeing statement: {exc}")

    def describe(self, database: Optional[str], schema: str, table: str) -> List[Dict[str, Any]]:
        """Reads the column catalog of one table in a single driver call."""
        with _native_call(ErrorCode.DESCRIBE_FAILED):
            stmt = self._driver.columns(self._handle, database or None, schema, table)
            if not stmt:
                raise DriverError(
                    driver_error_from_native(self._statement_error()), ErrorCode.DESCRIBE_FAILED
                )
        return NativeResult(self._driver, stmt).fetch_all()

    def rollback(self) -> None:
        self._driver.rollback(self._handle)

    def close(self) -> None:
        self._driver.close(self._handle)
