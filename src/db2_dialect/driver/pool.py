"""
Bounded pool of native Db2 sessions.

Wraps one ``sqlalchemy.pool.QueuePool`` per connection string. Checkout blocks
once ``max_size`` sessions are out, and ``release_all`` tears every pool down at
once: there is no operation that closes a single session for good. Closing a
checked-out session only returns it to its pool, after a rollback. A session
still checked out when its pool is released is closed once it comes back.
"""
from __future__ import annotations

import threading
from typing import Any, Callable, Dict, Optional

from sqlalchemy import event, exc as sa_exc
from sqlalchemy.pool import PoolProxiedConnection, QueuePool

from db2_dialect.common.errors import DialectConnectionError, DialectError, ErrorCode
from db2_dialect.common.logger import get_logger
from db2_dialect.common.settings import settings
from db2_dialect.driver.native import NativeConnection, load_driver
from db2_dialect.driver.normalizer import driver_error_from_native

logger = get_logger(__name__)


def _close_on_checkin_after(disposed: threading.Event):
    """Returns a checkin listener closing sessions handed back to a disposed pool."""
    def on_checkin(dbapi_connection, connection_record):
        if disposed.is_set() and dbapi_connection is not None:
            connection_record.close()
    return on_checkin


class ConnectionPool:
    """Manages the native session pools of one dialect instance."""

    def __init__(
        self,
        driver: Optional[Any] = None,
        max_size: Optional[int] = None,
        timeout: Optional[float] = None,
        driver_loader: Callable[[], Any] = load_driver,
    ) -> None:
        self._driver = driver
        self._driver_loader = driver_loader
        self.max_size = max_size or settings.pool_max_size
        self.timeout = timeout if timeout is not None else settings.pool_timeout_sec
        self._pools: Dict[str, QueuePool] = {}
        self._disposed: Dict[str, threading.Event] = {}
        self._lock = threading.Lock()

    @property
    def driver(self) -> Any:
        if self._driver is None:
            self._driver = self._driver_loader()
        return self._driver

    def _get_pool(self, connection_string: str) -> QueuePool:
        with self._lock:
            pool = self._pools.get(connection_string)
            if pool is None:
                driver = self.driver
                logger.info(f"Creating Db2 session pool (max_size={self.max_size}).")
                pool = QueuePool(
                    lambda: NativeConnection.open(driver, connection_string),
                    pool_size=self.max_size,
                    max_overflow=0,
                    # sqlalchemy's Queue.get waits indefinitely on a None timeout
                    timeout=self.timeout,
                )
                disposed = threading.Event()
                # QueuePool.dispose only closes checked-in sessions
                event.listen(pool, "checkin", _close_on_checkin_after(disposed))
                self._disposed[connection_string] = disposed
                self._pools[connection_string] = pool
            return pool

    def prepare(self, connection_string: str) -> None:
        """Creates the pool for ``connection_string`` without opening a session."""
        self._get_pool(connection_string)

    def acquire(self, connection_string: str) -> PoolProxiedConnection:
        """Checks out a session, blocking while the pool is at capacity.

        Raises:
            DialectConnectionError: The native open call failed, or no session
                was returned to the pool within the configured timeout.
        """
        pool = self._get_pool(connection_string)
        try:
            return pool.connect()
        except sa_exc.TimeoutError as exc:
            raise DialectConnectionError(
                f"No Db2 session became available within {self.timeout}s "
                f"(pool size {self.max_size}).",
                error_code=ErrorCode.POOL_EXHAUSTED,
            ) from exc
        except DialectError as exc:
            raise DialectConnectionError(
                f"Could not open a Db2 session: {exc}", getattr(exc, "info", None)
            ) from exc
        except Exception as exc:
            info = driver_error_from_native(exc)
            raise DialectConnectionError(f"Could not open a Db2 session: {info.message}", info) from exc

    def release_all(self) -> None:
        """Disposes every pool. Safe to call repeatedly."""
        with self._lock:
            pools, self._pools = self._pools, {}
            disposed, self._disposed = self._disposed, {}
        if not pools:
            return
        logger.info(f"Closing {len(pools)} Db2 session pool(s).")
        failures = []
        for connection_string, pool in pools.items():
            disposed[connection_string].set()
            try:
                pool.dispose()
            except Exception as exc:
                failures.append(exc)
        if failures:
            info = driver_error_from_native(failures[0])
            raise DialectConnectionError(
                f"Failed to close {len(failures)} Db2 session pool(s): {info.message}", info
            ) from failures[0]

    def status(self) -> Dict[str, Dict[str, int]]:
        """Checked-in/checked-out counters per pool, keyed by pool index."""
        with self._lock:
            pools = list(self._pools.values())
        return {
            f"pool_{index}": {
                "size": pool.size(),
                "checked_in": pool.checkedin(),
                "checked_out": pool.checkedout(),
            }
            for index, pool in enumerate(pools)
        }
