from __future__ import annotations

import time
import uuid
from typing import Any, List, Sequence

from db2_dialect.common.errors import DriverError, ErrorCode
from db2_dialect.common.logger import batch_context, get_logger
from db2_dialect.driver.normalizer import driver_error_from_native
from db2_dialect.execution.statements import is_mutating
from db2_dialect.models import QueryResult

logger = get_logger(__name__)


class StatementExecutor:
    """Runs an ordered batch of statements on one session.

    Statements run strictly one after another because a native session cannot
    take concurrent statements and later statements may depend on earlier
    ones. The first failure aborts the batch. The session is closed after the
    last statement or before the failure propagates, so it never outlives
    the batch.
    """

    def __init__(self, conn_id: str):
        self.conn_id = conn_id

    def execute_batch(self, session: Any, statements: Sequence[str]) -> List[QueryResult]:
        batch_id = uuid.uuid4().hex[:8]
        with batch_context(batch_id):
            start = time.perf_counter()
            results: List[QueryResult] = []
            try:
                for index, statement in enumerate(statements):
                    if is_mutating(statement):
                        results.append(self._run_mutating(session, statement))
                    else:
                        results.append(self._run_read(session, statement))
                    logger.debug(f"Statement {index + 1}/{len(statements)} done.")
            except Exception as exc:
                logger.warning(
                    f"Batch aborted at statement {len(results) + 1}/{len(statements)}: {exc}"
                )
                raise
            finally:
                session.close()
            duration = (time.perf_counter() - start) * 1000
            logger.info(f"Executed {len(results)} statement(s) in {duration:.1f} ms.")
            return results

    def _run_mutating(self, session: Any, statement: str) -> QueryResult:
        affected = session.execute_non_query(statement)
        return QueryResult(
            conn_id=self.conn_id,
            cols=[],
            messages=[f"{affected} rows were affected."],
            query=statement,
            results=[],
        )

    def _run_read(self, session: Any, statement: str) -> QueryResult:
        result = session.query_result(statement)
        if not result.fetch_mode:
            raise DriverError(driver_error_from_native(result), ErrorCode.STATEMENT_FAILED)
        rows = result.fetch_all()
        return QueryResult(
            conn_id=self.conn_id,
            cols=list(rows[0].keys()) if rows else [],
            messages=[],
            query=statement,
            results=rows,
        )
