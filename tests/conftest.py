import threading

import pytest

from db2_dialect.models import Db2Credentials


class FakeStatement:
    def __init__(self, rows=None, num_fields=None, affected=0, sql=None):
        self.sql = sql
        self.rows = [dict(row) for row in (rows or [])]
        if num_fields is None:
            num_fields = len(self.rows[0]) if self.rows else 1
        self.fields = num_fields
        self.affected = affected
        self.freed = False
        self.stmt_freed = False


class FakeHandle:
    def __init__(self, dsn, number):
        self.dsn = dsn
        self.number = number
        self.closed = False


class FakeDb2Driver:
    """Stand-in for the ibm_db module, scripted per SQL text."""

    def __init__(self):
        self.read_results = {}
        self.read_fields = {}
        self.affected = {}
        self.raising = {}
        self.sentinel = {}
        self.describe_rows = []
        self.connect_error = None
        self.handles = []
        self.executed = []
        self.columns_calls = []
        self.fetch_calls = 0
        self.rollbacks = 0
        self.prepared = []
        self.rejected = {}
        self._last_error = ("", "")
        self._lock = threading.Lock()

    def connect(self, dsn, user, password):
        if self.connect_error is not None:
            raise self.connect_error
        with self._lock:
            handle = FakeHandle(dsn, len(self.handles))
            self.handles.append(handle)
        return handle

    def conn_error(self):
        return self._last_error[0]

    def conn_errormsg(self):
        return self._last_error[1]

    def _fails(self, sql):
        if sql in self.raising:
            raise self.raising[sql]
        if sql in self.sentinel:
            self._last_error = self.sentinel[sql]
            return True
        return False

    def exec_immediate(self, handle, sql):
        self.executed.append((handle.number, sql))
        if self._fails(sql):
            return False
        return FakeStatement(rows=self.read_results.get(sql, []), num_fields=self.read_fields.get(sql))

    def prepare(self, handle, sql):
        self.executed.append((handle.number, sql))
        if self._fails(sql):
            return False
        stmt = FakeStatement(affected=self.affected.get(sql, 0), sql=sql)
        self.prepared.append(stmt)
        return stmt

    def execute(self, stmt, params=None):
        if stmt.sql in self.rejected:
            self._last_error = self.rejected[stmt.sql]
            return False
        return True

    def num_rows(self, stmt):
        return stmt.affected

    def num_fields(self, stmt):
        return stmt.fields

    def fetch_assoc(self, stmt):
        self.fetch_calls += 1
        return stmt.rows.pop(0) if stmt.rows else False

    def columns(self, handle, qualifier=None, schema=None, table=None, column=None):
        self.columns_calls.append((handle.number, qualifier, schema, table))
        return FakeStatement(rows=self.describe_rows)

    def stmt_error(self, stmt=None):
        return self._last_error[0]

    def stmt_errormsg(self, stmt=None):
        return self._last_error[1]

    def free_result(self, stmt):
        stmt.freed = True
        return True

    def free_stmt(self, stmt):
        stmt.stmt_freed = True
        return True

    def rollback(self, handle):
        self.rollbacks += 1
        return True

    def close(self, handle):
        handle.closed = True
        return True

    @property
    def executed_sql(self):
        return [sql for _, sql in self.executed]


@pytest.fixture
def fake_driver():
    """Returns a fresh scripted ibm_db stand-in."""
    return FakeDb2Driver()


@pytest.fixture
def credentials():
    return Db2Credentials(
        name="local",
        server="db2.example.com",
        port=50000,
        database="SAMPLE",
        username="db2inst1",
        password="secret",
    )


@pytest.fixture
def connection_string(credentials):
    return credentials.build_connection_string()
