import asyncio
from concurrent.futures import ThreadPoolExecutor

import pytest

from db2_dialect import (
    Db2Credentials,
    Db2Dialect,
    DriverError,
    InvalidTableIdentifierError,
    MissingDependencyError,
)
from db2_dialect.common import settings as settings_module
from db2_dialect.common.errors import DialectConnectionError
from db2_dialect.driver import native
from db2_dialect.metadata import queries

UNDEFINED_NAME = '"APP.NOPE" is an undefined name.  SQLSTATE=42704 SQLCODE=-204'


@pytest.fixture
def dialect(credentials, fake_driver):
    dialect = Db2Dialect(credentials, driver=fake_driver, pool_size=2)
    yield dialect
    asyncio.run(dialect.close())


def _checked_out(dialect):
    return sum(p["checked_out"] for p in dialect.connection.status().values())


class TestLifecycle:

    def test_close_without_open_is_a_no_op(self, dialect):
        asyncio.run(dialect.close())
        asyncio.run(dialect.close())

        assert dialect.is_open is False

    def test_open_then_close(self, dialect, fake_driver):
        asyncio.run(dialect.open())
        assert dialect.is_open is True

        asyncio.run(dialect.close())
        asyncio.run(dialect.close())

        assert dialect.is_open is False
        assert fake_driver.handles == []

    def test_open_is_idempotent(self, dialect):
        first = asyncio.run(dialect.open())
        second = asyncio.run(dialect.open())

        assert first is second

    def test_close_releases_pooled_sessions(self, dialect, fake_driver):
        asyncio.run(dialect.query("select 1 from sysibm.sysdummy1"))

        asyncio.run(dialect.close())

        assert all(handle.closed for handle in fake_driver.handles)

    def test_session_in_flight_during_close_is_closed_on_return(self, dialect, credentials, fake_driver):
        async def scenario():
            pool = await dialect.open()
            in_flight = pool.acquire(credentials.build_connection_string())
            await dialect.close()
            in_flight.close()

        asyncio.run(scenario())

        assert [handle.closed for handle in fake_driver.handles] == [True]

    def test_failed_release_still_closes_the_dialect(self, dialect, monkeypatch):
        pool = asyncio.run(dialect.open())

        def broken_release():
            raise DialectConnectionError("Failed to close 1 Db2 session pool(s)")

        monkeypatch.setattr(pool, "release_all", broken_release)

        with pytest.raises(DialectConnectionError):
            asyncio.run(dialect.close())
        assert dialect.is_open is False

    def test_missing_driver_is_reported_on_open(self, credentials, monkeypatch):
        monkeypatch.setattr(native, "DRIVER_PACKAGE", "ibm_db_not_installed_here")
        dialect = Db2Dialect(credentials)

        with pytest.raises(MissingDependencyError):
            asyncio.run(dialect.open())
        assert dialect.is_open is False


class TestQuery:

    def test_insert_then_select(self, dialect, fake_driver):
        fake_driver.affected["insert into t values (1)"] = 1
        fake_driver.read_results["select * from t"] = [{"id": 1}]

        results = asyncio.run(dialect.query("insert into t values (1);\nselect * from t"))

        assert [r.model_dump(include={"messages", "cols", "results"}) for r in results] == [
            {"messages": ["1 rows were affected."], "cols": [], "results": []},
            {"messages": [], "cols": ["id"], "results": [{"id": 1}]},
        ]
        assert results[0].conn_id == dialect.connection_id
        assert _checked_out(dialect) == 0

    def test_each_query_gets_its_own_session(self, dialect, fake_driver):
        asyncio.run(dialect.query("select 1 from sysibm.sysdummy1"))
        asyncio.run(dialect.query("select 2 from sysibm.sysdummy1"))

        assert _checked_out(dialect) == 0
        assert len(fake_driver.executed) == 2

    def test_failure_returns_no_partial_results(self, dialect, fake_driver):
        fake_driver.raising["select * from nope"] = Exception(UNDEFINED_NAME)

        with pytest.raises(DriverError) as exc_info:
            asyncio.run(dialect.query("select 1 from sysibm.sysdummy1; select * from nope"))

        assert exc_info.value.state == "42704"
        assert _checked_out(dialect) == 0

    def test_test_connection_runs_trivial_read(self, dialect, fake_driver):
        assert asyncio.run(dialect.test_connection()) is None
        assert fake_driver.executed_sql == [queries.test_connection]

    def test_exhausted_pool_queues_the_query(self, credentials, fake_driver):
        fake_driver.read_results["select * from t"] = [{"id": 1}]
        dialect = Db2Dialect(credentials, driver=fake_driver, pool_size=1)

        async def scenario():
            pool = await dialect.open()
            held = pool.acquire(credentials.build_connection_string())
            task = asyncio.create_task(dialect.query("select * from t"))
            await asyncio.sleep(0.2)
            assert not task.done()
            held.close()
            try:
                return await asyncio.wait_for(task, timeout=5)
            finally:
                await dialect.close()

        [result] = asyncio.run(scenario())

        assert result.results == [{"id": 1}]


    def test_more_concurrent_queries_than_worker_threads(self, credentials, fake_driver, monkeypatch):
        # A bounded wait turns a stalled checkout into an error instead of a hang
        monkeypatch.setattr(settings_module.settings, "pool_timeout_sec", 5.0)
        fake_driver.read_results["select * from t"] = [{"id": 1}]
        dialect = Db2Dialect(credentials, driver=fake_driver, pool_size=1)

        async def scenario():
            asyncio.get_running_loop().set_default_executor(ThreadPoolExecutor(max_workers=2))
            try:
                return await asyncio.gather(*(dialect.query("select * from t") for _ in range(3)))
            finally:
                await dialect.close()

        batches = asyncio.run(scenario())

        assert [result.results for [result] in batches] == [[{"id": 1}]] * 3
        assert len(fake_driver.handles) == 1

class TestCatalog:

    def test_get_columns(self, dialect, fake_driver):
        fake_driver.read_results[queries.fetch_columns.strip()] = [
            {"COLUMNNAME": "id", "ISNULLABLE": "NO", "KEYTYPE": "P", "Size": "10", "Type": "INTEGER"}
        ]

        [column] = asyncio.run(dialect.get_columns())

        assert column.model_dump(
            by_alias=True, include={"column_name", "is_nullable", "is_pk", "is_fk", "size", "type"}
        ) == {"columnName": "id", "isNullable": False, "isPk": True, "isFk": False, "size": 10, "type": "INTEGER"}

    def test_get_tables(self, dialect, fake_driver):
        fake_driver.read_results[queries.fetch_tables.strip()] = [
            {"TABLENAME": "ORDERS", "ISVIEW": 0, "NUMBEROFCOLUMNS": "4", "TABLESCHEMA": "APP"}
        ]

        [table] = asyncio.run(dialect.get_tables())

        assert table.name == "ORDERS"
        assert table.number_of_columns == 4

    def test_get_functions(self, dialect, fake_driver):
        fake_driver.read_results[queries.fetch_functions.strip()] = [
            {"NAME": "AGE", "DBSCHEMA": "APP", "ARGS": "DATE, DATE", "RESULTTYPE": "INTEGER"}
        ]

        [function] = asyncio.run(dialect.get_functions())

        assert function.args == ["DATE", "DATE"]

    def test_unreadable_catalog_rows_map_to_empty_list(self, dialect, fake_driver):
        fake_driver.read_results[queries.fetch_tables.strip()] = [{"ISVIEW": 0}]

        assert asyncio.run(dialect.get_tables()) == []

    def test_catalog_entities_are_not_cached(self, dialect, fake_driver):
        fake_driver.read_results[queries.fetch_tables.strip()] = [{"TABLENAME": "A"}]

        first = asyncio.run(dialect.get_tables())
        second = asyncio.run(dialect.get_tables())

        assert first == second
        assert first[0] is not second[0]


class TestDescribeTable:

    def test_describe_uses_current_database(self, dialect, fake_driver):
        fake_driver.read_results[queries.current_database] = [{"NAME": "SAMPLE"}]
        fake_driver.describe_rows = [
            {"TABLE_SCHEM": "APP", "TABLE_NAME": "T", "COLUMN_NAME": "ID", "TYPE_NAME": "INTEGER"}
        ]

        [result] = asyncio.run(dialect.describe_table("APP.T"))

        assert result.query == "describe"
        assert result.cols == ["TABLE_SCHEM", "TABLE_NAME", "COLUMN_NAME", "TYPE_NAME"]
        assert result.messages == []
        assert fake_driver.columns_calls[0][1:] == ("SAMPLE", "APP", "T")
        assert _checked_out(dialect) == 0

    def test_lookup_failure_skips_describe(self, dialect, fake_driver):
        fake_driver.sentinel[queries.current_database] = ("42704", UNDEFINED_NAME)

        with pytest.raises(DriverError):
            asyncio.run(dialect.describe_table("APP.T"))

        assert fake_driver.columns_calls == []
        assert _checked_out(dialect) == 0

    def test_identifier_needs_schema_and_table(self, dialect):
        with pytest.raises(InvalidTableIdentifierError):
            asyncio.run(dialect.describe_table("ORDERS"))


class TestCredentials:

    def test_connection_string_from_fields(self, credentials):
        assert credentials.build_connection_string() == (
            "database=SAMPLE;hostname=db2.example.com;port=50000;protocol=TCPIP;uid=db2inst1;pwd=secret"
        )

    def test_prebuilt_connection_string_wins(self):
        creds = Db2Credentials(server="ignored", connect_string="DSN=SAMPLE")

        assert creds.build_connection_string() == "DSN=SAMPLE"

    def test_connection_id(self, credentials):
        assert credentials.connection_id == "local|DB2|db2.example.com|SAMPLE"
        assert Db2Credentials(id="prod").connection_id == "prod"

    def test_password_is_not_echoed(self, credentials):
        assert "secret" not in repr(credentials)
