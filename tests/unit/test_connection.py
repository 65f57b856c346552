"""
Unit tests for clients, engines and the cursor wrapper.
"""
import logging
import sqlite3

import pytest
import typedquery as tq
from sqlalchemy.pool import NullPool
from typedquery.connection import _engine_registry, create_url_from_options
from typedquery.connection import get_engine_for_options
from typedquery.options import DatabaseOptions


@pytest.fixture
def sqlite_options(tmp_path):
    return DatabaseOptions(drivername='sqlite', database=str(tmp_path / 'engine.db'))


class TestEngineRegistry:

    def test_engine_shared_per_options(self, sqlite_options):
        first = get_engine_for_options(sqlite_options)
        second = get_engine_for_options(DatabaseOptions(drivername='sqlite',
                                                        database=sqlite_options.database))
        assert first is second
        assert isinstance(first.pool, NullPool)
        tq.dispose_all_engines()

    def test_pool_settings(self, sqlite_options, mocker):
        factory = mocker.Mock()
        options = DatabaseOptions(drivername='sqlite', database=sqlite_options.database,
                                  use_pool=True, pool_max_connections=2)
        get_engine_for_options(options, engine_factory=factory)
        kwargs = factory.call_args.kwargs
        assert kwargs['pool_size'] == 2
        assert kwargs['pool_pre_ping'] is True
        assert 'poolclass' not in kwargs
        tq.dispose_all_engines()

    def test_dispose_all(self, sqlite_options):
        get_engine_for_options(sqlite_options)
        tq.dispose_all_engines()
        assert _engine_registry == {}

    def test_url(self, sqlite_options):
        assert create_url_from_options(sqlite_options).database == sqlite_options.database


class TestClient:

    def test_connect_and_run(self, sqlite_conn):
        result = sqlite_conn.run('select $1 + $2, $1', (2, 3))
        assert result.rows == [(5, 2)]
        assert len(result.columns) == 2

    def test_statistics(self, sqlite_conn):
        sqlite_conn.run('select 1')
        sqlite_conn.run('select 2')
        assert sqlite_conn.calls == 2
        assert sqlite_conn.time >= 0
        assert 'calls=2' in repr(sqlite_conn)

    def test_is_statement_runner(self, sqlite_conn):
        assert isinstance(sqlite_conn, tq.StatementRunner)
        tx = sqlite_conn.begin()
        assert isinstance(tx, tq.StatementRunner)
        tx.rollback()

    def test_driver_error_is_transport_error(self, sqlite_conn):
        with pytest.raises(tq.TransportError) as exc_info:
            sqlite_conn.run('select * from missing_table')
        assert isinstance(exc_info.value.__cause__, sqlite3.OperationalError)
        assert 'missing_table' in str(exc_info.value)

    def test_statement_errors_are_logged(self, sqlite_conn, caplog):
        with caplog.at_level(logging.ERROR, logger='typedquery.cursor'):
            with pytest.raises(tq.TransportError):
                sqlite_conn.run('selec 1')
        assert 'selec 1' in caplog.text

    def test_void_statement_result(self, sqlite_conn):
        sqlite_conn.run('create table t (x integer)')
        result = sqlite_conn.run('insert into t values ($1), ($2)', (1, 2))
        assert result.rows == []
        assert result.rowcount == 2

    def test_context_manager_closes(self):
        with tq.connect(drivername='sqlite', database=':memory:') as cn:
            assert not cn.closed
        assert cn.closed

    def test_from_dbapi(self):
        raw = sqlite3.connect(':memory:')
        cn = tq.Client.from_dbapi(raw)
        assert cn.dialect == 'sqlite'
        assert raw.isolation_level is None
        cn.close()

    def test_connect_failure(self, tmp_path):
        with pytest.raises(tq.TransportError, match='Could not connect to sqlite'):
            tq.connect(drivername='sqlite', database=str(tmp_path / 'missing' / 'x.db'))

    def test_module_begin(self, sqlite_conn):
        tx = tq.begin(sqlite_conn)
        assert sqlite_conn.transaction is tx
        tx.rollback()
