import logging
import pathlib
import sys

import pytest
import typedquery as tq
from testcontainers.postgres import PostgresContainer

HERE = pathlib.Path(pathlib.Path(__file__).resolve()).parent
sys.path.insert(0, str(HERE.parent))
import config

from tests.fixtures.queries import POSTGRES_SCHEMA, stage_library

logger = logging.getLogger(__name__)


@pytest.fixture(scope='session')
def psql_docker(request):
    """Session-scoped PostgreSQL container using testcontainers.

    Testcontainers automatically:
    - Assigns a random available port
    - Waits for the database to be ready
    - Handles cleanup when the session ends

    Tests depending on it are skipped when Docker is not available.
    """
    container = PostgresContainer(
        image='postgres:16',
        username=config.postgresql['username'],
        password=config.postgresql['password'],
        dbname=config.postgresql['database'],
    ).with_env('TZ', 'US/Eastern').with_env('PGTZ', 'US/Eastern')

    try:
        container.start()
    except Exception as exc:
        pytest.skip(f'PostgreSQL container unavailable: {exc}')

    config.postgresql['hostname'] = container.get_container_host_ip()
    config.postgresql['port'] = int(container.get_exposed_port(5432))
    logger.info(f'PostgreSQL container started at '
                f'{config.postgresql["hostname"]}:{config.postgresql["port"]}')

    def finalizer():
        try:
            container.stop()
            logger.info('PostgreSQL container stopped')
        except Exception as e:
            logger.warning(f'Error stopping container: {e}')

    request.addfinalizer(finalizer)
    return container


def terminate_postgres_connections(cn):
    sql = """
select
    pg_terminate_backend(pg_stat_activity.pid)
from
    pg_stat_activity
where
    pg_stat_activity.datname = current_database()
    and pid <> pg_backend_pid()
"""
    try:
        cn.run(sql)
    except tq.DatabaseError as e:
        logger.warning(f'Failed to terminate connections: {e}')


@pytest.fixture
def pg_conn(psql_docker):
    """
    Client fixture with function scope for clean tests.
    Each test gets a fresh client with the library schema rebuilt.
    """
    cn = tq.connect(config.postgresql)
    stage_library(cn, POSTGRES_SCHEMA)
    yield cn
    if not cn.closed:
        if cn.in_transaction:
            cn.transaction.rollback()
        terminate_postgres_connections(cn)
        cn.close()


@pytest.fixture
def pg_open_client(psql_docker):
    """Factory for additional clients on the test database."""
    opened = []

    def open_client():
        cn = tq.connect(config.postgresql)
        opened.append(cn)
        return cn

    yield open_client
    for cn in opened:
        cn.close()
