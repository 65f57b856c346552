"""
Connection settings for the test suite.

PostgreSQL host and port are filled in by the container fixture.
"""
postgresql = {
    'drivername': 'postgresql',
    'hostname': 'localhost',
    'username': 'postgres',
    'password': 'postgres',
    'database': 'test_db',
    'port': 5432,
    'timeout': 30,
    'appname': 'typedquery-tests',
    'use_pool': False,
    'pool_max_connections': 1,
    'pool_max_idle_time': 600,
    'pool_wait_timeout': 30,
}

sqlite = {
    'drivername': 'sqlite',
    'database': ':memory:',
    'use_pool': False,
}
