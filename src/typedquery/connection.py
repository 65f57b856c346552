"""
Database connections with SQLAlchemy.

This module provides:
1. The `connect()` function for opening a `Client`
2. The `Client` class, a direct execution target wrapping one DBAPI connection
3. Engine creation and management through a thread-safe registry

A client runs each statement in autocommit mode. While a transaction begun
from the client is open, statements must go through the transaction.
"""
import atexit
import logging
import threading
import weakref
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any, Self

import sqlalchemy as sa
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool

from typedquery.cursor import Cursor, RawResult
from typedquery.exceptions import DriverError, TransactionStateError
from typedquery.exceptions import TransportError
from typedquery.options import DatabaseOptions, load_options
from typedquery.strategy import DatabaseStrategy, get_strategy
from typedquery.utils import get_dialect_name, get_raw_connection

if TYPE_CHECKING:
    from typedquery.transaction import Transaction

__all__ = [
    'Client',
    'connect',
    'create_url_from_options',
    'get_engine_for_options',
    'dispose_all_engines',
]

logger = logging.getLogger(__name__)

_engine_registry: dict[str, Engine] = {}
_engine_registry_lock = threading.RLock()


def create_url_from_options(options: DatabaseOptions) -> sa.URL:
    """Convert DatabaseOptions to SQLAlchemy URL.
    """
    return get_strategy(options.drivername).build_connection_url(options)


def get_engine_for_options(options: DatabaseOptions,
                           engine_factory: Callable[..., Engine] = sa.create_engine,
                           **kwargs: Any) -> Engine:
    """Get or create a SQLAlchemy engine for the given options.

    Engines are keyed by the options (password included) so that clients with
    identical settings share a pool.
    """
    key = f'{options.drivername}:{create_url_from_options(options).render_as_string(hide_password=False)}' \
          f':{options.use_pool}:{options.pool_max_connections}:{options.pool_max_idle_time}' \
          f':{options.pool_wait_timeout}'

    with _engine_registry_lock:
        if key in _engine_registry:
            logger.debug(f'Using existing engine for {options.drivername}')
            return _engine_registry[key]

        url = create_url_from_options(options)
        engine_kwargs: dict[str, Any] = {'echo': False}
        engine_kwargs.update(get_strategy(options.drivername).get_engine_kwargs(options))

        if not options.use_pool:
            engine_kwargs['poolclass'] = NullPool
        else:
            engine_kwargs['pool_size'] = options.pool_max_connections
            engine_kwargs['pool_recycle'] = options.pool_max_idle_time
            engine_kwargs['pool_timeout'] = options.pool_wait_timeout
            engine_kwargs['max_overflow'] = 10
            engine_kwargs['pool_pre_ping'] = True
            engine_kwargs['pool_reset_on_return'] = 'rollback'

        engine_kwargs.update(kwargs)
        engine = engine_factory(url, **engine_kwargs)

        _engine_registry[key] = engine
        logger.debug(f'Created new engine for {options.drivername}')

        return engine


def dispose_all_engines() -> None:
    """Dispose all engines in the registry.
    """
    with _engine_registry_lock:
        for engine in list(_engine_registry.values()):
            engine.dispose()
        _engine_registry.clear()
        logger.debug('All database engines disposed')


atexit.register(dispose_all_engines)


class Client:
    """Direct execution target over one database connection.

    Tracks statement count and execution time. Supports the context manager
    protocol; leaving the block closes the connection (rolling back any
    transaction still open).
    """

    def __init__(self, dbapi_connection: Any, dialect: str,
                 sa_connection: sa.engine.Connection | None = None,
                 options: DatabaseOptions | None = None) -> None:
        self.dbapi_connection = dbapi_connection
        self.sa_connection = sa_connection
        self.engine = sa_connection.engine if sa_connection is not None else None
        self.options = options
        self.calls = 0
        self.time = 0.0
        self._dialect = dialect
        self._strategy = get_strategy(dialect)
        self._transaction: weakref.ref | None = None
        self._failure: BaseException | None = None
        self._closed = False

    @classmethod
    def from_dbapi(cls, connection: Any, options: DatabaseOptions | None = None) -> Self:
        """Wrap an existing psycopg or sqlite3 connection.

        The connection is reconfigured for autocommit operation.
        """
        raw_conn = get_raw_connection(connection)
        dialect = get_dialect_name(raw_conn)
        get_strategy(dialect).configure_connection(raw_conn)
        logger.debug(f'Wrapped existing {dialect} connection')
        return cls(raw_conn, dialect, options=options)

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None,
                 exc_tb: Any | None) -> None:
        self.close()

    def __repr__(self) -> str:
        state = 'closed' if self._closed else 'open'
        return f'<Client {self._dialect} {state} calls={self.calls}>'

    @property
    def dialect(self) -> str:
        """Return the dialect name ('postgresql' or 'sqlite')."""
        return self._dialect

    @property
    def strategy(self) -> DatabaseStrategy:
        return self._strategy

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def transaction(self) -> 'Transaction | None':
        """The open transaction begun from this client, if any."""
        tx = self._transaction() if self._transaction is not None else None
        if tx is not None and tx.is_open:
            return tx
        return None

    @property
    def in_transaction(self) -> bool:
        return self.transaction is not None

    def addcall(self, elapsed: float) -> None:
        """Track execution statistics
        """
        self.time += elapsed
        self.calls += 1

    def cursor(self) -> Cursor:
        """Get a wrapped cursor for this connection
        """
        return Cursor(self._strategy.cursor(self.dbapi_connection), self)

    def check_usable(self) -> None:
        """Raise if the client cannot accept new work.

        A failed rollback, of a discarded transaction or after a failed commit,
        leaves the connection in an unknown state; it is reported once, on the
        next use.
        """
        if self._closed:
            raise TransactionStateError('Client is closed')
        if self._failure is not None:
            failure, self._failure = self._failure, None
            raise TransactionStateError('Rollback of a transaction failed; '
                                        'connection state is unknown') from failure

    def run(self, statement: str, params: Sequence[Any] = ()) -> RawResult:
        """Run a statement in autocommit mode.

        Raises
            TransactionStateError: If a transaction is open on this client
            TransportError: If the driver fails
        """
        self.check_usable()
        if self.in_transaction:
            raise TransactionStateError('Client has an open transaction; run statements through it')
        return self.execute(statement, params)

    def execute(self, statement: str, params: Sequence[Any]) -> RawResult:
        """Translate placeholders, execute, and drain the result.

        Driver exceptions are re-raised as TransportError.
        """
        cursor = None
        try:
            prepared = self._strategy.prepare(statement)
            args = prepared.arrange(params)
            cursor = self.cursor()
            cursor.execute(prepared.sql, args)
            return cursor.result()
        except DriverError as exc:
            raise TransportError(f'{type(exc).__name__}: {exc}') from exc
        finally:
            if cursor is not None:
                _close_quietly(cursor)

    def begin(self) -> 'Transaction':
        """Start a unit of work on this connection.

        Raises
            TransactionStateError: If a transaction is already open
        """
        from typedquery.transaction import Transaction
        return Transaction(self)

    def attach(self, tx: 'Transaction') -> None:
        if self.in_transaction:
            raise TransactionStateError('Nested transactions are not supported')
        self._transaction = weakref.ref(tx)

    def detach(self) -> None:
        self._transaction = None

    def record_failure(self, exc: BaseException) -> None:
        self._failure = exc

    def close(self) -> None:
        """Close the connection, rolling back any open transaction first.
        """
        if self._closed:
            return
        tx = self.transaction
        if tx is not None:
            logger.warning('Closing client with an open transaction; rolling back')
        try:
            if tx is not None:
                tx.rollback()
        finally:
            self._closed = True
            if self.sa_connection is not None:
                self.sa_connection.close()
            else:
                self.dbapi_connection.close()
        logger.debug(f'Connection closed: {self.calls} queries in {self.time:.2f}s '
                     f'(avg: {self.time/max(1, self.calls):.3f}s per query)')


def _close_quietly(cursor: Cursor) -> None:
    try:
        cursor.close()
    except DriverError as exc:
        logger.debug(f'Error closing cursor: {exc}')


def connect(options: DatabaseOptions | dict | None = None, **kwargs: Any) -> Client:
    """Open a client for the given options.

    Uses a shared SQLAlchemy engine per distinct options (NullPool unless
    `use_pool` is set) and configures the checked-out connection for
    autocommit operation.

    Raises
        TransportError: If the connection cannot be established
    """
    options = load_options(options, **kwargs)
    engine = get_engine_for_options(options)
    try:
        sa_connection = engine.connect()
    except DriverError as exc:
        raise TransportError(f'Could not connect to {options.drivername}: {exc}') from exc

    raw_conn = get_raw_connection(sa_connection.connection)
    strategy = get_strategy(options.drivername)
    strategy.configure_connection(raw_conn)
    logger.debug(f'Connected to {options.drivername} database {options.database}')
    return Client(raw_conn, strategy.dialect_name, sa_connection=sa_connection, options=options)
