"""
Units of work.

A `Transaction` is an execution target bound to one client. It ends with an
explicit `commit()` or `rollback()`. If it is garbage collected, or its `with`
block exits, while still open, it is rolled back; nothing is ever committed
implicitly.

Examples
    tx = cn.begin()
    insert_book.bind(tx, 'The Great Gatsby')
    tx.commit()

    with transaction(cn) as tx:
        insert_book.bind(tx, 'Moby Dick')
        tx.commit()
"""
import enum
import logging
import weakref
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Self

from typedquery.cursor import RawResult
from typedquery.exceptions import DriverError, TransactionStateError
from typedquery.exceptions import TransportError

if TYPE_CHECKING:
    from typedquery.connection import Client

logger = logging.getLogger(__name__)


class TransactionState(enum.Enum):
    OPEN = 'open'
    COMMITTED = 'committed'
    ROLLED_BACK = 'rolled back'


def _rollback_discarded(client: 'Client', tx_id: int) -> None:
    """Roll back a transaction that was garbage collected while open.

    Runs from a weakref finalizer, so failures cannot propagate to a caller.
    They are recorded on the client and raised on its next use.
    """
    logger.warning(f'Transaction {tx_id:#x} discarded without commit; rolling back')
    try:
        client.strategy.rollback(client.dbapi_connection)
    except DriverError as exc:
        logger.error(f'Rollback of discarded transaction {tx_id:#x} failed: {exc}')
        client.record_failure(exc)
    finally:
        client.detach()


class Transaction:
    """Unit of work on a client's connection.

    Only one transaction may be open per client. While it is open the client
    refuses to run statements directly.

    Raises
        TransactionStateError: If the client already has an open transaction
        TransportError: If the driver cannot start the transaction
    """

    def __init__(self, client: 'Client') -> None:
        client.check_usable()
        if client.in_transaction:
            raise TransactionStateError('Nested transactions are not supported')

        self.client = client
        self.state = TransactionState.OPEN
        try:
            client.strategy.begin(client.dbapi_connection)
        except DriverError as exc:
            raise TransportError(f'Could not begin transaction: {exc}') from exc

        client.attach(self)
        # The callback must not reference self or the object is never collected
        self._finalizer = weakref.finalize(self, _rollback_discarded, client, id(self))
        logger.debug(f'Started transaction {id(self):#x} on {client.dialect}')

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None,
                 exc_tb: Any | None) -> None:
        if not self.is_open:
            return
        if exc_type is not None:
            logger.warning('Rolling back the current transaction')
        else:
            logger.debug(f'Transaction {id(self):#x} left without commit; rolling back')
        self.rollback()

    def __repr__(self) -> str:
        return f'<Transaction {id(self):#x} {self.state.value}>'

    @property
    def is_open(self) -> bool:
        return self.state is TransactionState.OPEN

    def _check_open(self, action: str) -> None:
        if not self.is_open:
            raise TransactionStateError(f'Cannot {action}: transaction already {self.state.value}')

    def run(self, statement: str, params: Sequence[Any] = ()) -> RawResult:
        """Run a statement inside the unit of work."""
        self._check_open('run a statement')
        return self.client.execute(statement, params)

    def commit(self) -> None:
        """Commit the unit of work.

        A failed commit rolls back whatever the driver left open, closes the
        transaction and raises TransportError. SQLite keeps the transaction
        open after a failed COMMIT; PostgreSQL has already discarded it.
        """
        self._check_open('commit')
        try:
            self.client.strategy.commit(self.client.dbapi_connection)
        except DriverError as exc:
            logger.warning(f'Commit of transaction {id(self):#x} failed; rolling back')
            try:
                self.client.strategy.rollback(self.client.dbapi_connection)
            except DriverError as rollback_exc:
                logger.error(f'Rollback after failed commit of {id(self):#x} failed: {rollback_exc}')
                self.client.record_failure(rollback_exc)
            finally:
                self._close(TransactionState.ROLLED_BACK)
            raise TransportError(f'Commit failed: {exc}') from exc
        self._close(TransactionState.COMMITTED)
        logger.debug(f'Committed transaction {id(self):#x}')

    def rollback(self) -> None:
        """Roll back the unit of work."""
        self._check_open('roll back')
        try:
            self.client.strategy.rollback(self.client.dbapi_connection)
        except DriverError as exc:
            raise TransportError(f'Rollback failed: {exc}') from exc
        finally:
            self._close(TransactionState.ROLLED_BACK)
        logger.debug(f'Rolled back transaction {id(self):#x}')

    def _close(self, state: TransactionState) -> None:
        self.state = state
        self._finalizer.detach()
        self.client.detach()
