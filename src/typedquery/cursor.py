"""
Cursor wrapper and the statement-runner capability.

Anything that can run a prepared statement and hand back raw rows is an
execution target. `Client` and `Transaction` both implement it.
"""
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from functools import wraps
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RawResult:
    """Undecoded outcome of one statement.

    `rows` holds driver tuples in arrival order. `rowcount` is the driver's
    affected-row count (-1 where the driver does not report one).
    """
    rows: list[tuple] = field(default_factory=list)
    rowcount: int = -1
    columns: tuple[str, ...] = ()


@runtime_checkable
class StatementRunner(Protocol):
    """Capability required by the executor: run a statement, return rows."""

    def run(self, statement: str, params: Sequence[Any] = ()) -> RawResult:
        ...


def dumpsql(func):
    """Decorator for logging SQL statements and parameters."""
    @wraps(func)
    def wrapper(self, operation: str, *args: Any, **kwargs: Any):
        start = time.time()
        logger.debug(f'SQL:\n{operation}\nargs: {args}')
        try:
            result = func(self, operation, *args, **kwargs)
            if hasattr(self.dbapi_cursor, 'statusmessage'):
                logger.debug(f'Query result: {self.dbapi_cursor.statusmessage}')
            return result
        except Exception:
            logger.error(f'Error with query:\nSQL:\n{operation}\nargs: {args}')
            raise
        finally:
            elapsed = time.time() - start
            self.client.addcall(elapsed)
            logger.debug(f'Query time: {elapsed:.4f}s')
    return wrapper


class Cursor:
    """Thin wrapper over a DBAPI cursor that logs and times each statement.
    """

    def __init__(self, cursor: Any, client: Any) -> None:
        """Initialize cursor wrapper.

        Args:
            cursor: The underlying database cursor
            client: The client that created this cursor (receives call stats)
        """
        self.dbapi_cursor = cursor
        self.client = client

    def __getattr__(self, name: str) -> Any:
        """Delegate members to underlying cursor."""
        return getattr(self.dbapi_cursor, name)

    @property
    def description(self) -> list[tuple] | None:
        """Column descriptions for last statement."""
        return self.dbapi_cursor.description

    @property
    def rowcount(self) -> int:
        """Number of rows produced/affected by last operation."""
        return self.dbapi_cursor.rowcount

    def close(self) -> None:
        """Close cursor."""
        self.dbapi_cursor.close()

    @dumpsql
    def execute(self, operation: str, params: Sequence[Any] | None = None) -> int:
        """Execute a driver-ready statement."""
        if params is None:
            self.dbapi_cursor.execute(operation)
        else:
            self.dbapi_cursor.execute(operation, params)
        return self.dbapi_cursor.rowcount

    def result(self) -> RawResult:
        """Drain the cursor into a RawResult.

        Statements without a result set (description is None) yield no rows.
        """
        description = self.dbapi_cursor.description
        if description is None:
            return RawResult([], self.dbapi_cursor.rowcount, ())
        rows = [tuple(row) for row in self.dbapi_cursor.fetchall()]
        columns = tuple(desc[0] for desc in description)
        return RawResult(rows, self.dbapi_cursor.rowcount, columns)
