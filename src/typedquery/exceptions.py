"""
Exception taxonomy for typed query execution.
"""
import re
import sqlite3
from typing import Any

import psycopg
import sqlalchemy.exc

RETRYABLE_PATTERNS = [
    # SSL/TLS errors
    r'ssl',
    r'tls',
    # Connection drops
    r'connection.*(closed|reset|refused|lost|terminated|broken)',
    r'server closed',
    r'eof detected',
    r'broken pipe',
    r'connection reset',
    # Timeouts
    r'timeout',
    r'timed out',
    # Network issues
    r'could not connect',
    r'no route to host',
    r'network.*(unreachable|error)',
    r'host.*(unreachable|down)',
    # Database unavailable
    r'database.*unavailable',
    r'too many connections',
    r'connection pool',
]

_RETRYABLE_REGEX = re.compile('|'.join(RETRYABLE_PATTERNS), re.IGNORECASE)


def is_retryable_error(exc: BaseException) -> bool:
    """Check if an exception represents a transient error worth retrying.

    Returns True for errors that are likely transient and may succeed on retry:
    - SSL/TLS errors
    - Connection drops/resets
    - Timeouts
    - Network issues
    - Database temporarily unavailable

    Returns False for errors that will definitely fail again (syntax errors,
    constraint violations, permission errors).

    The runtime itself never retries; this is exposed for caller policies.

    :param exc: The exception to check.
    :returns: True if the error is likely transient and worth retrying.
    """
    error_msg = str(exc).lower()
    return bool(_RETRYABLE_REGEX.search(error_msg))


class DatabaseError(Exception):
    """Base class for all typedquery errors.
    """


class BindError(DatabaseError):
    """Parameters do not fit the query's declared parameter shape.

    Raised for arity mismatches, named parameter sets with missing or extra
    fields, NULL passed to a non-nullable parameter, and encoding failures.
    Always raised before the statement reaches the database.
    """


class TypeConversionError(DatabaseError):
    """A codec could not encode a Python value for its database type.
    """

    def __init__(self, type_name: str, value: Any, reason: str) -> None:
        self.type_name = type_name
        self.value = value
        self.reason = reason
        super().__init__(f'Cannot encode {value!r} as {type_name}: {reason}')


class DecodeError(DatabaseError):
    """A value returned by the database does not satisfy its declared type.
    """

    def __init__(self, type_name: str, value: Any, reason: str, *,
                 label: str | None = None,
                 expected: tuple[str, ...] | None = None) -> None:
        self.type_name = type_name
        self.value = value
        self.reason = reason
        self.label = label
        self.expected = expected
        super().__init__(f'Cannot decode {type_name} from {_context(value)}: {reason}')


class CardinalityError(DatabaseError):
    """A query returned a row count outside what the execution mode allows.
    """

    def __init__(self, expected: int | str, observed: int, query: str | None = None) -> None:
        self.expected = expected
        self.observed = observed
        self.query = query
        where = f' from {query}' if query else ''
        super().__init__(f'Expected {expected} row(s){where}, got {observed}')


class TransportError(DatabaseError):
    """The underlying driver or network failed.

    The original driver exception is always available as ``__cause__``.
    """

    @property
    def retryable(self) -> bool:
        """Whether the wrapped failure looks transient."""
        cause = self.__cause__
        return is_retryable_error(cause if cause is not None else self)


class TransactionStateError(DatabaseError):
    """Operation attempted against a unit of work in the wrong state.
    """


def _context(value: Any, limit: int = 64) -> str:
    """Short repr of an offending wire value for error messages."""
    text = repr(value)
    if len(text) > limit:
        text = f'{text[:limit]}...'
    return text


DriverError = (
    psycopg.Error,
    sqlite3.Error,
    sqlalchemy.exc.DBAPIError,
    )
