"""
Base strategy interface for dialect-specific connection behavior.

Each concrete strategy knows how to build a connection URL for its dialect,
configure a fresh DBAPI connection, drive a unit of work (begin, commit,
rollback) and translate numbered placeholders into the driver's paramstyle.
Clients and transactions work with any database through this interface.
"""
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa

from typedquery.sql import ParamStyle, PreparedStatement, prepare_statement

if TYPE_CHECKING:
    from typedquery.options import DatabaseOptions

# Registry of dialect name -> strategy class
# Defined here to avoid circular imports (concrete strategies import from base)
_STRATEGY_REGISTRY: dict[str, type['DatabaseStrategy']] = {}


def register_strategy(dialect: str):
    """Decorator to register a strategy class for a dialect.

    Usage:
        @register_strategy('postgresql')
        class PostgresStrategy(DatabaseStrategy):
            ...
    """
    def decorator(cls: type['DatabaseStrategy']) -> type['DatabaseStrategy']:
        _STRATEGY_REGISTRY[dialect] = cls
        return cls
    return decorator


class DatabaseStrategy(ABC):
    """Base class for database-specific operations.
    """

    param_style: ParamStyle = ParamStyle.FORMAT

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the dialect identifier."""

    @abstractmethod
    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL.

        Args:
            options: Connection options

        Returns
            sqlalchemy.URL: URL for create_engine
        """

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return dialect-specific create_engine kwargs."""
        return {}

    @classmethod
    @abstractmethod
    def get_required_options(cls) -> list[str]:
        """Return list of required option field names for this dialect.

        Returns
            List of field names that must have non-None/non-zero values
        """

    @classmethod
    def validate_options(cls, options: 'DatabaseOptions') -> None:
        """Validate options for this dialect.

        Args:
            options: DatabaseOptions to validate

        Raises
            ValueError: If any required field is None or 0
        """
        for field in cls.get_required_options():
            if not getattr(options, field):
                raise ValueError(f'field {field} cannot be None or 0')

    @abstractmethod
    def configure_connection(self, raw_conn: Any) -> None:
        """Prepare a fresh raw DBAPI connection.

        Puts the connection in autocommit mode so that statements run outside
        a unit of work take effect immediately, and registers type adapters.

        Args:
            raw_conn: The raw DBAPI connection (not wrapped)
        """

    @abstractmethod
    def begin(self, raw_conn: Any) -> None:
        """Start a unit of work on a raw connection."""

    @abstractmethod
    def commit(self, raw_conn: Any) -> None:
        """Commit the open unit of work and return to autocommit mode."""

    @abstractmethod
    def rollback(self, raw_conn: Any) -> None:
        """Roll back the open unit of work and return to autocommit mode."""

    def cursor(self, raw_conn: Any) -> Any:
        """Open a plain tuple-row cursor on a raw connection."""
        return raw_conn.cursor()

    def prepare(self, sql: str) -> PreparedStatement:
        """Translate `$n` placeholders into this dialect's paramstyle.

        Args:
            sql: Statement with numbered placeholders

        Returns
            PreparedStatement: Driver-ready SQL and argument layout
        """
        return prepare_statement(sql, self.param_style)
