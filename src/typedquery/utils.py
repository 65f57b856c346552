"""Low-level helpers with no internal dependencies.

These utilities have no imports from other typedquery modules, making them
safe to import from anywhere without circular dependency concerns.
"""
import dataclasses
import logging
from typing import Any

logger = logging.getLogger(__name__)


def get_dialect_name(obj: Any) -> str:
    """Get dialect name for a database connection or engine.

    Args:
        obj: Client, SQLAlchemy connection or engine, or raw DBAPI connection

    Returns
        str: Dialect name ('postgresql' or 'sqlite')

    Raises
        AttributeError: If dialect cannot be determined
    """
    if hasattr(obj, 'dialect'):
        dialect = obj.dialect
        if isinstance(dialect, str):
            return dialect.lower()
        return str(dialect.name).lower()

    if hasattr(obj, 'engine') and hasattr(obj.engine, 'dialect'):
        return str(obj.engine.dialect.name).lower()

    # SQLAlchemy pool wrapper (_ConnectionFairy)
    if hasattr(obj, 'driver_connection'):
        return get_dialect_name(obj.driver_connection)

    type_name = f'{type(obj).__module__}.{type(obj).__name__}'
    if 'psycopg' in type_name:
        return 'postgresql'
    if 'sqlite3' in type_name:
        return 'sqlite'

    raise AttributeError(f'Cannot determine dialect for {type(obj)}')


def get_raw_connection(connection: Any) -> Any:
    """Extract the raw DBAPI connection from a pool wrapper."""
    raw_conn = connection
    if hasattr(connection, 'driver_connection'):
        raw_conn = connection.driver_connection
    return raw_conn


def record_fields(cls: type) -> tuple[str, ...] | None:
    """Ordered field names of a dataclass or NamedTuple class, else None.
    """
    if dataclasses.is_dataclass(cls):
        return tuple(f.name for f in dataclasses.fields(cls))
    fields = getattr(cls, '_fields', None)
    if isinstance(cls, type) and issubclass(cls, tuple) and fields is not None:
        return tuple(fields)
    return None
