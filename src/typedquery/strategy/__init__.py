"""
Dialect strategy lookup.

Strategies register themselves by dialect name on import; one shared,
stateless instance per dialect is handed out.
"""
from functools import lru_cache

from typedquery.strategy.base import _STRATEGY_REGISTRY
from typedquery.strategy.base import DatabaseStrategy as DatabaseStrategy
from typedquery.strategy.base import register_strategy as register_strategy
from typedquery.strategy.postgres import PostgresStrategy as PostgresStrategy
from typedquery.strategy.sqlite import SQLiteStrategy as SQLiteStrategy
from typedquery.utils import get_dialect_name


def get_strategy_class(dialect: str) -> type[DatabaseStrategy]:
    """Get the strategy class registered for a dialect.

    Raises
        ValueError: If no strategy is registered under that name
    """
    try:
        return _STRATEGY_REGISTRY[dialect]
    except KeyError:
        raise ValueError(f'Unsupported dialect: {dialect}. '
                         f'Available: {available_dialects()}') from None


@lru_cache(maxsize=8)
def get_strategy(dialect: str) -> DatabaseStrategy:
    """Get the shared strategy instance for a dialect name."""
    return get_strategy_class(dialect)()


def get_db_strategy(cn) -> DatabaseStrategy:
    """Get the strategy for a client, SQLAlchemy object or raw DBAPI connection."""
    return get_strategy(get_dialect_name(cn))


def available_dialects() -> list[str]:
    """Return registered dialect names."""
    return sorted(_STRATEGY_REGISTRY)
