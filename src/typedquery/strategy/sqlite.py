"""
SQLite-specific strategy implementation.

Connections are switched to sqlite3's autocommit mode (`isolation_level`
None) and a unit of work issues an explicit BEGIN. Values the sqlite3 module
cannot store natively are adapted to text; the codecs parse them back.
"""
import datetime
import logging
import sqlite3
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa

from typedquery.sql import ParamStyle
from typedquery.strategy.base import DatabaseStrategy, register_strategy

if TYPE_CHECKING:
    from typedquery.options import DatabaseOptions

logger = logging.getLogger(__name__)


def _adapt_isoformat(value: datetime.date | datetime.time) -> str:
    return value.isoformat()


@register_strategy('sqlite')
class SQLiteStrategy(DatabaseStrategy):
    """SQLite-specific operations.
    """

    param_style = ParamStyle.NUMERIC

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for SQLite."""
        return 'sqlite'

    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for SQLite."""
        return sa.URL.create(drivername='sqlite', database=options.database)

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for SQLite connections."""
        return ['database']

    def register_type_adapters(self) -> None:
        """Register adapters (Python -> SQLite) for non-native values.

        sqlite3 adapters are process-wide; registering twice is harmless.
        """
        sqlite3.register_adapter(Decimal, str)
        sqlite3.register_adapter(uuid.UUID, str)
        sqlite3.register_adapter(datetime.date, _adapt_isoformat)
        sqlite3.register_adapter(datetime.datetime, _adapt_isoformat)
        sqlite3.register_adapter(datetime.time, _adapt_isoformat)

    def configure_connection(self, raw_conn: Any) -> None:
        """Enable autocommit and register type adapters.
        """
        raw_conn.isolation_level = None
        self.register_type_adapters()

    def begin(self, raw_conn: Any) -> None:
        raw_conn.execute('BEGIN')

    def commit(self, raw_conn: Any) -> None:
        raw_conn.execute('COMMIT')

    def rollback(self, raw_conn: Any) -> None:
        if raw_conn.in_transaction:
            raw_conn.execute('ROLLBACK')
