"""
PostgreSQL-specific strategy implementation.

Connections run in autocommit mode between units of work. A unit of work
switches autocommit off so psycopg opens a transaction with the first
statement, and switches it back on after commit or rollback.

json and jsonb columns are loaded as text; the json codec owns parsing so the
same decode path serves every driver.
"""
import logging
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from psycopg.types.string import TextLoader

from typedquery.sql import ParamStyle
from typedquery.strategy.base import DatabaseStrategy, register_strategy

if TYPE_CHECKING:
    from typedquery.options import DatabaseOptions

logger = logging.getLogger(__name__)


def _restore_autocommit(raw_conn: Any) -> None:
    if not raw_conn.closed:
        raw_conn.autocommit = True


@register_strategy('postgresql')
class PostgresStrategy(DatabaseStrategy):
    """PostgreSQL-specific operations.
    """

    param_style = ParamStyle.FORMAT

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for PostgreSQL."""
        return 'postgresql'

    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for PostgreSQL."""
        query = {}
        if options.timeout:
            query['connect_timeout'] = str(options.timeout)
        if options.appname:
            query['application_name'] = options.appname

        return sa.URL.create(
            drivername='postgresql+psycopg',
            username=options.username,
            password=options.password,
            host=options.hostname,
            port=options.port,
            database=options.database,
            query=query,
        )

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for PostgreSQL connections."""
        return ['hostname', 'username', 'password', 'database', 'port']

    def configure_connection(self, raw_conn: Any) -> None:
        """Enable autocommit and load json/jsonb as text.
        """
        raw_conn.autocommit = True
        raw_conn.adapters.register_loader('json', TextLoader)
        raw_conn.adapters.register_loader('jsonb', TextLoader)

    def begin(self, raw_conn: Any) -> None:
        raw_conn.autocommit = False

    def commit(self, raw_conn: Any) -> None:
        try:
            raw_conn.commit()
        finally:
            _restore_autocommit(raw_conn)

    def rollback(self, raw_conn: Any) -> None:
        try:
            raw_conn.rollback()
        finally:
            _restore_autocommit(raw_conn)
