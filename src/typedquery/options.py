import dataclasses
import logging
import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Self

from typedquery.strategy import available_dialects, get_strategy_class

logger = logging.getLogger(__name__)

__all__ = [
    'DatabaseOptions',
    'load_options',
]

ENV_PREFIX = 'TYPEDQUERY_'

# libpq environment variables consulted for PostgreSQL when the prefixed
# variable is absent
_LIBPQ_ENV = {
    'hostname': 'PGHOST',
    'username': 'PGUSER',
    'password': 'PGPASSWORD',
    'database': 'PGDATABASE',
    'port': 'PGPORT',
    'timeout': 'PGCONNECT_TIMEOUT',
    'appname': 'PGAPPNAME',
}


def _scriptname() -> str | None:
    name = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else ''
    return os.path.splitext(name)[0] or None


@dataclass
class DatabaseOptions:
    """Options

    supported driver names: `postgresql`, `sqlite`

    Connection pooling options:
    - use_pool: Whether to use connection pooling (default: False)
    - pool_max_connections: Maximum connections in pool (default: 5)
    - pool_max_idle_time: Maximum seconds a connection can be idle (default: 300)
    - pool_wait_timeout: Maximum seconds to wait for a connection (default: 30)
    """
    drivername: str = 'postgresql'
    hostname: str = None
    username: str = None
    password: str = None
    database: str = None
    port: int = 0
    timeout: int = 0
    appname: str = None
    # Connection pooling parameters
    use_pool: bool = False
    pool_max_connections: int = 5
    pool_max_idle_time: int = 300
    pool_wait_timeout: int = 30

    def __post_init__(self):
        if self.drivername not in available_dialects():
            raise ValueError(f'drivername must be one of: {available_dialects()}')
        self.appname = self.appname or _scriptname() or 'python_console'
        strategy_cls = get_strategy_class(self.drivername)
        strategy_cls.validate_options(self)

    def __repr__(self) -> str:
        fields = ', '.join(f'{f.name}={getattr(self, f.name)!r}'
                           for f in dataclasses.fields(self) if f.name != 'password')
        return f'{self.__class__.__name__}({fields})'

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides) -> Self:
        """Build options from `TYPEDQUERY_*` environment variables.

        For PostgreSQL, unset fields fall back to the libpq variables
        (PGHOST, PGUSER, PGPASSWORD, PGDATABASE, PGPORT, ...).

        Args:
            environ: Mapping to read instead of os.environ
            **overrides: Field values taking precedence over the environment
        """
        environ = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for field in dataclasses.fields(cls):
            raw = environ.get(f'{ENV_PREFIX}{field.name.upper()}')
            if raw is not None:
                values[field.name] = raw

        drivername = overrides.get('drivername', values.get('drivername', 'postgresql'))
        if drivername == 'postgresql':
            for name, var in _LIBPQ_ENV.items():
                if name not in values and var in environ:
                    values[name] = environ[var]

        values.update(overrides)
        return cls(**_coerce(values))


def _coerce(values: dict[str, Any]) -> dict[str, Any]:
    """Convert environment strings onto the declared field types."""
    types = {f.name: f.type for f in dataclasses.fields(DatabaseOptions)}
    out = {}
    for name, value in values.items():
        kind = types.get(name)
        if isinstance(value, str) and kind in {int, 'int'}:
            value = int(value)
        elif isinstance(value, str) and kind in {bool, 'bool'}:
            value = value.strip().lower() in {'1', 'true', 'yes', 'on'}
        out[name] = value
    return out


def load_options(options: 'DatabaseOptions | Mapping[str, Any] | None' = None,
                 **kwargs) -> DatabaseOptions:
    """Normalise connection options.

    Accepts a DatabaseOptions, a mapping of option names, or keyword
    arguments. Keyword arguments override values from `options`.

    Raises
        ValueError: If an unknown option name is given
    """
    known = {f.name for f in dataclasses.fields(DatabaseOptions)}
    if isinstance(options, DatabaseOptions):
        if not kwargs:
            return options
        base = dataclasses.asdict(options)
    elif options is None:
        base = {}
    elif isinstance(options, Mapping):
        base = dict(options)
    else:
        raise TypeError(f'options must be DatabaseOptions or a mapping, got {type(options).__name__}')

    base.update(kwargs)
    unknown = sorted(set(base) - known)
    if unknown:
        raise ValueError(f'Unknown option(s): {unknown}')
    return DatabaseOptions(**_coerce(base))
