"""
Query descriptors.

A descriptor is the static description of one prepared statement: its SQL,
its ordered parameters, its ordered result columns, and optionally the class
rows are built into and the class named parameters arrive as. Descriptors are
written by hand or emitted by a code generator, built once at import time and
shared freely.

Examples
    authors = QueryDescriptor(
        'authors',
        'select id, name from author order by id',
        columns=(Column('id', 'int4'), Column('name', 'text')),
        row_type=Author,
    )
    authors.bind(cn).all()
"""
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from typedquery.adapters.scalar import Codec
from typedquery.row import RowMapper
from typedquery.sql import count_placeholders
from typedquery.types import CodecRegistry, get_codec_registry
from typedquery.utils import record_fields

if TYPE_CHECKING:
    from typedquery.cursor import StatementRunner
    from typedquery.query import BoundQuery

logger = logging.getLogger(__name__)

__all__ = [
    'Column',
    'Param',
    'QueryDescriptor',
]


@dataclass(frozen=True, slots=True)
class Param:
    """Declared statement parameter. Position is its index in the descriptor.
    """
    name: str
    type: str | Codec
    nullable: bool = False


@dataclass(frozen=True, slots=True)
class Column:
    """Declared result column.
    """
    name: str
    type: str | Codec
    nullable: bool = False


@dataclass(frozen=True)
class QueryDescriptor:
    """Immutable description of one prepared statement.

    Construction resolves every type through the codec registry and checks
    the declaration for consistency, so mistakes surface at import time.

    Args:
        name: Query name used in errors and logs
        statement: SQL with `$1 .. $n` placeholders
        parameters: Ordered parameter declarations
        columns: Ordered result columns; none means the statement returns no rows
        row_type: Class rows are built into positionally
        params_type: Class named parameters are declared as
        registry: Codec registry, defaults to the built-in registry

    Raises
        ValueError: If placeholders and parameters disagree or names repeat
        TypeError: If row_type or params_type do not match the declaration
        LookupError: If a type name is not registered
    """
    name: str
    statement: str
    parameters: tuple[Param, ...] = ()
    columns: tuple[Column, ...] = ()
    row_type: type | None = None
    params_type: type | None = None
    registry: CodecRegistry | None = field(default=None, repr=False, compare=False)

    param_codecs: tuple[Codec, ...] = field(init=False, repr=False, compare=False)
    column_codecs: tuple[Codec, ...] = field(init=False, repr=False, compare=False)
    positions: Mapping[str, int] = field(init=False, repr=False, compare=False)
    row_mapper: RowMapper = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        registry = self.registry or get_codec_registry()
        set_ = object.__setattr__
        set_(self, 'parameters', tuple(self.parameters))
        set_(self, 'columns', tuple(self.columns))

        positions: dict[str, int] = {}
        for position, param in enumerate(self.parameters):
            if param.name in positions:
                raise ValueError(f'{self.name}: duplicate parameter name {param.name!r}')
            positions[param.name] = position

        referenced = count_placeholders(self.statement)
        if referenced > len(self.parameters):
            raise ValueError(f'{self.name}: statement references ${referenced} but only '
                             f'{len(self.parameters)} parameter(s) are declared')

        if self.params_type is not None:
            names = record_fields(self.params_type)
            if names is None:
                raise TypeError(f'{self.name}: params_type must be a dataclass or NamedTuple')
            if set(names) != set(positions):
                raise TypeError(f'{self.name}: {self.params_type.__name__} fields {sorted(names)} '
                                f'do not match parameters {sorted(positions)}')

        if self.row_type is not None:
            names = record_fields(self.row_type)
            if names is not None and len(names) != len(self.columns):
                raise TypeError(f'{self.name}: {self.row_type.__name__} has {len(names)} fields '
                                f'but the query declares {len(self.columns)} columns')

        set_(self, 'param_codecs', tuple(registry.get(p.type) for p in self.parameters))
        set_(self, 'column_codecs', tuple(registry.get(c.type) for c in self.columns))
        set_(self, 'positions', MappingProxyType(positions))
        set_(self, 'row_mapper', RowMapper(self))

    @property
    def is_void(self) -> bool:
        """Whether the statement returns no rows."""
        return not self.columns

    def bind(self, target: 'StatementRunner', *args: Any) -> 'BoundQuery | int':
        """Bind positional arguments.

        Returns a BoundQuery for row-returning statements. Statements without
        result columns execute immediately and return the affected row count.

        Raises
            BindError: If the arguments do not fit the declared parameters
        """
        from typedquery.binder import bind
        bound = bind(self, target, args)
        return bound.execute() if self.is_void else bound

    def params(self, target: 'StatementRunner',
               values: 'Mapping[str, Any] | Any') -> 'BoundQuery | int':
        """Bind a named parameter set (dataclass, NamedTuple or mapping).

        Same return convention as `bind`.

        Raises
            BindError: If the field names differ from the declared parameters
        """
        from typedquery.binder import bind_named
        bound = bind_named(self, target, values)
        return bound.execute() if self.is_void else bound

    def describe(self) -> str:
        """One-line signature, for logs and debugging."""
        params = ', '.join(f'{p.name}: {_type_name(p.type)}{"?" if p.nullable else ""}'
                           for p in self.parameters)
        cols = ', '.join(f'{c.name}: {_type_name(c.type)}{"?" if c.nullable else ""}'
                         for c in self.columns)
        return f'{self.name}({params}) -> ({cols})' if cols else f'{self.name}({params})'


def _type_name(type_: 'str | Codec') -> str:
    return type_.type_name if isinstance(type_, Codec) else type_
