"""
Parameter binding.

Binding validates and encodes arguments against a descriptor and produces a
`BoundQuery`. It performs no I/O: every failure is raised as `BindError`
before anything reaches the database.
"""
import dataclasses
import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from typedquery.exceptions import BindError, TypeConversionError
from typedquery.query import BoundQuery

if TYPE_CHECKING:
    from typedquery.cursor import StatementRunner
    from typedquery.descriptor import QueryDescriptor

logger = logging.getLogger(__name__)

__all__ = [
    'bind',
    'bind_named',
    'encode_params',
    'named_values',
]


def encode_params(descriptor: 'QueryDescriptor', args: Sequence[Any]) -> tuple:
    """Check nullability and encode each argument with its declared codec.

    Raises
        BindError: On NULL for a non-nullable parameter or an encode failure
    """
    encoded = []
    for position, (param, codec, value) in enumerate(
            zip(descriptor.parameters, descriptor.param_codecs, args), start=1):
        if value is None:
            if not param.nullable:
                raise BindError(f'{descriptor.name}: parameter ${position} ({param.name}) '
                                'is not nullable')
            encoded.append(None)
            continue
        try:
            encoded.append(codec.encode(value))
        except TypeConversionError as exc:
            raise BindError(f'{descriptor.name}: parameter ${position} ({param.name}): {exc}') from exc
    return tuple(encoded)


def bind(descriptor: 'QueryDescriptor', target: 'StatementRunner',
         args: Sequence[Any]) -> BoundQuery:
    """Bind positional arguments.

    Raises
        BindError: On arity mismatch, NULL for a non-nullable parameter, or a
            value the declared codec does not accept
    """
    args = tuple(args)
    expected = len(descriptor.parameters)
    if len(args) != expected:
        raise BindError(f'{descriptor.name}() takes {expected} parameter(s), got {len(args)}')
    return BoundQuery(descriptor, target, encode_params(descriptor, args))


def named_values(params: Any) -> dict[str, Any]:
    """Field name to value for a dataclass instance, NamedTuple or mapping.

    Raises
        BindError: For any other kind of object
    """
    if dataclasses.is_dataclass(params) and not isinstance(params, type):
        return {f.name: getattr(params, f.name) for f in dataclasses.fields(params)}
    if isinstance(params, tuple) and hasattr(params, '_asdict'):
        return dict(params._asdict())
    if isinstance(params, Mapping):
        return dict(params)
    raise BindError('Named parameters must be a dataclass, NamedTuple or mapping, '
                    f'got {type(params).__name__}')


def bind_named(descriptor: 'QueryDescriptor', target: 'StatementRunner',
               params: Any) -> BoundQuery:
    """Bind a named parameter set.

    The field names must equal the declared parameter names exactly; values
    are placed by the descriptor's name to position map.

    Raises
        BindError: On missing or extra fields, or any positional bind failure
    """
    values = named_values(params)
    positions = descriptor.positions
    missing = [name for name in positions if name not in values]
    extra = sorted(name for name in values if name not in positions)
    if missing or extra:
        parts = []
        if missing:
            parts.append(f'missing {missing}')
        if extra:
            parts.append(f'unexpected {extra}')
        raise BindError(f'{descriptor.name}: named parameters do not match: {", ".join(parts)}')

    ordered: list[Any] = [None] * len(positions)
    for name, position in positions.items():
        ordered[position] = values[name]
    return bind(descriptor, target, ordered)
