"""
Codec registry: database type names to codecs.

The registry is populated at startup, then frozen. A frozen registry is
read-only and can be shared across threads without locking.

Type names are case-insensitive. A trailing `[]` resolves to an array of the
element type, recursively (`int4[][]` is an array of arrays).
"""
import enum
import logging
import threading
from collections.abc import Callable, Iterable, Sequence
from typing import Any, Self

from typedquery.adapters.custom import ArrayCodec, CompositeCodec, DomainCodec
from typedquery.adapters.custom import EnumCodec, Field
from typedquery.adapters.scalar import BoolCodec, ByteaCodec, Codec, DateCodec
from typedquery.adapters.scalar import FloatCodec, IntegerCodec, JsonCodec
from typedquery.adapters.scalar import NumericCodec, TextCodec, TimeCodec
from typedquery.adapters.scalar import TimestampCodec, UuidCodec

logger = logging.getLogger(__name__)

__all__ = [
    'CodecRegistry',
    'get_codec_registry',
]

FieldSpec = Field | tuple[str, 'str | Codec'] | tuple[str, 'str | Codec', bool]


def _builtin_codecs() -> list[tuple[Codec, tuple[str, ...]]]:
    return [
        (TextCodec('text'), ('varchar', 'character varying', 'bpchar', 'char',
                             'character', 'name', 'citext')),
        (IntegerCodec('int2', 16), ('smallint',)),
        (IntegerCodec('int4', 32), ('integer', 'int')),
        (IntegerCodec('int8', 64), ('bigint',)),
        (FloatCodec('float4'), ('real',)),
        (FloatCodec('float8'), ('double precision', 'float')),
        (NumericCodec('numeric'), ('decimal',)),
        (BoolCodec('bool'), ('boolean',)),
        (ByteaCodec('bytea'), ()),
        (DateCodec('date'), ()),
        (TimeCodec('time'), ('time without time zone',)),
        (TimestampCodec('timestamp', tz=False), ('timestamp without time zone',)),
        (TimestampCodec('timestamptz', tz=True), ('timestamp with time zone',)),
        (JsonCodec('json'), ()),
        (JsonCodec('jsonb'), ()),
        (UuidCodec('uuid'), ()),
    ]


def _normalize(type_name: str) -> str:
    name = ' '.join(type_name.strip().lower().split())
    if name.startswith('public.'):
        name = name[len('public.'):]
    return name


class CodecRegistry:
    """Maps database type names to codecs.

    Args:
        builtins: Whether to start with the built-in scalar codecs
    """

    def __init__(self, builtins: bool = True) -> None:
        self._codecs: dict[str, Codec] = {}
        self._frozen = False
        self._lock = threading.RLock()
        if builtins:
            for codec, aliases in _builtin_codecs():
                self._add(codec, aliases)

    def __contains__(self, type_name: str) -> bool:
        try:
            self.get(type_name)
        except LookupError:
            return False
        return True

    def __repr__(self) -> str:
        state = 'frozen' if self._frozen else 'open'
        return f'<CodecRegistry {len(self._codecs)} names {state}>'

    @property
    def frozen(self) -> bool:
        return self._frozen

    def names(self) -> list[str]:
        """Registered type names, aliases included."""
        return sorted(self._codecs)

    def _add(self, codec: Codec, aliases: Iterable[str] = ()) -> None:
        with self._lock:
            if self._frozen:
                raise RuntimeError('Codec registry is frozen')
            for name in (codec.type_name, *aliases):
                key = _normalize(name)
                if key.endswith('[]'):
                    raise ValueError(f'Register the element type, not the array type: {name}')
                if key in self._codecs:
                    logger.debug(f'Replacing codec for {key}')
                self._codecs[key] = codec

    def register(self, codec: Codec, *aliases: str) -> Codec:
        """Register a codec under its type name and any aliases.

        Raises
            RuntimeError: If the registry is frozen
        """
        self._add(codec, aliases)
        return codec

    def register_enum(self, type_name: str, enum_cls: type[enum.Enum],
                      labels: Iterable[str] | None = None) -> EnumCodec:
        """Register a database enum backed by a Python Enum.

        Args:
            type_name: Database type name
            enum_cls: Enum whose member values are the database labels
            labels: Labels declared in the database, if known

        Raises
            TypeError: If `labels` and the Enum members disagree
        """
        return self.register(EnumCodec(type_name, enum_cls, labels))

    def register_composite(self, type_name: str, python_type: type,
                           fields: Sequence[FieldSpec]) -> CompositeCodec:
        """Register a composite type backed by a dataclass or NamedTuple.

        Args:
            type_name: Database type name
            python_type: Class built positionally from the fields
            fields: Field, `(name, type)` or `(name, type, nullable)` per
                attribute, in database declaration order

        Raises
            TypeError: If the class fields do not match the declared fields
        """
        resolved = []
        for entry in fields:
            if isinstance(entry, Field):
                resolved.append(entry)
                continue
            name, type_, *rest = entry
            resolved.append(Field(name, self.get(type_), bool(rest[0]) if rest else False))
        return self.register(CompositeCodec(type_name, python_type, resolved))

    def register_domain(self, type_name: str, base: 'str | Codec',
                        check: Callable[[Any], bool] | None = None) -> DomainCodec:
        """Register a domain over a base type.

        Args:
            type_name: Database domain name
            base: Base type name or codec
            check: Predicate a value must satisfy to be encoded
        """
        return self.register(DomainCodec(type_name, self.get(base), check))

    def array(self, element: 'str | Codec', nullable: bool = False) -> ArrayCodec:
        """Build an array codec over a registered element type.

        Use this for arrays whose elements may be NULL; `get('x[]')` yields
        arrays with non-nullable elements.
        """
        return ArrayCodec(self.get(element), nullable=nullable)

    def get(self, type_name: 'str | Codec') -> Codec:
        """Resolve a type name (or pass a codec through).

        Raises
            LookupError: If the type is not registered
        """
        if isinstance(type_name, Codec):
            return type_name
        key = _normalize(type_name)
        if key.endswith('[]'):
            return ArrayCodec(self.get(key[:-2]))
        if key.startswith('_'):
            # PostgreSQL's internal array type names
            element = self._codecs.get(key[1:])
            if element is not None:
                return ArrayCodec(element)
        try:
            return self._codecs[key]
        except KeyError:
            raise LookupError(f'Unknown database type: {type_name}') from None

    def check(self, type_name: 'str | Codec', value: Any) -> bool:
        """Whether `value` can be encoded as `type_name`.

        NULL is not judged here; nullability belongs to the parameter.
        """
        codec = self.get(type_name)
        return codec.accepts(codec.normalize(value))

    def freeze(self) -> Self:
        """Make the registry read-only."""
        with self._lock:
            self._frozen = True
        return self

    def copy(self) -> 'CodecRegistry':
        """Return an unfrozen copy, for extending a frozen registry."""
        clone = CodecRegistry(builtins=False)
        clone._codecs = dict(self._codecs)
        return clone


_default_registry: CodecRegistry | None = None
_default_lock = threading.Lock()


def get_codec_registry() -> CodecRegistry:
    """Get the shared, frozen registry of built-in codecs."""
    global _default_registry
    if _default_registry is None:
        with _default_lock:
            if _default_registry is None:
                _default_registry = CodecRegistry().freeze()
    return _default_registry
