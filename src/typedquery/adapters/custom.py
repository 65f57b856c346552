"""
Codecs for user-defined database types: enums, composites, domains and arrays.
"""
import dataclasses
import enum
import logging
from collections.abc import Callable, Iterable, Sequence
from typing import Any

import numpy as np

from typedquery.adapters.literal import format_array, format_record
from typedquery.adapters.literal import parse_array, parse_record
from typedquery.adapters.scalar import Codec
from typedquery.exceptions import DecodeError, TypeConversionError
from typedquery.utils import record_fields

logger = logging.getLogger(__name__)

__all__ = [
    'ArrayCodec',
    'CompositeCodec',
    'DomainCodec',
    'EnumCodec',
    'Field',
]


class EnumCodec(Codec):
    """Database enum mapped onto a Python Enum whose values are the labels.

    Args:
        type_name: Database type name
        enum_cls: Python Enum class with one member per label
        labels: Labels declared in the database, checked against enum_cls
    """

    def __init__(self, type_name: str, enum_cls: type[enum.Enum],
                 labels: Iterable[str] | None = None) -> None:
        members = list(enum_cls)
        bad = [m.name for m in members if not isinstance(m.value, str)]
        if bad:
            raise TypeError(f'{enum_cls.__name__} members must have str labels as values: {bad}')
        declared = [m.value for m in members]
        if labels is not None:
            labels = list(labels)
            missing = [x for x in labels if x not in declared]
            extra = [x for x in declared if x not in labels]
            if missing or extra:
                raise TypeError(f'{enum_cls.__name__} does not match {type_name}: '
                                f'missing {missing}, unknown {extra}')
        self.type_name = type_name
        self.python_type = enum_cls
        self.labels = tuple(declared)
        self._by_label = {m.value: m for m in members}

    def dump(self, value: enum.Enum) -> str:
        return value.value

    def format(self, value: enum.Enum) -> str:
        return value.value

    def parse(self, text: str) -> enum.Enum:
        try:
            return self._by_label[text]
        except KeyError:
            raise DecodeError(self.type_name, text, f'unknown label {text!r}, '
                              f'expected one of {list(self.labels)}',
                              label=text, expected=self.labels) from None


@dataclasses.dataclass(frozen=True, slots=True)
class Field:
    """One attribute of a composite type.
    """
    name: str
    codec: Codec
    nullable: bool = False


class CompositeCodec(Codec):
    """Database composite type mapped onto a dataclass or NamedTuple.

    The Python class must declare the same attribute names in the same order
    as the database type.
    """

    def __init__(self, type_name: str, python_type: type, fields: Sequence[Field]) -> None:
        fields = tuple(fields)
        if not fields:
            raise TypeError(f'Composite {type_name} needs at least one field')
        names = record_fields(python_type)
        if names is None:
            raise TypeError(f'{python_type.__name__} must be a dataclass or NamedTuple')
        if list(names) != [f.name for f in fields]:
            raise TypeError(f'{python_type.__name__} fields {list(names)} do not match '
                            f'{type_name} fields {[f.name for f in fields]}')
        self.type_name = type_name
        self.python_type = python_type
        self.fields = fields

    def format(self, value: Any) -> str:
        texts = []
        for f in self.fields:
            item = getattr(value, f.name)
            if item is None:
                if not f.nullable:
                    raise TypeConversionError(self.type_name, value, f'field {f.name} is not nullable')
                texts.append(None)
                continue
            try:
                texts.append(f.codec.to_literal(item))
            except TypeConversionError as exc:
                raise TypeConversionError(self.type_name, value,
                                          f'field {f.name}: {exc.reason}') from exc
        return format_record(texts)

    def dump(self, value: Any) -> str:
        return self.format(value)

    def _build(self, wire: Any, items: Sequence[Any], convert: Callable[[Codec, Any], Any]) -> Any:
        if len(items) != len(self.fields):
            raise DecodeError(self.type_name, wire, f'expected {len(self.fields)} fields, got {len(items)}')
        values = []
        for f, item in zip(self.fields, items):
            if item is None:
                if not f.nullable:
                    raise DecodeError(self.type_name, wire, f'field {f.name} is NULL')
                values.append(None)
                continue
            try:
                values.append(convert(f.codec, item))
            except DecodeError as exc:
                raise DecodeError(self.type_name, wire, f'field {f.name}: {exc.reason}',
                                  label=exc.label, expected=exc.expected) from exc
        return self.python_type(*values)

    def load(self, wire: Any) -> Any:
        if isinstance(wire, self.python_type):
            return wire
        if isinstance(wire, str):
            return self.parse(wire)
        if isinstance(wire, tuple | list):
            # psycopg returns registered composites as tuples
            return self._build(wire, wire, lambda codec, item: codec.decode(item))
        raise DecodeError(self.type_name, wire, f'unexpected wire type {type(wire).__name__}')

    def parse(self, text: str) -> Any:
        return self._build(text, parse_record(text), lambda codec, item: codec.from_literal(item))


class DomainCodec(Codec):
    """Domain over a base type with an optional constraint checked on encode.
    """

    def __init__(self, type_name: str, base: Codec,
                 check: Callable[[Any], bool] | None = None) -> None:
        self.type_name = type_name
        self.base = base
        self.check = check
        self.python_type = base.python_type
        self.nested_literal = base.nested_literal

    def normalize(self, value: Any) -> Any:
        return self.base.normalize(value)

    def accepts(self, value: Any) -> bool:
        return self.base.accepts(value)

    def validate(self, value: Any) -> None:
        self.base.validate(value)
        if self.check is not None and not self.check(value):
            raise TypeConversionError(self.type_name, value, 'violates domain constraint')

    def dump(self, value: Any) -> Any:
        return self.base.dump(value)

    def format(self, value: Any) -> str:
        return self.base.format(value)

    def load(self, wire: Any) -> Any:
        try:
            return self.base.decode(wire)
        except DecodeError as exc:
            raise DecodeError(self.type_name, wire, exc.reason,
                              label=exc.label, expected=exc.expected) from exc

    def parse(self, text: str) -> Any:
        try:
            return self.base.from_literal(text)
        except DecodeError as exc:
            raise DecodeError(self.type_name, text, exc.reason,
                              label=exc.label, expected=exc.expected) from exc

    def describe(self) -> str:
        return self.base.describe()


class ArrayCodec(Codec):
    """One-dimensional array of an element codec. Nest for more dimensions.

    Args:
        element: Codec of the elements (itself an ArrayCodec for nested arrays)
        nullable: Whether elements may be NULL
        type_name: Database type name, defaults to `<element>[]`
    """

    python_type = (list, tuple)
    nested_literal = True

    def __init__(self, element: Codec, nullable: bool = False,
                 type_name: str | None = None) -> None:
        self.element = element
        self.nullable = nullable
        self.type_name = type_name or f'{element.type_name}[]'

    def normalize(self, value: Any) -> Any:
        if isinstance(value, np.ndarray):
            return value.tolist()
        return value

    def format(self, value: Sequence[Any]) -> str:
        texts = []
        for index, item in enumerate(value):
            if item is None:
                if not self.nullable:
                    raise TypeConversionError(self.type_name, value, f'element {index} is NULL')
                texts.append(None)
                continue
            try:
                texts.append(self.element.to_literal(item))
            except TypeConversionError as exc:
                raise TypeConversionError(self.type_name, value,
                                          f'element {index}: {exc.reason}') from exc
        return format_array(texts, nested=self.element.nested_literal)

    def dump(self, value: Sequence[Any]) -> str:
        return self.format(value)

    def _build(self, wire: Any, items: Sequence[Any], convert: Callable[[Codec, Any], Any]) -> list:
        values = []
        for index, item in enumerate(items):
            if item is None:
                if not self.nullable:
                    raise DecodeError(self.type_name, wire, f'element {index} is NULL')
                values.append(None)
                continue
            try:
                values.append(convert(self.element, item))
            except DecodeError as exc:
                raise DecodeError(self.type_name, wire, f'element {index}: {exc.reason}',
                                  label=exc.label, expected=exc.expected) from exc
        return values

    def load(self, wire: Any) -> list:
        if isinstance(wire, str):
            return self.parse(wire)
        if isinstance(wire, list | tuple):
            return self._build(wire, wire, lambda codec, item: codec.decode(item))
        raise DecodeError(self.type_name, wire, f'unexpected wire type {type(wire).__name__}')

    def parse(self, text: str) -> list:
        return self._build(text, parse_array(text), lambda codec, item: codec.from_literal(item))

    def describe(self) -> str:
        return f'list of {self.element.describe()}'
