"""
Codecs for built-in scalar database types.

A codec converts between Python values and what the driver sends or receives
for one database type. `encode` produces the driver-bound parameter, `decode`
accepts whatever the driver hands back (native values from psycopg, text from
unregistered types, text or integers from SQLite) and `to_literal` /
`from_literal` handle the text form used inside records and arrays.
"""
import datetime
import json
import logging
import math
import uuid
from decimal import Decimal
from typing import Any

import numpy as np
from dateutil import parser as dateparser

from typedquery.exceptions import DecodeError, TypeConversionError

logger = logging.getLogger(__name__)

__all__ = [
    'BoolCodec',
    'ByteaCodec',
    'Codec',
    'DateCodec',
    'FloatCodec',
    'IntegerCodec',
    'JsonCodec',
    'NumericCodec',
    'TextCodec',
    'TimeCodec',
    'TimestampCodec',
    'UuidCodec',
]


class Codec:
    """Base codec.

    Subclasses set `type_name` and `python_type` and override the hooks:
    `normalize`, `accepts`, `validate`, `dump` and `format` on the way in,
    `load` and `parse` on the way out.
    """

    type_name = 'unknown'
    python_type: type | tuple[type, ...] = object
    # Arrays write their literal unquoted inside a parent array literal.
    nested_literal = False

    def normalize(self, value: Any) -> Any:
        """Map foreign scalar types (numpy) onto plain Python values."""
        if isinstance(value, np.generic):
            return value.item()
        return value

    def accepts(self, value: Any) -> bool:
        return isinstance(value, self.python_type)

    def validate(self, value: Any) -> None:
        """Raise TypeConversionError when an accepted value is out of range."""

    def dump(self, value: Any) -> Any:
        return value

    def format(self, value: Any) -> str:
        return str(value)

    def load(self, wire: Any) -> Any:
        if isinstance(wire, str):
            return self.parse(wire)
        if self.accepts(wire):
            return wire
        raise DecodeError(self.type_name, wire, f'unexpected wire type {type(wire).__name__}')

    def parse(self, text: str) -> Any:
        raise ValueError(f'{self.type_name} has no text form')

    def _checked(self, value: Any) -> Any:
        value = self.normalize(value)
        if not self.accepts(value):
            raise TypeConversionError(self.type_name, value, f'expected {self.describe()}, '
                                      f'got {type(value).__name__}')
        self.validate(value)
        return value

    def encode(self, value: Any) -> Any:
        """Convert a Python value into the driver-bound parameter value."""
        return self.dump(self._checked(value))

    def to_literal(self, value: Any) -> str:
        """Convert a Python value into its text form inside a record or array."""
        return self.format(self._checked(value))

    def decode(self, wire: Any) -> Any:
        """Convert a driver value into a Python value.

        Raises
            DecodeError: If the payload is malformed or of the wrong type
        """
        if wire is None:
            raise DecodeError(self.type_name, wire, 'unexpected NULL')
        try:
            return self.load(wire)
        except DecodeError:
            raise
        except (ValueError, TypeError, ArithmeticError, OverflowError) as exc:
            raise DecodeError(self.type_name, wire, str(exc)) from exc

    def from_literal(self, text: str) -> Any:
        """Convert the text form found inside a record or array."""
        try:
            return self.parse(text)
        except DecodeError:
            raise
        except (ValueError, TypeError, ArithmeticError, OverflowError) as exc:
            raise DecodeError(self.type_name, text, str(exc)) from exc

    def describe(self) -> str:
        if isinstance(self.python_type, tuple):
            return ' or '.join(t.__name__ for t in self.python_type)
        return self.python_type.__name__

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({self.type_name!r})'


class TextCodec(Codec):

    python_type = str

    def __init__(self, type_name: str = 'text') -> None:
        self.type_name = type_name

    def parse(self, text: str) -> str:
        return text

    def format(self, value: str) -> str:
        return value


class IntegerCodec(Codec):
    """Signed integer of a fixed width. bool is rejected.
    """

    python_type = int

    def __init__(self, type_name: str = 'int4', bits: int = 32) -> None:
        self.type_name = type_name
        self.bits = bits
        self.min_value = -(1 << (bits - 1))
        self.max_value = (1 << (bits - 1)) - 1

    def accepts(self, value: Any) -> bool:
        return isinstance(value, int) and not isinstance(value, bool)

    def validate(self, value: int) -> None:
        if not self.min_value <= value <= self.max_value:
            raise TypeConversionError(self.type_name, value,
                                      f'out of range [{self.min_value}, {self.max_value}]')

    def load(self, wire: Any) -> int:
        value = super().load(wire)
        if not self.min_value <= value <= self.max_value:
            raise DecodeError(self.type_name, wire, 'out of range')
        return value

    def parse(self, text: str) -> int:
        return int(text.strip())


class FloatCodec(Codec):

    python_type = float

    def __init__(self, type_name: str = 'float8') -> None:
        self.type_name = type_name

    def accepts(self, value: Any) -> bool:
        return isinstance(value, int | float) and not isinstance(value, bool)

    def dump(self, value: int | float) -> float:
        return float(value)

    def format(self, value: int | float) -> str:
        value = float(value)
        if math.isnan(value):
            return 'NaN'
        if math.isinf(value):
            return 'Infinity' if value > 0 else '-Infinity'
        return repr(value)

    def load(self, wire: Any) -> float:
        if isinstance(wire, int) and not isinstance(wire, bool):
            return float(wire)
        if isinstance(wire, Decimal):
            return float(wire)
        return super().load(wire)

    def parse(self, text: str) -> float:
        return float(text.strip())


class NumericCodec(Codec):
    """Arbitrary precision numeric as Decimal. Floats are refused on encode.
    """

    type_name = 'numeric'
    python_type = Decimal

    def __init__(self, type_name: str = 'numeric') -> None:
        self.type_name = type_name

    def normalize(self, value: Any) -> Any:
        if isinstance(value, np.integer):
            return int(value)
        return value

    def accepts(self, value: Any) -> bool:
        return isinstance(value, Decimal | int) and not isinstance(value, bool)

    def dump(self, value: Decimal | int) -> Decimal:
        return Decimal(value)

    def format(self, value: Decimal | int) -> str:
        return str(Decimal(value))

    def load(self, wire: Any) -> Decimal:
        if isinstance(wire, int) and not isinstance(wire, bool):
            return Decimal(wire)
        if isinstance(wire, float):
            # SQLite stores NUMERIC affinity values as REAL
            return Decimal(repr(wire))
        return super().load(wire)

    def parse(self, text: str) -> Decimal:
        return Decimal(text.strip())


class BoolCodec(Codec):

    type_name = 'bool'
    python_type = bool

    _TRUE = frozenset(('t', 'true'))
    _FALSE = frozenset(('f', 'false'))

    def __init__(self, type_name: str = 'bool') -> None:
        self.type_name = type_name

    def format(self, value: bool) -> str:
        return 't' if value else 'f'

    def load(self, wire: Any) -> bool:
        # SQLite stores booleans as 0/1
        if isinstance(wire, int) and not isinstance(wire, bool):
            if wire not in {0, 1}:
                raise DecodeError(self.type_name, wire, 'expected 0 or 1')
            return bool(wire)
        return super().load(wire)

    def parse(self, text: str) -> bool:
        token = text.strip().lower()
        if token in self._TRUE:
            return True
        if token in self._FALSE:
            return False
        raise ValueError(f'invalid boolean literal {text!r}')


class ByteaCodec(Codec):

    type_name = 'bytea'
    python_type = (bytes, bytearray, memoryview)

    def __init__(self, type_name: str = 'bytea') -> None:
        self.type_name = type_name

    def dump(self, value: bytes | bytearray | memoryview) -> bytes:
        return bytes(value)

    def format(self, value: bytes | bytearray | memoryview) -> str:
        return '\\x' + bytes(value).hex()

    def load(self, wire: Any) -> bytes:
        if isinstance(wire, bytes | bytearray | memoryview):
            return bytes(wire)
        return super().load(wire)

    def parse(self, text: str) -> bytes:
        if not text.startswith('\\x'):
            raise ValueError('expected hex format bytea')
        return bytes.fromhex(text[2:])


class DateCodec(Codec):

    type_name = 'date'
    python_type = datetime.date

    def __init__(self, type_name: str = 'date') -> None:
        self.type_name = type_name

    def accepts(self, value: Any) -> bool:
        return isinstance(value, datetime.date) and not isinstance(value, datetime.datetime)

    def format(self, value: datetime.date) -> str:
        return value.isoformat()

    def parse(self, text: str) -> datetime.date:
        parsed = dateparser.isoparse(text.strip())
        if parsed.time() != datetime.time() or parsed.tzinfo is not None:
            raise ValueError(f'date literal carries a time component: {text!r}')
        return parsed.date()


class TimeCodec(Codec):

    type_name = 'time'
    python_type = datetime.time

    def __init__(self, type_name: str = 'time') -> None:
        self.type_name = type_name

    def format(self, value: datetime.time) -> str:
        return value.isoformat()

    def parse(self, text: str) -> datetime.time:
        return datetime.time.fromisoformat(text.strip())


class TimestampCodec(Codec):
    """timestamp requires naive datetimes, timestamptz requires aware ones.
    """

    python_type = datetime.datetime

    def __init__(self, type_name: str = 'timestamp', tz: bool = False) -> None:
        self.type_name = type_name
        self.tz = tz

    def validate(self, value: datetime.datetime) -> None:
        if self.tz and value.tzinfo is None:
            raise TypeConversionError(self.type_name, value, 'timezone-aware datetime required')
        if not self.tz and value.tzinfo is not None:
            raise TypeConversionError(self.type_name, value, 'naive datetime required')

    def format(self, value: datetime.datetime) -> str:
        return value.isoformat()

    def load(self, wire: Any) -> datetime.datetime:
        value = super().load(wire)
        if self.tz and value.tzinfo is None:
            raise DecodeError(self.type_name, wire, 'missing timezone')
        if not self.tz and value.tzinfo is not None:
            raise DecodeError(self.type_name, wire, 'unexpected timezone')
        return value

    def parse(self, text: str) -> datetime.datetime:
        return dateparser.isoparse(text.strip())


class UuidCodec(Codec):

    type_name = 'uuid'
    python_type = uuid.UUID

    def __init__(self, type_name: str = 'uuid') -> None:
        self.type_name = type_name

    def load(self, wire: Any) -> uuid.UUID:
        if isinstance(wire, bytes) and len(wire) == 16:
            return uuid.UUID(bytes=wire)
        return super().load(wire)

    def parse(self, text: str) -> uuid.UUID:
        return uuid.UUID(text.strip())


class JsonCodec(Codec):
    """JSON documents. Values are sent as serialized text.

    A Python None always means SQL NULL, never JSON null.
    """

    python_type = (dict, list, tuple, str, int, float, bool)

    def __init__(self, type_name: str = 'json') -> None:
        self.type_name = type_name

    def normalize(self, value: Any) -> Any:
        if isinstance(value, np.ndarray):
            return value.tolist()
        return super().normalize(value)

    def validate(self, value: Any) -> None:
        try:
            json.dumps(value)
        except (TypeError, ValueError) as exc:
            raise TypeConversionError(self.type_name, value, str(exc)) from exc

    def dump(self, value: Any) -> str:
        return json.dumps(value)

    def format(self, value: Any) -> str:
        return json.dumps(value)

    def load(self, wire: Any) -> Any:
        if isinstance(wire, bytes | bytearray | memoryview):
            return json.loads(bytes(wire))
        if isinstance(wire, dict | list):
            return wire
        if isinstance(wire, str):
            return self.parse(wire)
        raise DecodeError(self.type_name, wire, f'unexpected wire type {type(wire).__name__}')

    def parse(self, text: str) -> Any:
        return json.loads(text)
