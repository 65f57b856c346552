"""
Row mapping: raw driver tuples to typed rows.
"""
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from typedquery.exceptions import DecodeError

if TYPE_CHECKING:
    from typedquery.descriptor import QueryDescriptor

logger = logging.getLogger(__name__)


class RowMapper:
    """Decode raw rows for one descriptor.

    Each column is decoded by its declared codec, then the row is built as
    `row_type(*values)` when a row class is declared, as the bare value for a
    single-column query without one, and as a plain tuple otherwise.
    """

    def __init__(self, descriptor: 'QueryDescriptor') -> None:
        self.query = descriptor.name
        self.fields = [(col.name, codec, col.nullable)
                       for col, codec in zip(descriptor.columns, descriptor.column_codecs)]
        self.row_type = descriptor.row_type
        self.scalar = self.row_type is None and len(self.fields) == 1

    def __call__(self, values: Sequence[Any]) -> Any:
        if len(values) != len(self.fields):
            raise DecodeError('row', values, f'{self.query} declares {len(self.fields)} '
                              f'column(s), driver returned {len(values)}')

        decoded = []
        for (name, codec, nullable), value in zip(self.fields, values):
            if value is None:
                if not nullable:
                    raise DecodeError(codec.type_name, value,
                                      f'NULL in non-nullable column {name!r} of {self.query}')
                decoded.append(None)
                continue
            try:
                decoded.append(codec.decode(value))
            except DecodeError as exc:
                exc.add_note(f'column {name!r} of {self.query}')
                raise

        if self.row_type is not None:
            return self.row_type(*decoded)
        if self.scalar:
            return decoded[0]
        return tuple(decoded)
