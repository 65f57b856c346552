"""
Cardinality-checked execution.

A `BoundQuery` pairs a descriptor with encoded arguments and a target. It is
created per call and never mutated; `map()` returns a new one. The terminal
operations run the statement once:

    all()  every row, possibly none
    opt()  None for zero rows, the row for one, CardinalityError beyond
    one()  the row, CardinalityError for any other count

The row count is checked before any row is decoded, and decoding is
all-or-nothing: one bad row fails the whole call.
"""
import logging
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from typedquery.exceptions import CardinalityError

if TYPE_CHECKING:
    from typedquery.cursor import RawResult, StatementRunner
    from typedquery.descriptor import QueryDescriptor

logger = logging.getLogger(__name__)

__all__ = ['BoundQuery']


class BoundQuery:
    """A descriptor bound to arguments and an execution target.
    """

    __slots__ = ('descriptor', 'target', 'params', 'transforms')

    def __init__(self, descriptor: 'QueryDescriptor', target: 'StatementRunner',
                 params: tuple, transforms: tuple[Callable[[Any], Any], ...] = ()) -> None:
        self.descriptor = descriptor
        self.target = target
        self.params = params
        self.transforms = transforms

    def __repr__(self) -> str:
        return f'<BoundQuery {self.descriptor.name} params={self.params!r}>'

    @property
    def statement(self) -> str:
        return self.descriptor.statement

    def map(self, transform: Callable[[Any], Any]) -> 'BoundQuery':
        """Return a new BoundQuery applying `transform` to every decoded row.

        Transforms compose in call order and never filter or reorder rows.
        """
        if not callable(transform):
            raise TypeError(f'map() needs a callable, got {type(transform).__name__}')
        return BoundQuery(self.descriptor, self.target, self.params, (*self.transforms, transform))

    def _fetch(self) -> 'RawResult':
        if self.descriptor.is_void:
            raise TypeError(f'{self.descriptor.name} returns no rows; use execute()')
        logger.debug(f'Running {self.descriptor.name}')
        return self.target.run(self.descriptor.statement, self.params)

    def _materialize(self, rows: Sequence[tuple]) -> list:
        mapper = self.descriptor.row_mapper
        decoded = [mapper(row) for row in rows]
        for transform in self.transforms:
            decoded = [transform(row) for row in decoded]
        return decoded

    def all(self) -> list:
        """Return every row in database order."""
        return self._materialize(self._fetch().rows)

    def opt(self) -> Any | None:
        """Return the single row, or None when there is none.

        Raises
            CardinalityError: If more than one row is returned
        """
        rows = self._fetch().rows
        if not rows:
            return None
        if len(rows) > 1:
            raise CardinalityError('0 or 1', len(rows), self.descriptor.name)
        return self._materialize(rows)[0]

    def one(self) -> Any:
        """Return exactly one row.

        Raises
            CardinalityError: If zero or several rows are returned
        """
        rows = self._fetch().rows
        if len(rows) != 1:
            raise CardinalityError(1, len(rows), self.descriptor.name)
        return self._materialize(rows)[0]

    def execute(self) -> int:
        """Run the statement, discarding any rows, and return the affected row count."""
        logger.debug(f'Executing {self.descriptor.name}')
        return self.target.run(self.descriptor.statement, self.params).rowcount
