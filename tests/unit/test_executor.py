"""Unit tests for cardinality-checked execution and row mapping.
"""
import pytest
from typedquery import CardinalityError, Column, DecodeError, QueryDescriptor, RawResult

from tests.fixtures.queries import Author, CustomComposite, SpongebobCharacter
from tests.fixtures.queries import Translation, author_name_by_id
from tests.fixtures.queries import author_name_starting_with, authors, books
from tests.fixtures.queries import insert_book, select_translations
from tests.fixtures.queries import select_where_custom_type


class TestAll:

    def test_rows_in_database_order(self, recording_runner):
        runner = recording_runner([(2, 'Joe'), (1, 'Jane')])
        assert authors.bind(runner).all() == [Author(2, 'Joe'), Author(1, 'Jane')]
        assert runner.calls == [('select id, name from author order by id', ())]

    def test_empty(self, recording_runner):
        assert authors.bind(recording_runner([])).all() == []

    def test_single_column_is_bare_value(self, recording_runner):
        assert books.bind(recording_runner([('Emma',), ('Persuasion',)])).all() == ['Emma', 'Persuasion']

    def test_row_tuple_without_row_type(self, recording_runner):
        descriptor = QueryDescriptor('pairs', 'select id, name from author',
                                     columns=(Column('id', 'int4'), Column('name', 'text')))
        assert descriptor.bind(recording_runner([(1, 'Jane')])).all() == [(1, 'Jane')]

    def test_custom_types(self, recording_runner):
        runner = recording_runner([('(incredible,42,Patrick)',)])
        rows = select_where_custom_type.bind(runner, SpongebobCharacter.Patrick).all()
        assert rows == [CustomComposite('incredible', 42, SpongebobCharacter.Patrick)]
        assert runner.calls[0][1] == ('Patrick',)

    def test_namedtuple_row_with_array(self, recording_runner):
        runner = recording_runner([('Le Petit Prince', '{"The Little Prince","Der kleine Prinz"}')])
        row = select_translations.bind(runner, 'Le Petit Prince').one()
        assert row == Translation('Le Petit Prince', ['The Little Prince', 'Der kleine Prinz'])

    def test_each_call_runs_once(self, recording_runner):
        runner = recording_runner([(1, 'Jane')], [(1, 'Jane')])
        bound = authors.bind(runner)
        bound.all()
        bound.all()
        assert len(runner.calls) == 2


class TestOpt:

    def test_none_for_no_rows(self, recording_runner):
        assert author_name_by_id.bind(recording_runner([]), 999).opt() is None

    def test_single_row(self, recording_runner):
        assert author_name_by_id.bind(recording_runner([('Jane',)]), 1).opt() == 'Jane'

    @pytest.mark.parametrize('count', [2, 3, 10])
    def test_reports_observed_count(self, recording_runner, count):
        runner = recording_runner([('Jane',)] * count)
        with pytest.raises(CardinalityError) as exc_info:
            author_name_starting_with.bind(runner, 'J').opt()
        assert exc_info.value.expected == '0 or 1'
        assert exc_info.value.observed == count
        assert exc_info.value.query == 'author_name_starting_with'

    def test_count_checked_before_decoding(self, recording_runner):
        runner = recording_runner([('not', 'decodable'), (None,)])
        with pytest.raises(CardinalityError):
            author_name_by_id.bind(runner, 1).opt()


class TestOne:

    def test_single_row(self, recording_runner):
        assert authors.bind(recording_runner([(1, 'Jane')])).one() == Author(1, 'Jane')

    def test_no_rows(self, recording_runner):
        with pytest.raises(CardinalityError) as exc_info:
            author_name_by_id.bind(recording_runner([]), 999).one()
        assert exc_info.value.expected == 1
        assert exc_info.value.observed == 0
        assert str(exc_info.value) == 'Expected 1 row(s) from author_name_by_id, got 0'

    def test_many_rows(self, recording_runner):
        with pytest.raises(CardinalityError) as exc_info:
            authors.bind(recording_runner([(1, 'Jane'), (2, 'Joe')])).one()
        assert exc_info.value.observed == 2


class TestDecoding:

    def test_null_in_non_nullable_column(self, recording_runner):
        with pytest.raises(DecodeError, match="NULL in non-nullable column 'name'"):
            authors.bind(recording_runner([(1, 'Jane'), (2, None)])).all()

    def test_nullable_column(self, recording_runner):
        descriptor = QueryDescriptor('nick', 'select nickname from author',
                                     columns=(Column('nickname', 'text', nullable=True),))
        assert descriptor.bind(recording_runner([(None,), ('JJ',)])).all() == [None, 'JJ']

    def test_width_mismatch(self, recording_runner):
        with pytest.raises(DecodeError, match=r'declares 2 column\(s\), driver returned 3'):
            authors.bind(recording_runner([(1, 'Jane', 'extra')])).all()

    def test_failure_names_column(self, recording_runner):
        with pytest.raises(DecodeError) as exc_info:
            authors.bind(recording_runner([('one', 'Jane')])).all()
        assert "column 'id' of authors" in exc_info.value.__notes__

    def test_unknown_enum_label(self, recording_runner):
        with pytest.raises(DecodeError) as exc_info:
            select_where_custom_type.bind(recording_runner([('(wow,1,Plankton)',)]),
                                          SpongebobCharacter.Bob).all()
        assert exc_info.value.label == 'Plankton'
        assert exc_info.value.expected == ('Bob', 'Patrick', 'Squidward')

    def test_all_or_nothing(self, recording_runner):
        """A bad row fails the call; no partial result is returned."""
        runner = recording_runner([(1, 'Jane'), (2, 'Joe'), ('three', 'Ann')])
        with pytest.raises(DecodeError):
            authors.bind(runner).all()


class TestMap:

    def test_transform_preserves_length_and_order(self, recording_runner):
        runner = recording_runner([(1, 'Jane'), (2, 'Joe'), (3, 'Ann')])
        names = authors.bind(runner).map(lambda a: a.name).all()
        assert names == ['Jane', 'Joe', 'Ann']

    def test_transforms_compose_in_order(self, recording_runner):
        runner = recording_runner([('Jane',)])
        result = (author_name_by_id.bind(runner, 1)
                  .map(str.upper)
                  .map(lambda name: f'{name}!')
                  .one())
        assert result == 'JANE!'

    def test_map_returns_new_query(self, recording_runner):
        bound = authors.bind(recording_runner())
        mapped = bound.map(lambda a: a.id)
        assert mapped is not bound
        assert bound.transforms == ()
        assert len(mapped.transforms) == 1

    def test_map_with_opt_none(self, recording_runner):
        assert author_name_by_id.bind(recording_runner([]), 1).map(str.upper).opt() is None

    def test_not_callable(self, recording_runner):
        with pytest.raises(TypeError):
            authors.bind(recording_runner()).map('name')


class TestExecute:

    def test_rowcount(self, recording_runner):
        runner = recording_runner(RawResult([], 4))
        assert authors.bind(runner).execute() == 4

    def test_void_query_cannot_fetch(self, recording_runner):
        from typedquery.binder import bind
        bound = bind(insert_book, recording_runner(), ('Emma',))
        with pytest.raises(TypeError, match='returns no rows'):
            bound.all()
