"""Unit tests for parameter binding.

Binding never reaches the execution target; every failure is checked against a
recording runner that must see zero calls.
"""
import datetime
from typing import NamedTuple

import pytest
from typedquery import BindError, BoundQuery, Param, QueryDescriptor

from tests.fixtures.queries import AuthorNameStartingWithParams, CustomComposite
from tests.fixtures.queries import SpongebobCharacter, author_name_by_id
from tests.fixtures.queries import author_name_starting_with, insert_book
from tests.fixtures.queries import insert_character_card, rename_author


class StartParams(NamedTuple):
    start_str: str


class TestPositional:

    def test_encodes_in_declared_order(self, recording_runner):
        runner = recording_runner()
        bound = author_name_by_id.bind(runner, 1)
        assert isinstance(bound, BoundQuery)
        assert bound.params == (1,)
        assert runner.calls == []

    def test_custom_types_are_encoded(self, recording_runner):
        runner = recording_runner(1)
        card = CustomComposite('wow', 3, SpongebobCharacter.Bob)
        assert insert_character_card.bind(runner, SpongebobCharacter.Patrick, card) == 1
        assert runner.calls == [(insert_character_card.statement, ('Patrick', '(wow,3,Bob)'))]

    @pytest.mark.parametrize('args', [(), (1, 2)])
    def test_arity(self, recording_runner, args):
        runner = recording_runner()
        with pytest.raises(BindError, match=rf'author_name_by_id\(\) takes 1 parameter\(s\), got {len(args)}'):
            author_name_by_id.bind(runner, *args)
        assert runner.calls == []

    def test_type_mismatch(self, recording_runner):
        runner = recording_runner()
        with pytest.raises(BindError, match=r'parameter \$1 \(id\)'):
            author_name_by_id.bind(runner, '1')
        assert runner.calls == []

    def test_null_in_non_nullable(self, recording_runner):
        runner = recording_runner()
        with pytest.raises(BindError, match='is not nullable'):
            insert_book.bind(runner, None)
        assert runner.calls == []

    def test_null_in_nullable(self, recording_runner):
        descriptor = QueryDescriptor('touch', 'update book set published = $1',
                                     parameters=(Param('published', 'date', nullable=True),))
        runner = recording_runner(3)
        assert descriptor.bind(runner, None) == 3
        assert runner.calls == [('update book set published = $1', (None,))]

    def test_encode_error_is_chained(self, recording_runner):
        with pytest.raises(BindError) as exc_info:
            author_name_by_id.bind(recording_runner(), 1 << 40)
        assert 'out of range' in str(exc_info.value)
        assert exc_info.value.__cause__ is not None

    def test_void_returns_rowcount(self, recording_runner):
        runner = recording_runner(1)
        assert insert_book.bind(runner, 'The Great Gatsby') == 1
        assert runner.calls == [('insert into book (title) values ($1)', ('The Great Gatsby',))]


class TestNamed:

    def test_dataclass(self, recording_runner):
        bound = author_name_starting_with.params(recording_runner(), AuthorNameStartingWithParams('J'))
        assert bound.params == ('J',)

    def test_namedtuple_and_mapping(self, recording_runner):
        runner = recording_runner()
        assert author_name_starting_with.params(runner, StartParams('J')).params == ('J',)
        assert author_name_starting_with.params(runner, {'start_str': 'J'}).params == ('J',)

    def test_values_placed_by_name(self, recording_runner):
        runner = recording_runner(1)
        assert rename_author.params(runner, {'name': 'Janet', 'id': 1}) == 1
        assert runner.calls[0][1] == (1, 'Janet')

    def test_missing_field(self, recording_runner):
        runner = recording_runner()
        with pytest.raises(BindError, match=r"missing \['id'\]"):
            rename_author.params(runner, {'name': 'Janet'})
        assert runner.calls == []

    def test_extra_field(self, recording_runner):
        runner = recording_runner()
        with pytest.raises(BindError, match=r"unexpected \['published'\]"):
            rename_author.params(runner, {'id': 1, 'name': 'Janet',
                                          'published': datetime.date(2020, 1, 1)})
        assert runner.calls == []

    def test_field_type_mismatch(self, recording_runner):
        runner = recording_runner()
        with pytest.raises(BindError, match=r'parameter \$1 \(id\)'):
            rename_author.params(runner, {'id': 'one', 'name': 'Janet'})
        assert runner.calls == []

    def test_unsupported_container(self, recording_runner):
        with pytest.raises(BindError, match='dataclass, NamedTuple or mapping'):
            rename_author.params(recording_runner(), [1, 'Janet'])

    def test_dataclass_class_is_not_an_instance(self, recording_runner):
        with pytest.raises(BindError):
            author_name_starting_with.params(recording_runner(), AuthorNameStartingWithParams)
