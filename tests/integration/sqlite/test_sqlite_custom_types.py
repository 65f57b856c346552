"""
Enums, composites and scalar values stored in SQLite text and numeric columns.
"""
import pytest
from typedquery import Column, DecodeError, Param, QueryDescriptor

from tests.fixtures.queries import CustomComposite, SpongebobCharacter
from tests.fixtures.queries import insert_character_card, select_where_custom_type


def test_select_where_custom_type(sqlite_library):
    patrick = CustomComposite('incredible', 42, SpongebobCharacter.Patrick)
    bob = CustomComposite('a "fine", (day)', 7, SpongebobCharacter.Bob)
    insert_character_card.bind(sqlite_library, SpongebobCharacter.Patrick, patrick)
    insert_character_card.bind(sqlite_library, SpongebobCharacter.Bob, bob)

    assert select_where_custom_type.bind(sqlite_library, SpongebobCharacter.Patrick).one() == patrick
    assert select_where_custom_type.bind(sqlite_library, SpongebobCharacter.Bob).all() == [bob]
    assert select_where_custom_type.bind(sqlite_library, SpongebobCharacter.Squidward).opt() is None


def test_enum_stored_as_label(sqlite_library):
    card = CustomComposite('wow', 1, SpongebobCharacter.Squidward)
    insert_character_card.bind(sqlite_library, SpongebobCharacter.Squidward, card)
    assert sqlite_library.run('select character, card from character_card').rows == [
        ('Squidward', '(wow,1,Squidward)'),
    ]


def test_unknown_label_in_database(sqlite_library):
    sqlite_library.run("insert into character_card (character, card) values ('Bob', '(wow,1,Sandy)')")
    with pytest.raises(DecodeError) as exc_info:
        select_where_custom_type.bind(sqlite_library, SpongebobCharacter.Bob).one()
    assert exc_info.value.label == 'Sandy'
    assert exc_info.value.expected == ('Bob', 'Patrick', 'Squidward')


@pytest.fixture
def scalar_table(sqlite_conn):
    sqlite_conn.run('create table scalar_value (name text primary key, value)')
    return sqlite_conn


def test_scalar_values_round_trip(scalar_table, value_dict):
    """Each sample value comes back equal after a trip through an untyped column."""
    for key, (type_name, value) in value_dict.items():
        store = QueryDescriptor(
            f'store_{key}',
            'insert into scalar_value (name, value) values ($1, $2)',
            parameters=(Param('name', 'text'), Param('value', type_name)),
        )
        load = QueryDescriptor(
            f'load_{key}',
            'select value from scalar_value where name = $1',
            parameters=(Param('name', 'text'),),
            columns=(Column('value', type_name),),
        )
        store.bind(scalar_table, key, value)
        assert load.bind(scalar_table, key).one() == value, key
