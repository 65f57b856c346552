"""
Typed query execution for PostgreSQL and SQLite.

Queries are declared once as descriptors, bound to a client or transaction,
and run with an explicit row-count expectation:

    cn = connect(drivername='sqlite', database='library.db')
    authors.bind(cn).all()
    author_name_by_id.bind(cn, 1).opt()
    select_where_custom_type.bind(cn, SpongebobCharacter.Patrick).one()

    tx = cn.begin()
    insert_book.bind(tx, 'The Great Gatsby')
    tx.commit()
"""
__version__ = '0.1.0'

from typedquery.adapters import ArrayCodec, Codec, CompositeCodec
from typedquery.adapters import DomainCodec, EnumCodec, Field
from typedquery.connection import Client, connect, dispose_all_engines
from typedquery.cursor import RawResult, StatementRunner
from typedquery.descriptor import Column, Param, QueryDescriptor
from typedquery.exceptions import BindError, CardinalityError, DatabaseError
from typedquery.exceptions import DecodeError, TransactionStateError
from typedquery.exceptions import TransportError, TypeConversionError
from typedquery.options import DatabaseOptions
from typedquery.query import BoundQuery
from typedquery.transaction import Transaction
from typedquery.transaction import Transaction as transaction
from typedquery.types import CodecRegistry, get_codec_registry

codec_registry = get_codec_registry()


def begin(cn: Client) -> Transaction:
    """Start a unit of work on a client.
    """
    return cn.begin()


__all__ = [
    'connect',
    'begin',
    'Client',
    'Transaction',
    'transaction',
    'DatabaseOptions',
    'dispose_all_engines',
    'QueryDescriptor',
    'Param',
    'Column',
    'BoundQuery',
    'StatementRunner',
    'RawResult',
    'CodecRegistry',
    'codec_registry',
    'get_codec_registry',
    'Codec',
    'ArrayCodec',
    'CompositeCodec',
    'DomainCodec',
    'EnumCodec',
    'Field',
    'DatabaseError',
    'BindError',
    'TypeConversionError',
    'DecodeError',
    'CardinalityError',
    'TransportError',
    'TransactionStateError',
]
