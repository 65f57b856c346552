"""
Value codecs.

This package provides the following components:

- literal: PostgreSQL record and array text literals
- scalar: Codecs for built-in scalar types and the Codec base class
- custom: Codecs for enums, composites, domains and arrays

Conversion principles:
1. Python → Database: codecs validate and encode every bound parameter
2. Database → Python: codecs decode every declared result column; nothing
   is silently coerced
"""
from typedquery.adapters.custom import ArrayCodec, CompositeCodec, DomainCodec
from typedquery.adapters.custom import EnumCodec, Field
from typedquery.adapters.scalar import BoolCodec, ByteaCodec, Codec, DateCodec
from typedquery.adapters.scalar import FloatCodec, IntegerCodec, JsonCodec
from typedquery.adapters.scalar import NumericCodec, TextCodec, TimeCodec
from typedquery.adapters.scalar import TimestampCodec, UuidCodec
