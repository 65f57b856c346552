"""
Test values for codec and round-trip tests.

Each entry pairs a registered type name with a Python value the codec for
that type accepts, so the same samples serve unit and integration tests.
"""
import datetime
import decimal
import math
import uuid

import pytest


@pytest.fixture(scope='module')
def value_dict():
    """Return a dictionary of test values for all major types"""
    return {
        # Integers
        'int_value': ('int4', 42),
        'big_int': ('int8', 9223372036854775807),  # Max int64
        'small_int': ('int2', -32768),  # Min int16

        # Boolean
        'bool_true': ('bool', True),
        'bool_false': ('bool', False),

        # Floating point
        'float_value': ('float8', math.pi),
        'decimal_value': ('numeric', decimal.Decimal('123456.789123')),

        # String types
        'text_value': ('text', 'Lorem ipsum dolor sit amet, consectetur adipiscing elit.'),
        'quoted_text': ('text', 'It\'s "quoted", {braced} and \\escaped'),

        # Date and time
        'date_value': ('date', datetime.date(2023, 5, 15)),
        'time_value': ('time', datetime.time(14, 30, 45)),
        'datetime_value': ('timestamp', datetime.datetime(2023, 5, 15, 14, 30, 45)),
        'datetime_tz': ('timestamptz', datetime.datetime(2023, 5, 15, 14, 30, 45,
                                                         tzinfo=datetime.timezone.utc)),

        # Other
        'uuid_value': ('uuid', uuid.UUID('12345678-1234-5678-1234-567812345678')),
        'json_value': ('jsonb', {'a': 1, 'b': [1, 2, 3], 'c': None}),
        'bytes_value': ('bytea', b'\x00\x01binary\xff'),
    }
