"""
PostgreSQL text-format literals for records and arrays.

Composite values travel as record literals and arrays as array literals
whenever the driver has no native adapter for the type. Both functions work
on already-formatted element text; element conversion belongs to the codecs.

>>> format_record(['1', None, 'a b'])
'(1,,"a b")'
>>> parse_record('(1,,"a b")')
['1', None, 'a b']
>>> format_array(['x', None, ''])
'{x,NULL,""}'
>>> parse_array('{x,NULL,""}')
['x', None, '']
"""
from collections.abc import Sequence

__all__ = [
    'format_array',
    'format_record',
    'parse_array',
    'parse_record',
]

_ARRAY_SPECIAL = frozenset('{},"\\')
_RECORD_SPECIAL = frozenset('(),"\\')


def _needs_array_quotes(text: str) -> bool:
    if text == '' or text.upper() == 'NULL':
        return True
    return any(c in _ARRAY_SPECIAL or c.isspace() for c in text)


def _needs_record_quotes(text: str) -> bool:
    if text == '':
        return True
    return any(c in _RECORD_SPECIAL or c.isspace() for c in text)


def format_array(items: Sequence[str | None], nested: bool = False) -> str:
    """Build an array literal from element text.

    When `nested` is set the items are themselves array literals and are
    written without quoting.

    >>> format_array(['{1,2}', '{3,4}'], nested=True)
    '{{1,2},{3,4}}'
    >>> format_array([])
    '{}'
    """
    parts = []
    for item in items:
        if item is None:
            parts.append('NULL')
        elif nested or not _needs_array_quotes(item):
            parts.append(item)
        else:
            escaped = item.replace('\\', '\\\\').replace('"', '\\"')
            parts.append(f'"{escaped}"')
    return '{' + ','.join(parts) + '}'


def format_record(fields: Sequence[str | None]) -> str:
    """Build a record literal from field text. NULL fields are left empty.
    """
    parts = []
    for item in fields:
        if item is None:
            parts.append('')
        elif not _needs_record_quotes(item):
            parts.append(item)
        else:
            escaped = item.replace('\\', '\\\\').replace('"', '""')
            parts.append(f'"{escaped}"')
    return '(' + ','.join(parts) + ')'


def _skip_space(text: str, i: int) -> int:
    while i < len(text) and text[i].isspace():
        i += 1
    return i


def _read_quoted_array_item(body: str, i: int) -> tuple[str, int]:
    """Read a double-quoted array element starting at the opening quote."""
    buf = []
    i += 1
    while True:
        if i >= len(body):
            raise ValueError('unterminated quoted array element')
        ch = body[i]
        if ch == '\\':
            i += 1
            if i >= len(body):
                raise ValueError('dangling escape in array element')
            buf.append(body[i])
        elif ch == '"':
            return ''.join(buf), i + 1
        else:
            buf.append(ch)
        i += 1


def _read_sub_array(body: str, i: int) -> tuple[str, int]:
    """Read a balanced `{...}` sub-array starting at the opening brace."""
    start = i
    depth = 0
    in_quotes = False
    while i < len(body):
        ch = body[i]
        if in_quotes:
            if ch == '\\':
                i += 1
            elif ch == '"':
                in_quotes = False
        elif ch == '"':
            in_quotes = True
        elif ch == '{':
            depth += 1
        elif ch == '}':
            depth -= 1
            if depth == 0:
                return body[start:i + 1], i + 1
        i += 1
    raise ValueError('unbalanced braces in array literal')


def _read_bare_array_item(body: str, i: int) -> tuple[str | None, int]:
    buf = []
    while i < len(body) and body[i] != ',':
        ch = body[i]
        if ch == '\\':
            i += 1
            if i >= len(body):
                raise ValueError('dangling escape in array element')
            buf.append(body[i])
        elif ch in '{}"':
            raise ValueError(f'unexpected {ch!r} at offset {i} of array literal')
        else:
            buf.append(ch)
        i += 1
    token = ''.join(buf).strip()
    if not token:
        raise ValueError('empty unquoted array element')
    return (None if token.upper() == 'NULL' else token), i


def parse_array(text: str) -> list[str | None]:
    """Split an array literal into element text.

    Nested arrays come back as their own literal text, so a nested array codec
    can parse them again. An optional dimension decoration (`[1:2]={...}`) is
    ignored.

    >>> parse_array('{{1,2},{3,4}}')
    ['{1,2}', '{3,4}']
    >>> parse_array('{}')
    []
    """
    text = text.strip()
    if text.startswith('['):
        eq = text.find('=')
        if eq < 0:
            raise ValueError('malformed array dimension decoration')
        text = text[eq + 1:].strip()
    if len(text) < 2 or text[0] != '{' or text[-1] != '}':
        raise ValueError('array literal must be enclosed in braces')

    body = text[1:-1]
    items: list[str | None] = []
    if not body.strip():
        return items

    i = 0
    while True:
        i = _skip_space(body, i)
        if i >= len(body):
            raise ValueError('missing array element after ","')
        if body[i] == '"':
            item, i = _read_quoted_array_item(body, i)
        elif body[i] == '{':
            item, i = _read_sub_array(body, i)
        else:
            item, i = _read_bare_array_item(body, i)
        items.append(item)

        i = _skip_space(body, i)
        if i >= len(body):
            return items
        if body[i] != ',':
            raise ValueError(f'expected "," at offset {i} of array literal')
        i += 1


def parse_record(text: str) -> list[str | None]:
    """Split a record literal into field text. Empty unquoted fields are NULL.

    >>> parse_record('(,"",x)')
    [None, '', 'x']
    """
    text = text.strip()
    if len(text) < 2 or text[0] != '(' or text[-1] != ')':
        raise ValueError('record literal must be enclosed in parentheses')

    body = text[1:-1]
    fields: list[str | None] = []
    i = 0
    while True:
        buf = []
        quoted = False
        in_quotes = False
        while i < len(body) and (in_quotes or body[i] != ','):
            ch = body[i]
            if ch == '\\':
                i += 1
                if i >= len(body):
                    raise ValueError('dangling escape in record field')
                buf.append(body[i])
            elif in_quotes:
                if ch == '"':
                    if i + 1 < len(body) and body[i + 1] == '"':
                        buf.append('"')
                        i += 1
                    else:
                        in_quotes = False
                else:
                    buf.append(ch)
            elif ch == '"':
                in_quotes = True
                quoted = True
            elif ch in '()':
                raise ValueError(f'unexpected {ch!r} at offset {i} of record literal')
            else:
                buf.append(ch)
            i += 1
        if in_quotes:
            raise ValueError('unterminated quoted record field')

        fields.append(''.join(buf) if buf or quoted else None)
        if i >= len(body):
            return fields
        i += 1


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
