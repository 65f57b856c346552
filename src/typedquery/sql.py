"""
Placeholder translation for prepared statements.

Statements are written with PostgreSQL numbered placeholders (`$1 .. $n`). The
driver each dialect talks to expects something else:

    postgresql (psycopg)  $n  → %s    arguments rearranged per occurrence
    sqlite (sqlite3)      $n  → ?n    arguments passed through unchanged

Translation runs through a single-pass tokenizer so that placeholders inside
string literals, quoted identifiers, comments and dollar-quoted bodies are
left alone:

    SQL → Tokenize → Rewrite placeholders → PreparedStatement (cached)

Main entry points:
- `prepare_statement(sql, style)` - Translate and cache a statement
- `count_placeholders(sql)` - Highest placeholder number referenced
"""
import re
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any

from typedquery.cache import cached

# =============================================================================
# Data Structures
# =============================================================================


class TokenType(Enum):
    """Token types identified during SQL parsing."""
    SQL_TEXT = auto()
    STRING_LITERAL = auto()
    QUOTED_IDENT = auto()
    COMMENT = auto()
    DOLLAR_QUOTED = auto()
    PLACEHOLDER = auto()        # $1
    PERCENT = auto()


@dataclass(slots=True)
class Token:
    """Token from SQL parsing."""
    type: TokenType
    text: str
    start: int
    end: int
    index: int = 0              # placeholder number, 1-based


class ParamStyle(Enum):
    """DBAPI paramstyle a strategy speaks."""
    FORMAT = 'format'           # %s
    NUMERIC = 'numeric'         # ?1


@dataclass(frozen=True, slots=True)
class PreparedStatement:
    """A statement rewritten for one driver.

    `order` holds, for each driver placeholder, the zero-based position of the
    argument it reads.
    """
    sql: str
    style: ParamStyle
    order: tuple[int, ...]
    count: int

    def arrange(self, params: Sequence[Any]) -> tuple | None:
        """Lay out positional arguments the way the driver reads them.

        Returns None for psycopg statements without placeholders so that
        literal percent signs are not treated as format markers.
        """
        if len(params) < self.count:
            raise ValueError(f'Statement references ${self.count} but {len(params)} '
                             'argument(s) were given')
        if self.style is ParamStyle.FORMAT:
            if not self.order:
                return None
            return tuple(params[i] for i in self.order)
        return tuple(params[:self.count])


# =============================================================================
# Regex Patterns
# =============================================================================

_TOKENIZE = re.compile(r"""
    (?P<string>[Ee]'(?:[^'\\]|\\.|'')*'|'(?:[^']|'')*')
    |(?P<ident>"(?:[^"]|"")*")
    |(?P<line_comment>--[^\n]*)
    |(?P<block_comment>/\*.*?\*/)
    |(?P<dollar>\$(?P<tag>[A-Za-z_][A-Za-z0-9_]*|)\$.*?\$(?P=tag)\$)
    |(?P<placeholder>\$(?P<index>\d+))
    |(?P<percent>%)
""", re.VERBOSE | re.DOTALL)


# =============================================================================
# Core Functions
# =============================================================================

def tokenize_sql(sql: str) -> list[Token]:
    """Parse SQL into tokens in a single pass.

    Parameters
        sql: SQL statement

    Returns
        List of tokens preserving all SQL text
    """
    tokens = []
    last_end = 0

    for match in _TOKENIZE.finditer(sql):
        start, end = match.span()

        if start > last_end:
            tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:start], last_end, start))

        index = 0
        if match.group('string'):
            ttype = TokenType.STRING_LITERAL
        elif match.group('ident'):
            ttype = TokenType.QUOTED_IDENT
        elif match.group('line_comment') or match.group('block_comment'):
            ttype = TokenType.COMMENT
        elif match.group('dollar'):
            ttype = TokenType.DOLLAR_QUOTED
        elif match.group('placeholder'):
            ttype = TokenType.PLACEHOLDER
            index = int(match.group('index'))
            if index < 1:
                raise ValueError(f'Invalid placeholder {match.group(0)} at offset {start}')
        else:
            ttype = TokenType.PERCENT

        tokens.append(Token(ttype, match.group(0), start, end, index))
        last_end = end

    if last_end < len(sql):
        tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:], last_end, len(sql)))

    return tokens


def count_placeholders(sql: str) -> int:
    """Return the highest placeholder number referenced by a statement.

    >>> count_placeholders('select * from t where a = $1 and b = $2 or c = $1')
    2
    >>> count_placeholders("select '$1'")
    0
    """
    return max((t.index for t in tokenize_sql(sql) if t.type is TokenType.PLACEHOLDER), default=0)


def translate_placeholders(sql: str, style: ParamStyle) -> PreparedStatement:
    """Rewrite `$n` placeholders into a driver paramstyle.

    >>> p = translate_placeholders("select $2, $1, '%' || $2", ParamStyle.FORMAT)
    >>> p.sql, p.order
    ("select %s, %s, '%%' || %s", (1, 0, 1))
    >>> translate_placeholders('select $2, $1', ParamStyle.NUMERIC).sql
    'select ?2, ?1'
    """
    tokens = tokenize_sql(sql)
    order = [t.index - 1 for t in tokens if t.type is TokenType.PLACEHOLDER]
    count = max(order, default=-1) + 1

    parts = []
    for token in tokens:
        if token.type is TokenType.PLACEHOLDER:
            parts.append('%s' if style is ParamStyle.FORMAT else f'?{token.index}')
        elif style is ParamStyle.FORMAT and order:
            # psycopg treats every % as a format marker once arguments are given
            parts.append(token.text.replace('%', '%%'))
        else:
            parts.append(token.text)

    return PreparedStatement(''.join(parts), style, tuple(order), count)


@cached('statements', maxsize=512, ttl=3600)
def prepare_statement(sql: str, style: ParamStyle) -> PreparedStatement:
    """Translate a statement for a paramstyle, reusing earlier translations."""
    return translate_placeholders(sql, style)


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
