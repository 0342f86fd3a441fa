"""Parser for the time-series query language.

Grammar::

    SELECT agg(field) [, agg(field) ...] FROM table
        [WHERE field <op> 'value']
        WINDOW <amount><unit>
        [GROUP BY field [, field ...]]

``unit`` is one of ``s``, ``m``, ``h`` or ``d``.  Text after the last
recognised clause is ignored.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field as dc_field
from datetime import timedelta
from typing import Callable, Optional, TypeVar

__all__ = [
    "ParseError",
    "AggregationKind",
    "Aggregation",
    "WindowSpec",
    "FilterOp",
    "FilterExpr",
    "Query",
    "parse_query",
]

_T = TypeVar("_T")

_MULTISPACE = frozenset(" \t\r\n")
_DIGITS = frozenset("0123456789")
_U64_MAX = 2**64 - 1
_NANOS_PER_SECOND = 1_000_000_000
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}


class ParseError(ValueError):
    """Raised when a query cannot be parsed."""

    def __init__(self, message: str, position: int) -> None:
        super().__init__(message)
        self.position = position


class AggregationKind(enum.Enum):
    AVG = "avg"
    SUM = "sum"
    COUNT = "count"
    MIN = "min"
    MAX = "max"


@dataclass(frozen=True)
class Aggregation:
    """An aggregation function applied to a field."""

    kind: AggregationKind
    field: str


@dataclass(frozen=True)
class WindowSpec:
    """Width of a time window, in nanoseconds."""

    duration_ns: int

    @property
    def duration(self) -> timedelta:
        """The window width as a timedelta (microsecond resolution)."""
        return timedelta(microseconds=self.duration_ns // 1000)


class FilterOp(enum.Enum):
    EQ = "="
    GT = ">"
    LT = "<"
    GTE = ">="
    LTE = "<="


@dataclass(frozen=True)
class FilterExpr:
    """A ``field <op> 'value'`` condition."""

    field: str
    op: FilterOp
    value: str


@dataclass
class Query:
    """A parsed query."""

    select: list[Aggregation]
    source: str
    window: WindowSpec
    filter: Optional[FilterExpr] = None
    group_by: Optional[list[str]] = dc_field(default=None)


class _Cursor:
    """Position within the query text, with backtracking."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def error(self, expected: str) -> ParseError:
        return ParseError(f"expected {expected} at position {self.pos}", self.pos)

    def peek(self) -> str:
        return self.text[self.pos : self.pos + 1]

    def tag(self, word: str, *, ignore_case: bool = False) -> str:
        end = self.pos + len(word)
        chunk = self.text[self.pos : end]
        matches = chunk.lower() == word.lower() if ignore_case else chunk == word
        if not matches:
            raise self.error(repr(word))
        self.pos = end
        return chunk

    def take_while(self, predicate: Callable[[str], bool]) -> str:
        start = self.pos
        text = self.text
        while self.pos < len(text) and predicate(text[self.pos]):
            self.pos += 1
        return text[start : self.pos]

    def take_while1(self, predicate: Callable[[str], bool], what: str) -> str:
        taken = self.take_while(predicate)
        if not taken:
            raise self.error(what)
        return taken

    def multispace0(self) -> None:
        self.take_while(_MULTISPACE.__contains__)

    def multispace1(self) -> None:
        self.take_while1(_MULTISPACE.__contains__, "whitespace")

    def attempt(self, parser: Callable[["_Cursor"], _T]) -> Optional[_T]:
        """Run *parser*; on failure restore the position and return None."""
        saved = self.pos
        try:
            return parser(self)
        except ParseError:
            self.pos = saved
            return None

    def separated_list(
        self,
        item: Callable[["_Cursor"], _T],
        separator: Callable[["_Cursor"], object],
    ) -> list[_T]:
        """Zero or more *item*s separated by *separator*."""
        items: list[_T] = []
        first = self.attempt(item)
        if first is None:
            return items
        items.append(first)
        while True:
            saved = self.pos
            if self.attempt(separator) is None:
                return items
            nxt = self.attempt(item)
            if nxt is None:
                self.pos = saved
                return items
            items.append(nxt)


def _is_ident_char(char: str) -> bool:
    return char.isalnum() or char == "_"


def _is_ascii_alnum(char: str) -> bool:
    return char.isascii() and char.isalnum()


def _comma(cursor: _Cursor) -> None:
    cursor.multispace0()
    cursor.tag(",")
    cursor.multispace0()


def _identifier(cursor: _Cursor) -> str:
    return cursor.take_while1(_is_ident_char, "identifier")


def _aggregation(cursor: _Cursor) -> Aggregation:
    for kind in AggregationKind:
        if cursor.attempt(lambda c, k=kind: c.tag(k.value, ignore_case=True)) is not None:
            break
    else:
        raise cursor.error("aggregation function")
    cursor.tag("(")
    name = _identifier(cursor)
    cursor.tag(")")
    return Aggregation(kind, name)


_OPERATORS = ("=", ">=", "<=", ">", "<")


def _where_clause(cursor: _Cursor) -> FilterExpr:
    cursor.multispace1()
    cursor.tag("WHERE", ignore_case=True)
    cursor.multispace1()
    name = _identifier(cursor)
    cursor.multispace0()
    for symbol in _OPERATORS:
        if cursor.attempt(lambda c, s=symbol: c.tag(s)) is not None:
            op = FilterOp(symbol)
            break
    else:
        raise cursor.error("comparison operator")
    cursor.multispace0()
    cursor.tag("'")
    value = cursor.take_while1(lambda c: c != "'", "quoted value")
    cursor.tag("'")
    return FilterExpr(name, op, value)


def _window_clause(cursor: _Cursor) -> WindowSpec:
    cursor.multispace1()
    cursor.tag("WINDOW", ignore_case=True)
    cursor.multispace1()
    amount_pos = cursor.pos
    amount = int(cursor.take_while1(_DIGITS.__contains__, "window amount"))
    if amount > _U64_MAX:
        raise ParseError(f"window amount out of range at position {amount_pos}", amount_pos)
    unit = cursor.take_while1(str.isalpha, "window unit")
    try:
        seconds = amount * _UNIT_SECONDS[unit]
    except KeyError:
        raise ParseError(f"unknown window unit {unit!r} at position {cursor.pos}", cursor.pos) from None
    if seconds > _U64_MAX:
        raise ParseError(f"window too large at position {amount_pos}", amount_pos)
    return WindowSpec(seconds * _NANOS_PER_SECOND)


def _group_by_clause(cursor: _Cursor) -> list[str]:
    cursor.multispace1()
    cursor.tag("GROUP BY", ignore_case=True)
    cursor.multispace1()
    return cursor.separated_list(_identifier, _comma)


def parse_query(text: str) -> Query:
    """Parse *text* into a :class:`Query`, raising :class:`ParseError` on failure."""
    cursor = _Cursor(text)
    cursor.tag("SELECT", ignore_case=True)
    cursor.multispace1()
    select = cursor.separated_list(_aggregation, _comma)

    cursor.multispace1()
    cursor.tag("FROM", ignore_case=True)
    cursor.multispace1()
    source = cursor.take_while1(_is_ascii_alnum, "table name")

    where = cursor.attempt(_where_clause)
    window = _window_clause(cursor)
    group_by = cursor.attempt(_group_by_clause)

    return Query(select=select, source=source, window=window, filter=where, group_by=group_by)