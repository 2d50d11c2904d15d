"""Selector expressions: which task positions a command applies to."""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Callable, Union

from .models import EmptyBehaviour, InvalidPatternError

TextLookup = Callable[[int], "str | None"]

DIGITS_RE = re.compile(r"\+?[0-9]+")


@dataclass(frozen=True, slots=True)
class AllSelector:
    def matches(self, position: int, text_at: TextLookup) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class IndexSelector:
    index: int

    def matches(self, position: int, text_at: TextLookup) -> bool:
        return position == self.index


@dataclass(frozen=True, slots=True)
class RangeSelector:
    """Inclusive range of 0-based positions. ``start > end`` matches nothing."""

    start: int
    end: int

    def matches(self, position: int, text_at: TextLookup) -> bool:
        return self.start <= position <= self.end


@dataclass(frozen=True, slots=True)
class PatternSelector:
    pattern: re.Pattern[str]

    def matches(self, position: int, text_at: TextLookup) -> bool:
        text = text_at(position)
        if text is None:
            return False
        return self.pattern.search(text) is not None


Selector = Union[AllSelector, IndexSelector, RangeSelector, PatternSelector]


def _parse_number(value: str) -> int | None:
    if not DIGITS_RE.fullmatch(value):
        return None
    return int(value)


def parse_selector(expression: str, empty: EmptyBehaviour = "last") -> Selector:
    """Turn a user expression into a selector.

    Numbers are 1-based on the command line and 0-based here, so ``"3"``
    selects position 2 and ``"2-4"`` selects positions 1 through 3. ``"0"``
    becomes index -1, which never matches. Anything that is not a number or a
    range is compiled as a regular expression and searched for in task text.
    """
    if expression == "":
        if empty == "all":
            return AllSelector()
        return IndexSelector(0)

    number = _parse_number(expression)
    if number is not None:
        return IndexSelector(number - 1)

    if "-" in expression:
        low, high = expression.split("-", 1)
        start = _parse_number(low)
        end = _parse_number(high)
        if start is not None and end is not None:
            return RangeSelector(start - 1, end - 1)

    try:
        pattern = re.compile(expression)
    except re.error as exc:
        raise InvalidPatternError(f"Invalid pattern '{expression}': {exc}") from exc
    return PatternSelector(pattern)
