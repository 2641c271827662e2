"""Restriction expressions — validation rules attached to parameters.

Two evaluation modes share one Restriction object; the consuming
deserializer picks the mode:

- Numeric: a small AND/OR language of comparisons, e.g. ``"positive & even"``
  or ``">=1 & <=6 | =20"``.
- Text: the expression is a regular expression that must match the whole
  value (``matches_text``), or a character class for single characters
  (``matches_char``).

Numeric grammar::

    restriction := and_group ("&" and_group)*
    and_group   := term ("|" term)*
    term        := shorthand | ["!"] op number
    op          := ">=" | "<=" | ">" | "<" | "=" | "%" | "^"
    shorthand   := positive | negative | nonpositive | nonnegative | even | odd

``%n`` means "evenly divisible by n"; ``^n`` means "is an integer power of
n"; ``!`` inverts a term. A value satisfies the restriction when every
AND-group has at least one satisfied term.

INVARIANT: Expressions compile lazily on first evaluation and are cached;
malformed expressions raise InvalidRestrictionError at that point, never at
registration.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

from chatcmd.domain.errors import DeserializationError, InvalidRestrictionError

SHORTHANDS: dict[str, str] = {
    "positive": ">0",
    "negative": "<0",
    "nonpositive": "<=0",
    "nonnegative": ">=0",
    "even": "%2",
    "odd": "!%2",
}

INPUT_PLACEHOLDER = "{INPUT}"

_TERM_RE = re.compile(r"(!?)(>=|<=|>|<|=|\^|%)(-?(?:\d+(?:\.\d*)?|\.\d+))")
_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class Comparison:
    """One compiled OR-term."""

    op: str
    number: float
    invert: bool = False

    def test(self, value: float) -> bool:
        satisfied = self._compare(value)
        return satisfied != self.invert

    def _compare(self, value: float) -> bool:
        number = self.number
        if self.op == ">=":
            return value >= number
        if self.op == "<=":
            return value <= number
        if self.op == ">":
            return value > number
        if self.op == "<":
            return value < number
        if self.op == "=":
            return value == number
        if self.op == "%":
            return number != 0 and value % number == 0
        # "^": value is number**k for some integer k
        if number == 1:
            return value == 1
        if value <= 0 or number <= 0:
            return False
        exponent = math.log(value) / math.log(number)
        return math.isclose(exponent, round(exponent), abs_tol=1e-9)


CompiledRestriction = tuple[tuple[Comparison, ...], ...]


def _parse_number(literal: str) -> float:
    value = float(literal)
    return int(value) if value.is_integer() and "." not in literal else value


def parse_term(term: str) -> Comparison:
    """Compile a single OR-term, expanding shorthands."""
    keyword = term.lower().replace("-", "")
    term = SHORTHANDS.get(keyword, term)
    match = _TERM_RE.fullmatch(term)
    if match is None:
        msg = f"The condition {term} is not valid."
        raise InvalidRestrictionError(msg)
    invert, op, literal = match.groups()
    return Comparison(op=op, number=_parse_number(literal), invert=bool(invert))


def parse_expression(expression: str) -> CompiledRestriction:
    """Compile a numeric restriction into AND-groups of OR-terms."""
    condition = _WHITESPACE_RE.sub("", expression)
    return tuple(
        tuple(parse_term(term) for term in group.split("|")) for group in condition.split("&")
    )


def evaluate(compiled: CompiledRestriction, value: float) -> bool:
    """Check *value* against a compiled restriction."""
    for group in compiled:
        if not any(term.test(value) for term in group):
            return False
    return True


class Restriction:
    """A restriction expression with an optional custom error message.

    Args:
        expression: Numeric mini-language or regular expression, depending on
            the parameter type that consumes it.
        error: Message shown when the restriction fails. ``{INPUT}`` is
            replaced with the offending input. Empty means the generic
            message (which also asks the dispatcher to show usage).
    """

    __slots__ = ("_char_pattern", "_compiled", "_pattern", "error", "expression")

    def __init__(self, expression: str, error: str = "") -> None:
        self.expression = expression
        self.error = error
        self._compiled: CompiledRestriction | None = None
        self._pattern: re.Pattern[str] | None = None
        self._char_pattern: re.Pattern[str] | None = None

    def __repr__(self) -> str:
        return f"Restriction({self.expression!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Restriction):
            return NotImplemented
        return (self.expression, self.error) == (other.expression, other.error)

    def __hash__(self) -> int:
        return hash((self.expression, self.error))

    # ------------------------------------------------------------------
    # Numeric mode
    # ------------------------------------------------------------------

    def compiled(self) -> CompiledRestriction:
        if self._compiled is None:
            self._compiled = parse_expression(self.expression)
        return self._compiled

    def allows(self, value: float) -> bool:
        """Evaluate the numeric mini-language against *value*."""
        return evaluate(self.compiled(), value)

    # ------------------------------------------------------------------
    # Text mode
    # ------------------------------------------------------------------

    def pattern(self) -> re.Pattern[str]:
        if self._pattern is None:
            self._pattern = _compile_regex(self.expression)
        return self._pattern

    def matches_text(self, text: str) -> re.Match[str] | None:
        """Whole-string regex match of *text* against the expression."""
        return self.pattern().fullmatch(text)

    def matches_char(self, char: str) -> bool:
        """Treat the expression as the body of a regex character class."""
        if self._char_pattern is None:
            self._char_pattern = _compile_regex(f"[{self.expression}]")
        return self._char_pattern.fullmatch(char) is not None

    # ------------------------------------------------------------------

    def failure(self, value: object) -> DeserializationError:
        """Build the error reported when *value* fails this restriction."""
        if self.error:
            return DeserializationError(self.error.replace(INPUT_PLACEHOLDER, str(value)))
        return DeserializationError(f"{value} does not meet the restriction.", show_usage=True)


def _compile_regex(expression: str) -> re.Pattern[str]:
    try:
        return re.compile(expression)
    except re.error as exc:
        msg = f"The restriction {expression!r} is not a valid regular expression: {exc}"
        raise InvalidRestrictionError(msg) from exc
