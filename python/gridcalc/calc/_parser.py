"""Formula tokenizer and grammar validation."""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from typing import NamedTuple

from gridcalc._errors import FormulaFormatError
from gridcalc._utils import IDENTIFIER_RE, NUMBER_RE

# ---------------------------------------------------------------------------
# Token kinds
# ---------------------------------------------------------------------------

LPAREN = "lparen"
RPAREN = "rparen"
OPERATOR = "operator"
VARIABLE = "variable"
NUMBER = "number"
INVALID = "invalid"

OPERATORS = frozenset("+-*/")

# Kinds that may start an operand position / end an expression.
_OPERAND_START = frozenset({NUMBER, VARIABLE, LPAREN})
_OPERAND_END = frozenset({NUMBER, VARIABLE, RPAREN})

# Number comes before variable so "1e5" is one numeric token; anything not
# covered by the other alternatives falls through to a one-character
# invalid token.
_TOKEN_RE = re.compile(
    rf"(?P<{LPAREN}>\()"
    rf"|(?P<{RPAREN}>\))"
    rf"|(?P<{OPERATOR}>[+\-*/])"
    rf"|(?P<{NUMBER}>{NUMBER_RE.pattern})"
    rf"|(?P<{VARIABLE}>{IDENTIFIER_RE.pattern})"
    r"|(?P<space>\s+)"
    rf"|(?P<{INVALID}>.)",
    re.DOTALL,
)


class Token(NamedTuple):
    kind: str
    text: str

    def __str__(self) -> str:
        return self.text


def tokenize(formula: str) -> Iterator[Token]:
    """Lazily split *formula* into tokens, dropping whitespace."""
    for m in _TOKEN_RE.finditer(formula):
        kind = m.lastgroup
        if kind == "space":
            continue
        yield Token(kind, m.group())  # type: ignore[arg-type]


def _describe(token: Token) -> str:
    return f"{token.kind} {token.text!r}"


def validate(tokens: Iterable[Token]) -> list[Token]:
    """Check a token sequence against the formula grammar.

    Returns the tokens as a list.  Raises FormulaFormatError naming the
    first rule that fails.
    """
    seq = list(tokens)
    if not seq:
        raise FormulaFormatError("Formula must contain at least one token")

    for token in seq:
        if token.kind == INVALID:
            raise FormulaFormatError(f"Invalid token {token.text!r} in formula")

    first, last = seq[0], seq[-1]
    if first.kind not in _OPERAND_START:
        raise FormulaFormatError(f"Formula cannot begin with {_describe(first)}")
    if last.kind not in _OPERAND_END:
        raise FormulaFormatError(f"Formula cannot end with {_describe(last)}")

    depth = 0
    prev: Token | None = None
    for token in seq:
        if token.kind == LPAREN:
            depth += 1
        elif token.kind == RPAREN:
            depth -= 1
            if depth < 0:
                raise FormulaFormatError("Closing parenthesis without matching opening parenthesis")

        if prev is not None:
            if prev.kind in (LPAREN, OPERATOR):
                if token.kind not in _OPERAND_START:
                    raise FormulaFormatError(
                        f"Expected number, variable or '(' after {prev.text!r}, "
                        f"found {_describe(token)}"
                    )
            elif token.kind not in (OPERATOR, RPAREN):
                raise FormulaFormatError(
                    f"Expected operator or ')' after {prev.text!r}, found {_describe(token)}"
                )
        prev = token

    if depth != 0:
        raise FormulaFormatError(f"Unbalanced parentheses: {depth} left unclosed")
    return seq
