"""Immutable arithmetic formulas: construction, equality and evaluation.

A formula is built from infix text over numbers, variables, parentheses and
the four binary operators ``+ - * /``.  Construction validates the grammar
and normalizes every variable; evaluation never raises and reports runtime
problems (unknown variables, division by zero) as :class:`FormulaError`
values so that one bad cell cannot abort a batch recalculation.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from gridcalc._errors import (
    IllegalVariableError,
    MissingContentError,
    RejectedVariableError,
)
from gridcalc._utils import canonical_number, is_identifier
from gridcalc.calc._parser import (
    LPAREN,
    NUMBER,
    OPERATOR,
    VARIABLE,
    Token,
    tokenize,
    validate,
)

if TYPE_CHECKING:
    from gridcalc.calc._protocol import ValueLookup


@dataclass(frozen=True)
class FormulaError:
    """Result of a formula that could not be evaluated."""

    reason: str

    def __str__(self) -> str:
        return self.reason


_ADDITIVE = frozenset("+-")
_MULTIPLICATIVE = frozenset("*/")


def _identity(name: str) -> str:
    return name


def _apply(op: str, left: float, right: float) -> float | FormulaError:
    if op == '+':
        return left + right
    if op == '-':
        return left - right
    if op == '*':
        return left * right
    if right == 0:
        return FormulaError("Division by zero")
    return left / right


def _resolve(lookup: ValueLookup, name: str) -> float | FormulaError:
    """Numeric value of variable *name*, or a FormulaError if it has none."""
    try:
        raw = lookup(name)
    except Exception:
        return FormulaError(f"Unknown variable: {name}")
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return FormulaError(f"Variable {name} has no numeric value")
    try:
        return float(raw)
    except OverflowError:
        return FormulaError(f"Value of {name} is out of range")


def _fold(operators: list[str], values: list[float], ops: frozenset[str]) -> FormulaError | None:
    """Apply the pending operator on top of *operators* if it is in *ops*.

    The right operand is the value pushed last; the left operand is the one
    pushed before it.
    """
    if not operators or operators[-1] not in ops:
        return None
    op = operators.pop()
    right = values.pop()
    left = values.pop()
    result = _apply(op, left, right)
    if isinstance(result, FormulaError):
        return result
    values.append(result)
    return None


class Formula:
    """A validated, normalized arithmetic formula.

    Usage::

        f = Formula("x + y * 2", normalize=str.upper)
        str(f)          # "X+Y*2"
        f.variables     # ("X", "Y")
        f.evaluate({"X": 1.0, "Y": 3.0}.__getitem__)   # 7.0

    *normalize* is applied to every variable token; the result must still be
    an identifier and must satisfy *is_valid*, otherwise construction fails
    with a FormulaFormatError subclass.
    """

    __slots__ = ("_tokens", "_variables", "_text", "_key")

    def __init__(
        self,
        formula: str,
        normalize: Callable[[str], str] | None = None,
        is_valid: Callable[[str], bool] | None = None,
    ) -> None:
        if formula is None:
            raise MissingContentError("Formula text is required")
        if normalize is None:
            normalize = _identity

        tokens: list[Token] = []
        variables: dict[str, None] = {}
        for token in validate(tokenize(formula)):
            if token.kind == VARIABLE:
                name = normalize(token.text)
                if not is_identifier(name):
                    raise IllegalVariableError(
                        f"Variable {token.text!r} normalizes to {name!r}, which is not a legal identifier"
                    )
                if is_valid is not None and not is_valid(name):
                    raise RejectedVariableError(f"Variable {name!r} rejected by validation rule")
                token = Token(VARIABLE, name)
                variables.setdefault(name)
            tokens.append(token)

        self._tokens = tuple(tokens)
        self._variables = tuple(variables)
        self._text = "".join(t.text for t in self._tokens)
        self._key = tuple(
            canonical_number(t.text) if t.kind == NUMBER else t.text for t in self._tokens
        )

    @property
    def variables(self) -> tuple[str, ...]:
        """Distinct normalized variable names, in order of first use."""
        return self._variables

    @property
    def tokens(self) -> tuple[Token, ...]:
        return self._tokens

    # ------------------------------------------------------------------
    # Evaluation (two-stack infix)
    # ------------------------------------------------------------------

    def evaluate(self, lookup: ValueLookup) -> float | FormulaError:
        """Compute the formula's value, resolving variables via *lookup*.

        *lookup* receives a normalized variable name and returns its value,
        raising KeyError when the name has none.  Any exception from
        *lookup*, or a value that is not an int or float, makes the result a
        FormulaError.  Never raises.
        """
        values: list[float] = []
        operators: list[str] = []

        for token in self._tokens:
            kind = token.kind
            if kind == NUMBER or kind == VARIABLE:
                if kind == NUMBER:
                    value = float(token.text)
                else:
                    value = _resolve(lookup, token.text)
                    if isinstance(value, FormulaError):
                        return value
                values.append(value)
                err = _fold(operators, values, _MULTIPLICATIVE)
            elif kind == OPERATOR:
                err = None
                if token.text in _ADDITIVE:
                    err = _fold(operators, values, _ADDITIVE)
                operators.append(token.text)
            elif kind == LPAREN:
                operators.append(token.text)
                err = None
            else:  # RPAREN
                err = _fold(operators, values, _ADDITIVE)
                if err is None:
                    operators.pop()  # the matching "("
                    err = _fold(operators, values, _MULTIPLICATIVE)
            if err is not None:
                return err

        err = _fold(operators, values, _ADDITIVE)
        if err is not None:
            return err
        return values[-1]

    # ------------------------------------------------------------------
    # Dunder
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return self._text

    def __repr__(self) -> str:
        return f"Formula({self._text!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Formula):
            return NotImplemented
        return self._key == other._key

    def __hash__(self) -> int:
        return hash(self._key)
