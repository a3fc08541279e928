"""Name and number grammar shared by the formula engine and the cell store."""

from __future__ import annotations

import re

# Cell names and formula variables: a letter or underscore, then letters,
# digits or underscores.
IDENTIFIER_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

# Floating-point literal: digits with an optional fractional part, or a
# bare fractional part, then an optional exponent.
NUMBER_RE = re.compile(r"(?:\d+\.\d*|\d*\.\d+|\d+)(?:[eE][+-]?\d+)?")

# Typed cell entry also accepts a leading sign; formulas spell it as an
# operator instead.
SIGNED_NUMBER_RE = re.compile(rf"[+-]?(?:{NUMBER_RE.pattern})")


def is_identifier(name: object) -> bool:
    """True when *name* is a string matching the identifier grammar."""
    return isinstance(name, str) and IDENTIFIER_RE.fullmatch(name) is not None


def is_signed_number(text: str) -> bool:
    return SIGNED_NUMBER_RE.fullmatch(text) is not None


def canonical_number(token: str) -> str:
    """Render a numeric token through a double round-trip.

    ``"2.0"``, ``"2.000"`` and ``"2"`` all become ``"2.0"``.
    """
    return repr(float(token))
