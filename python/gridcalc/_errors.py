"""Exception types raised by the cell store and formula constructor."""

from __future__ import annotations


class GridCalcError(Exception):
    """Base class for every error gridcalc raises."""


class InvalidNameError(GridCalcError, ValueError):
    """A cell name is missing or does not match the identifier grammar."""

    def __init__(self, name: object) -> None:
        super().__init__(f"Invalid cell name: {name!r}")
        self.name = name


class FormulaFormatError(GridCalcError, ValueError):
    """Formula text violates the formula grammar."""


class IllegalVariableError(FormulaFormatError):
    """A variable is no longer an identifier once normalized."""


class RejectedVariableError(FormulaFormatError):
    """A normalized variable was refused by the caller's validator."""


class MissingContentError(GridCalcError, TypeError):
    """``None`` was passed where cell content is required."""


class CircularDependencyError(GridCalcError, ValueError):
    """Committing a change would make a cell depend on itself."""

    def __init__(self, cell: str) -> None:
        super().__init__(f"Circular dependency detected involving: {cell}")
        self.cell = cell
