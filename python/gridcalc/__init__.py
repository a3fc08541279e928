"""gridcalc — the dependency-tracked cell engine of a spreadsheet.

Usage::

    from gridcalc import Formula, Spreadsheet

    sheet = Spreadsheet()
    sheet.set_content("A1", 1.0)
    sheet.set_content("B1", Formula("A1+1"))
    sheet.set_content("C1", Formula("B1*2"))
    sheet.set_content("A1", 2.0)        # ["A1", "B1", "C1"]

    # Circular references are rejected and rolled back
    sheet.set_content("A1", Formula("C1"))   # CircularDependencyError

    # Values, via the host-side evaluator
    from gridcalc import SheetEvaluator

    ev = SheetEvaluator(sheet)
    ev.calculate()
    ev.value("C1")                      # 6.0
"""

from gridcalc._errors import (
    CircularDependencyError,
    FormulaFormatError,
    GridCalcError,
    IllegalVariableError,
    InvalidNameError,
    MissingContentError,
    RejectedVariableError,
)
from gridcalc._spreadsheet import Content, Spreadsheet
from gridcalc.calc import DependencyGraph, Formula, FormulaError, RecalcResult, SheetEvaluator

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "CircularDependencyError",
    "Content",
    "DependencyGraph",
    "Formula",
    "FormulaError",
    "FormulaFormatError",
    "GridCalcError",
    "IllegalVariableError",
    "InvalidNameError",
    "MissingContentError",
    "RecalcResult",
    "RejectedVariableError",
    "SheetEvaluator",
    "Spreadsheet",
]
