"""gridcalc.calc - Formula engine and dependency tracking for gridcalc."""

from gridcalc.calc._evaluator import SheetEvaluator
from gridcalc.calc._formula import Formula, FormulaError
from gridcalc.calc._graph import DependencyGraph
from gridcalc.calc._parser import Token, tokenize, validate
from gridcalc.calc._protocol import CalcEngine, CellDelta, CellValue, RecalcResult, ValueLookup

__all__ = [
    "CalcEngine",
    "CellDelta",
    "CellValue",
    "DependencyGraph",
    "Formula",
    "FormulaError",
    "RecalcResult",
    "SheetEvaluator",
    "Token",
    "ValueLookup",
    "tokenize",
    "validate",
]
