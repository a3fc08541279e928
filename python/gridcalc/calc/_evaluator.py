"""SheetEvaluator: keeps computed values for a Spreadsheet up to date.

The spreadsheet only decides *which* cells need re-evaluating and in what
order.  This module is the host side of that contract: it caches each
cell's value, serves those values to formulas through :meth:`lookup` and
re-evaluates the cells a mutation returns, in the order returned.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from gridcalc.calc._formula import Formula, FormulaError
from gridcalc.calc._protocol import CellDelta, CellValue, RecalcResult

if TYPE_CHECKING:
    from gridcalc._spreadsheet import Content, Spreadsheet

logger = logging.getLogger(__name__)


def _values_differ(a: Any, b: Any, tolerance: float) -> bool:
    """Check if two values differ beyond tolerance."""
    if a is None and b is None:
        return False
    if a is None or b is None:
        return True
    if isinstance(a, float) and isinstance(b, float):
        return abs(a - b) > tolerance
    return a != b


class SheetEvaluator:
    """Evaluates the cells of a Spreadsheet and tracks their values.

    Usage::

        ev = SheetEvaluator()
        ev.set_contents_of_cell("A1", "10")
        ev.set_contents_of_cell("B1", "=A1*2")
        ev.value("B1")                              # 20.0
        result = ev.set_contents_of_cell("A1", "4")
        [d.name for d in result.deltas]             # ["A1", "B1"]

    Text cells and cells holding a FormulaError have no numeric value: a
    formula that reads one evaluates to a FormulaError itself.
    """

    def __init__(self, sheet: Spreadsheet | None = None, tolerance: float = 1e-10) -> None:
        if sheet is None:
            from gridcalc._spreadsheet import Spreadsheet

            sheet = Spreadsheet()
        self._sheet = sheet
        self._values: dict[str, CellValue] = {}
        self._tolerance = tolerance

    @property
    def sheet(self) -> Spreadsheet:
        return self._sheet

    def load(self, sheet: Spreadsheet) -> None:
        """Switch to *sheet*; call calculate() to populate values."""
        self._sheet = sheet
        self._values.clear()

    def calculate(self) -> dict[str, CellValue]:
        """Evaluate every cell from scratch.

        Returns a dict of name -> computed value for the formula cells.
        """
        self._values.clear()
        for name in self._sheet.non_empty_cell_names():
            content = self._sheet.get_content(name)
            if not isinstance(content, Formula):
                self._values[name] = content

        results: dict[str, CellValue] = {}
        for name in self._sheet.formula_order():
            results[name] = self._evaluate(name)
        return results

    def value(self, name: str) -> CellValue:
        """Last computed value of *name*; ``""`` for an empty cell."""
        return self._values.get(name, "")

    def lookup(self, name: str) -> float:
        """Numeric value of *name* for formula evaluation.

        Raises KeyError when the cell is empty or holds no number.
        """
        value = self._values.get(name)
        if isinstance(value, float):
            return value
        raise KeyError(name)

    # ------------------------------------------------------------------
    # Mutation + propagation
    # ------------------------------------------------------------------

    def set_content(self, name: str, content: Content) -> RecalcResult:
        """Set *name* via :meth:`Spreadsheet.set_content` and recalculate."""
        order = self._sheet.set_content(name, content)
        return self._propagate(name, order)

    def set_contents_of_cell(self, name: str, text: str) -> RecalcResult:
        """Set *name* via :meth:`Spreadsheet.set_contents_of_cell` and recalculate."""
        order = self._sheet.set_contents_of_cell(name, text)
        return self._propagate(name, order)

    def _propagate(self, name: str, order: list[str]) -> RecalcResult:
        old_values = dict(self._values)

        if order:
            for cell in order:
                self._evaluate(cell)
            touched: list[str] = order
            changed = order[0]
            depth = self._sheet.chain_depth(changed)
        else:
            # The cell was cleared.  Its former dependents are not part of
            # the returned order, so rebuild everything.
            self.calculate()
            touched = sorted(set(old_values) | set(self._values))
            changed = name
            depth = 0

        deltas: list[CellDelta] = []
        for cell in touched:
            old_val = old_values.get(cell)
            new_val = self._values.get(cell)
            if _values_differ(old_val, new_val, self._tolerance):
                content = self._sheet.get_content(cell)
                deltas.append(CellDelta(
                    name=cell,
                    old_value=old_val,
                    new_value=new_val,
                    formula=str(content) if isinstance(content, Formula) else None,
                ))

        return RecalcResult(
            changed=changed,
            order=tuple(order),
            deltas=tuple(deltas),
            max_chain_depth=depth,
        )

    def _evaluate(self, name: str) -> CellValue:
        content = self._sheet.get_content(name)
        value: CellValue
        if isinstance(content, Formula):
            value = content.evaluate(self.lookup)
            if isinstance(value, FormulaError):
                logger.debug("Cannot evaluate %s = %s: %s", name, content, value.reason)
        else:
            value = content
        if value == "":
            self._values.pop(name, None)
        else:
            self._values[name] = value
        return value
