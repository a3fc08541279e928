"""CalcEngine protocol, value lookup signature and result dataclasses."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, Union, runtime_checkable

if TYPE_CHECKING:
    from gridcalc._spreadsheet import Spreadsheet
    from gridcalc.calc._formula import FormulaError

# Maps a normalized cell name to its numeric value; raises KeyError when the
# name has none.
ValueLookup = Callable[[str], float]

CellValue = Union[float, str, "FormulaError"]


@dataclass(frozen=True)
class CellDelta:
    """A single cell's value change from recalculation."""

    name: str
    old_value: CellValue | None
    new_value: CellValue | None
    formula: str | None = None  # canonical text of the formula that produced new_value


@dataclass(frozen=True)
class RecalcResult:
    """Outcome of one content change and the re-evaluation it triggered."""

    changed: str  # the cell whose content was set
    order: tuple[str, ...]  # names re-evaluated, in dependency order
    deltas: tuple[CellDelta, ...]  # cells whose value actually changed
    max_chain_depth: int = 0  # longest dependents chain from the changed cell

    @property
    def propagated_cells(self) -> int:
        return len(self.deltas)

    @property
    def propagation_ratio(self) -> float:
        if not self.order:
            return 0.0
        return len(self.deltas) / len(self.order)


@runtime_checkable
class CalcEngine(Protocol):
    """Protocol for hosts that keep computed values for a Spreadsheet."""

    def load(self, sheet: Spreadsheet) -> None:
        """Adopt a spreadsheet and drop any cached values."""
        ...

    def calculate(self) -> dict[str, CellValue]:
        """Evaluate every non-empty cell, formulas in dependency order."""
        ...

    def set_content(self, name: str, content: object) -> RecalcResult:
        """Change one cell's content and re-evaluate the affected cells."""
        ...
