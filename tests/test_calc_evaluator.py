"""Tests for gridcalc.calc SheetEvaluator."""

from __future__ import annotations

import logging

import pytest
from gridcalc import CircularDependencyError, Formula, Spreadsheet
from gridcalc.calc._evaluator import SheetEvaluator
from gridcalc.calc._formula import FormulaError


def _make_chain_sheet() -> Spreadsheet:
    """A1=10, A2=20, A3=A1+A2, A4=A3*2."""
    sheet = Spreadsheet()
    sheet.set_content("A1", 10.0)
    sheet.set_content("A2", 20.0)
    sheet.set_content("A3", Formula("A1+A2"))
    sheet.set_content("A4", Formula("A3*2"))
    return sheet


class TestLoadAndCalculate:
    def test_chain(self) -> None:
        ev = SheetEvaluator(_make_chain_sheet())
        results = ev.calculate()
        assert results == {"A3": 30.0, "A4": 60.0}

    def test_values_include_constants(self) -> None:
        ev = SheetEvaluator(_make_chain_sheet())
        ev.calculate()
        assert ev.value("A1") == 10.0
        assert ev.value("A4") == 60.0
        assert ev.value("Z9") == ""

    def test_formula_inserted_before_its_inputs(self) -> None:
        sheet = Spreadsheet()
        sheet.set_content("C1", Formula("B1*2"))
        sheet.set_content("B1", Formula("A1+1"))
        sheet.set_content("A1", 4.0)
        ev = SheetEvaluator(sheet)
        assert ev.calculate()["C1"] == 10.0

    def test_text_cell_reference_is_error(self) -> None:
        sheet = Spreadsheet()
        sheet.set_content("A1", "label")
        sheet.set_content("B1", Formula("A1+1"))
        ev = SheetEvaluator(sheet)
        result = ev.calculate()["B1"]
        assert isinstance(result, FormulaError)
        assert ev.value("A1") == "label"

    def test_errors_propagate_without_aborting(self) -> None:
        sheet = Spreadsheet()
        sheet.set_content("A1", 0.0)
        sheet.set_content("B1", Formula("1/A1"))
        sheet.set_content("C1", Formula("B1+1"))
        sheet.set_content("D1", Formula("A1+5"))
        ev = SheetEvaluator(sheet)
        results = ev.calculate()
        assert isinstance(results["B1"], FormulaError)
        assert isinstance(results["C1"], FormulaError)
        assert results["D1"] == 5.0

    def test_load_resets_values(self) -> None:
        ev = SheetEvaluator(_make_chain_sheet())
        ev.calculate()
        ev.load(Spreadsheet())
        assert ev.value("A1") == ""
        assert ev.calculate() == {}

    def test_default_sheet(self) -> None:
        ev = SheetEvaluator()
        assert isinstance(ev.sheet, Spreadsheet)
        assert ev.calculate() == {}


class TestLookup:
    def test_number(self) -> None:
        ev = SheetEvaluator(_make_chain_sheet())
        ev.calculate()
        assert ev.lookup("A3") == 30.0

    @pytest.mark.parametrize("name", ["Z9", "T1", "E1"])
    def test_missing_text_or_error(self, name: str) -> None:
        sheet = Spreadsheet()
        sheet.set_content("T1", "words")
        sheet.set_content("E1", Formula("1/0"))
        ev = SheetEvaluator(sheet)
        ev.calculate()
        with pytest.raises(KeyError):
            ev.lookup(name)


class TestSetContent:
    def test_recalculates_dependents(self) -> None:
        ev = SheetEvaluator(_make_chain_sheet())
        ev.calculate()
        result = ev.set_content("A1", 15.0)
        assert result.changed == "A1"
        assert result.order == ("A1", "A3", "A4")
        assert ev.value("A3") == 35.0
        assert ev.value("A4") == 70.0
        assert [d.name for d in result.deltas] == ["A1", "A3", "A4"]
        assert result.max_chain_depth == 2

    def test_delta_records_formula(self) -> None:
        ev = SheetEvaluator(_make_chain_sheet())
        ev.calculate()
        result = ev.set_content("A2", 0.0)
        by_name = {d.name: d for d in result.deltas}
        assert by_name["A3"].old_value == 30.0
        assert by_name["A3"].new_value == 10.0
        assert by_name["A3"].formula == "A1+A2"
        assert by_name["A2"].formula is None

    def test_unchanged_value_has_no_delta(self) -> None:
        ev = SheetEvaluator(_make_chain_sheet())
        ev.calculate()
        result = ev.set_content("A3", Formula("A2+A1"))
        assert result.order == ("A3", "A4")
        assert result.deltas == ()
        assert result.propagated_cells == 0
        assert result.propagation_ratio == 0.0

    def test_new_formula(self) -> None:
        ev = SheetEvaluator(_make_chain_sheet())
        ev.calculate()
        result = ev.set_contents_of_cell("B1", "=A4/4")
        assert ev.value("B1") == 15.0
        assert result.propagated_cells == 1
        assert result.propagation_ratio == 1.0

    def test_clearing_recalculates_former_dependents(self) -> None:
        ev = SheetEvaluator(_make_chain_sheet())
        ev.calculate()
        result = ev.set_contents_of_cell("A1", "")
        assert result.order == ()
        assert result.changed == "A1"
        assert ev.value("A1") == ""
        assert isinstance(ev.value("A3"), FormulaError)
        names = {d.name for d in result.deltas}
        assert names == {"A1", "A3", "A4"}

    def test_cycle_leaves_values_untouched(self) -> None:
        ev = SheetEvaluator(_make_chain_sheet())
        ev.calculate()
        with pytest.raises(CircularDependencyError):
            ev.set_content("A1", Formula("A4"))
        assert ev.value("A1") == 10.0
        assert ev.value("A4") == 60.0
        assert ev.sheet.get_content("A1") == 10.0

    def test_tolerance(self) -> None:
        sheet = Spreadsheet()
        sheet.set_content("A1", 1.0)
        sheet.set_content("B1", Formula("A1*1"))
        ev = SheetEvaluator(sheet, tolerance=0.5)
        ev.calculate()
        result = ev.set_content("A1", 1.25)
        assert result.deltas == ()

    def test_evaluation_errors_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        ev = SheetEvaluator()
        with caplog.at_level(logging.DEBUG, logger="gridcalc.calc._evaluator"):
            ev.set_contents_of_cell("A1", "=1/0")
        assert "Division by zero" in caplog.text
