import pytest

from gridcalc.expression import (
    BinaryOp,
    CellRange,
    CellRef,
    Number,
    Operator,
    RangeCall,
    RangeFunction,
    Sleep,
)
from gridcalc.formula_parser import FormulaError, FormulaParser
from gridcalc.structs import AbsCell, RelCell

CELL = AbsCell(1, 1)


@pytest.fixture
def parser():
    return FormulaParser(1000, 26)


def test_basic_formula(parser):
    result = parser.parse("A1 + SUM(B1:Z9) + 1.0 - .3", CELL)
    assert result.op is Operator.SUBTRACT
    assert result.right == Number(0.3)
    assert result.left.op is Operator.ADD
    assert result.left.right == Number(1.0)
    assert result.left.left.right == RangeCall(
        RangeFunction.SUM,
        CellRange(AbsCell.parse("B1").to_rel(CELL), AbsCell.parse("Z9").to_rel(CELL)),
    )


def test_negative_number(parser):
    assert parser.parse("-.75", CELL) == Number(-0.75)


def test_complex_expression(parser):
    result = parser.parse("A1 * 2 + (B2 - C3) / 4", CELL)
    assert result.op is Operator.ADD
    assert result.left == BinaryOp(CellRef(RelCell(-1, -1)), Operator.MULTIPLY, Number(2.0))
    assert result.right.op is Operator.DIVIDE
    assert result.right.right == Number(4.0)
    assert result.right.left == BinaryOp(
        CellRef(RelCell(0, 0)), Operator.SUBTRACT, CellRef(RelCell(1, 1))
    )


def test_invalid_range(parser):
    with pytest.raises(FormulaError):
        parser.parse("SUM(Z9:A1)", CELL)


def test_out_of_bounds(parser):
    with pytest.raises(FormulaError):
        parser.parse("AA1 + B2", CELL)


def test_row_out_of_bounds(parser):
    with pytest.raises(FormulaError):
        parser.parse("A1001 + B2", CELL)


def test_last_row_is_in_bounds(parser):
    assert parser.parse("A1000", CELL) == CellRef(AbsCell.parse("A1000").to_rel(CELL))


def test_precedence_of_multiplication(parser):
    result = parser.parse("1+2*3", CELL)
    assert result == BinaryOp(
        Number(1.0), Operator.ADD, BinaryOp(Number(2.0), Operator.MULTIPLY, Number(3.0))
    )


def test_subtraction_is_left_associative(parser):
    result = parser.parse("1-2-3", CELL)
    assert result == BinaryOp(
        BinaryOp(Number(1.0), Operator.SUBTRACT, Number(2.0)),
        Operator.SUBTRACT,
        Number(3.0),
    )


def test_subtracting_a_negative_number(parser):
    assert parser.parse("1--2", CELL) == BinaryOp(
        Number(1.0), Operator.SUBTRACT, Number(-2.0)
    )


def test_sleep(parser):
    assert parser.parse("SLEEP(2)", CELL) == Sleep(Number(2.0))
    assert parser.parse("SLEEP(A1+1)", CELL) == Sleep(
        BinaryOp(CellRef(RelCell(-1, -1)), Operator.ADD, Number(1.0))
    )


@pytest.mark.parametrize("func", list(RangeFunction))
def test_every_range_function(parser, func):
    result = parser.parse(f"{func}(A1:B2)", CELL)
    assert result.func is func


def test_references_are_relative_to_cell(parser):
    here = AbsCell(5, 7)
    expr = parser.parse("C3", here)
    assert expr.cell.to_abs(here) == AbsCell.parse("C3")


@pytest.mark.parametrize(
    "formula", ["", "1 +", "(1", "1)", "FOO(A1:B2)", "SUM(A1)", "SUM A1:B2", "A", "1 2"]
)
def test_malformed_formulas(parser, formula):
    with pytest.raises(FormulaError):
        parser.parse(formula, CELL)


def test_formula_error_is_value_error(parser):
    with pytest.raises(ValueError):
        parser.parse("*", CELL)