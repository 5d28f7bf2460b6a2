from unittest import mock

import pytest

from gridcalc.calc_engine import (
    EvaluationError,
    evaluate,
    range_average,
    range_max,
    range_min,
    range_stdev,
    range_sum,
)
from gridcalc.cells import CellError
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
from gridcalc.structs import AbsCell, RelCell


class FakeStorage:
    def __init__(self, values):
        self.values = dict(values)

    def get_value(self, cell):
        return self.values.get(cell)

    def iter_range_sparse(self, top_left, bottom_right):
        for cell in sorted(self.values):
            if (
                top_left.row <= cell.row <= bottom_right.row
                and top_left.col <= cell.col <= bottom_right.col
            ):
                yield cell, self.values[cell]


ORIGIN = AbsCell(0, 0)

# rows 0-1, cols 0-1 holding 10, 5 / 15, 20
GRID = FakeStorage(
    {
        AbsCell(0, 0): 10.0,
        AbsCell(1, 0): 5.0,
        AbsCell(0, 1): 15.0,
        AbsCell(1, 1): 20.0,
    }
)
SQUARE = CellRange(RelCell(0, 0), RelCell(1, 1))


def test_number_literal():
    assert evaluate(FakeStorage({}), ORIGIN, Number(42.0)) == 42.0


def test_arithmetic_operators():
    storage = FakeStorage({})
    assert evaluate(storage, ORIGIN, BinaryOp(Number(5.0), Operator.ADD, Number(3.0))) == 8.0
    assert evaluate(storage, ORIGIN, BinaryOp(Number(10.0), Operator.SUBTRACT, Number(4.0))) == 6.0
    assert evaluate(storage, ORIGIN, BinaryOp(Number(6.0), Operator.MULTIPLY, Number(7.0))) == 42.0
    assert evaluate(storage, ORIGIN, BinaryOp(Number(10.0), Operator.DIVIDE, Number(2.0))) == 5.0


def test_divide_by_zero():
    expr = BinaryOp(Number(10.0), Operator.DIVIDE, Number(0.0))
    with pytest.raises(EvaluationError) as info:
        evaluate(FakeStorage({}), ORIGIN, expr)
    assert info.value.error is CellError.DIVIDE_BY_ZERO


def test_cell_reference_is_relative():
    storage = FakeStorage({AbsCell(0, 0): 42.0})
    expr = CellRef(RelCell(-1, -1))
    assert evaluate(storage, AbsCell(1, 1), expr) == 42.0


def test_empty_cell_reads_as_zero():
    assert evaluate(FakeStorage({}), AbsCell(2, 2), CellRef(RelCell(0, 1))) == 0.0


def test_string_cell_is_non_numeric():
    storage = FakeStorage({AbsCell(0, 0): "text"})
    with pytest.raises(EvaluationError) as info:
        evaluate(storage, ORIGIN, CellRef(RelCell(0, 0)))
    assert info.value.error is CellError.DEPENDS_ON_NON_NUMERIC


def test_referenced_error_propagates_unchanged():
    storage = FakeStorage({AbsCell(0, 0): CellError.DIVIDE_BY_ZERO})
    expr = BinaryOp(CellRef(RelCell(0, 0)), Operator.ADD, Number(1.0))
    with pytest.raises(EvaluationError) as info:
        evaluate(storage, ORIGIN, expr)
    assert info.value.error is CellError.DIVIDE_BY_ZERO


def test_range_functions_on_grid():
    assert range_min(GRID, ORIGIN, SQUARE) == 5.0
    assert range_max(GRID, ORIGIN, SQUARE) == 20.0
    assert range_sum(GRID, ORIGIN, SQUARE) == 50.0
    assert range_average(GRID, ORIGIN, SQUARE) == 12.5


def test_range_call_dispatch_matches_helpers():
    for func, helper in [
        (RangeFunction.MIN, range_min),
        (RangeFunction.MAX, range_max),
        (RangeFunction.AVG, range_average),
        (RangeFunction.SUM, range_sum),
        (RangeFunction.STDEV, range_stdev),
    ]:
        assert evaluate(GRID, ORIGIN, RangeCall(func, SQUARE)) == helper(GRID, ORIGIN, SQUARE)


def test_stdev_known_values():
    values = [2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0]
    storage = FakeStorage({AbsCell(row, 0): v for row, v in enumerate(values)})
    cell_range = CellRange(RelCell(0, 0), RelCell(7, 0))
    assert range_stdev(storage, ORIGIN, cell_range) == 2.0


def test_stdev_of_single_value_is_zero():
    storage = FakeStorage({AbsCell(0, 0): 10.0})
    assert range_stdev(storage, ORIGIN, CellRange(RelCell(0, 0), RelCell(0, 0))) == 0.0


def test_empty_range_gives_zero():
    storage = FakeStorage({})
    for helper in (range_min, range_max, range_average, range_sum, range_stdev):
        assert helper(storage, ORIGIN, SQUARE) == 0.0


def test_range_skips_empty_cells():
    storage = FakeStorage({AbsCell(0, 0): 10.0, AbsCell(1, 1): None})
    assert range_average(storage, ORIGIN, SQUARE) == 10.0


def test_range_ignores_cells_outside():
    storage = FakeStorage({AbsCell(0, 0): 5.0, AbsCell(5, 5): 20.0})
    assert range_sum(storage, ORIGIN, SQUARE) == 5.0


def test_range_relative_to_cell():
    cell_range = CellRange(RelCell(-2, -2), RelCell(-1, -1))
    assert range_sum(GRID, AbsCell(2, 2), cell_range) == 50.0


def test_range_with_error_cell():
    storage = FakeStorage({AbsCell(0, 0): 10.0, AbsCell(1, 1): CellError.DIVIDE_BY_ZERO})
    for helper in (range_min, range_max, range_average, range_sum, range_stdev):
        with pytest.raises(EvaluationError) as info:
            helper(storage, ORIGIN, SQUARE)
        assert info.value.error is CellError.DEPENDS_ON_ERR


def test_range_with_string_cell():
    storage = FakeStorage({AbsCell(0, 0): "label", AbsCell(1, 1): 10.0})
    with pytest.raises(EvaluationError) as info:
        range_sum(storage, ORIGIN, SQUARE)
    assert info.value.error is CellError.DEPENDS_ON_NON_NUMERIC


def test_first_bad_cell_decides_error():
    storage = FakeStorage({AbsCell(0, 0): CellError.DIVIDE_BY_ZERO, AbsCell(0, 1): "x"})
    with pytest.raises(EvaluationError) as info:
        range_max(storage, ORIGIN, SQUARE)
    assert info.value.error is CellError.DEPENDS_ON_ERR


def test_sleep_zero_returns_value_without_waiting():
    with mock.patch("time.sleep") as sleeper:
        assert evaluate(FakeStorage({}), ORIGIN, Sleep(Number(0.0))) == 0.0
    sleeper.assert_not_called()


def test_sleep_positive_waits_for_value():
    storage = FakeStorage({AbsCell(0, 0): 2.0})
    with mock.patch("time.sleep") as sleeper:
        assert evaluate(storage, ORIGIN, Sleep(CellRef(RelCell(0, 0)))) == 2.0
    sleeper.assert_called_once_with(2.0)


def test_sleep_propagates_error():
    storage = FakeStorage({AbsCell(0, 0): "text"})
    with pytest.raises(EvaluationError) as info:
        evaluate(storage, ORIGIN, Sleep(CellRef(RelCell(0, 0))))
    assert info.value.error is CellError.DEPENDS_ON_NON_NUMERIC


def test_nested_expression_round_trip():
    storage = FakeStorage({AbsCell(0, 0): 10.0})
    expr = BinaryOp(
        BinaryOp(CellRef(RelCell(0, 0)), Operator.ADD, Number(5.0)),
        Operator.SUBTRACT,
        Number(5.0),
    )
    assert evaluate(storage, ORIGIN, expr) == 10.0
    expr = BinaryOp(
        BinaryOp(CellRef(RelCell(0, 0)), Operator.MULTIPLY, Number(3.0)),
        Operator.DIVIDE,
        Number(3.0),
    )
    assert evaluate(storage, ORIGIN, expr) == 10.0


def test_error_message_from_cell_error():
    err = EvaluationError(CellError.DEPENDS_ON_ERR)
    assert str(err) == CellError.DEPENDS_ON_ERR.value
    assert err.error is CellError.DEPENDS_ON_ERR