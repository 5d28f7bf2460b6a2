"""Evaluate formula expressions against a sheet's stored values.

Evaluation returns a ``float`` or raises :class:`EvaluationError`, which
carries the :class:`~gridcalc.cells.CellError` to store in the cell.

The storage passed in only needs ``get_value(cell)`` and
``iter_range_sparse(top_left, bottom_right)``. The second yields
``(cell, value)`` pairs for the stored cells of a rectangle in row-major
order.
"""

from __future__ import annotations

import math
import time
from collections.abc import Iterable
from typing import Protocol

from gridcalc.cells import CellError, CellValue
from gridcalc.expression import (
    BinaryOp,
    CellRange,
    CellRef,
    Expression,
    Number,
    Operator,
    RangeCall,
    RangeFunction,
    Sleep,
)
from gridcalc.structs import AbsCell


class ValueSource(Protocol):
    """What the evaluator needs to read from a sheet."""

    def get_value(self, cell: AbsCell) -> CellValue | CellError: ...

    def iter_range_sparse(
        self, top_left: AbsCell, bottom_right: AbsCell
    ) -> Iterable[tuple[AbsCell, CellValue | CellError]]: ...


class EvaluationError(Exception):
    """Evaluating an expression failed with the given cell error."""

    def __init__(self, error: CellError) -> None:
        super().__init__(error.value)
        self.error = error


def _range_numbers(
    storage: ValueSource, cell: AbsCell, cell_range: CellRange
) -> list[float]:
    """The numbers stored in the range; empty cells are skipped."""
    top_left = cell_range.top_left.to_abs(cell)
    bottom_right = cell_range.bottom_right.to_abs(cell)
    numbers = []
    for _, value in storage.iter_range_sparse(top_left, bottom_right):
        if isinstance(value, CellError):
            raise EvaluationError(CellError.DEPENDS_ON_ERR)
        if isinstance(value, str):
            raise EvaluationError(CellError.DEPENDS_ON_NON_NUMERIC)
        if value is not None:
            numbers.append(float(value))
    return numbers


def _fmax(a: float, b: float) -> float:
    if math.isnan(a):
        return b
    if math.isnan(b):
        return a
    return a if a >= b else b


def _fmin(a: float, b: float) -> float:
    if math.isnan(a):
        return b
    if math.isnan(b):
        return a
    return a if a <= b else b


def range_max(storage: ValueSource, cell: AbsCell, cell_range: CellRange) -> float:
    """Largest number in the range; 0 when it holds no numbers."""
    numbers = _range_numbers(storage, cell, cell_range)
    if not numbers:
        return 0.0
    result = -math.inf
    for number in numbers:
        result = _fmax(result, number)
    return result


def range_min(storage: ValueSource, cell: AbsCell, cell_range: CellRange) -> float:
    """Smallest number in the range; 0 when it holds no numbers."""
    numbers = _range_numbers(storage, cell, cell_range)
    if not numbers:
        return 0.0
    result = math.inf
    for number in numbers:
        result = _fmin(result, number)
    return result


def range_average(
    storage: ValueSource, cell: AbsCell, cell_range: CellRange
) -> float:
    """Mean of the numbers in the range; 0 when it holds no numbers."""
    numbers = _range_numbers(storage, cell, cell_range)
    if not numbers:
        return 0.0
    return sum(numbers) / len(numbers)


def range_sum(storage: ValueSource, cell: AbsCell, cell_range: CellRange) -> float:
    """Total of the numbers in the range."""
    return float(sum(_range_numbers(storage, cell, cell_range)))


def range_stdev(storage: ValueSource, cell: AbsCell, cell_range: CellRange) -> float:
    """Population standard deviation of the numbers in the range; 0 when empty."""
    numbers = _range_numbers(storage, cell, cell_range)
    if not numbers:
        return 0.0
    mean = sum(numbers) / len(numbers)
    variance = sum((n - mean) * (n - mean) for n in numbers) / len(numbers)
    return math.sqrt(variance)


_RANGE_HANDLERS = {
    RangeFunction.MIN: range_min,
    RangeFunction.MAX: range_max,
    RangeFunction.AVG: range_average,
    RangeFunction.SUM: range_sum,
    RangeFunction.STDEV: range_stdev,
}


def _binary(op: Operator, x: float, y: float) -> float:
    if op is Operator.ADD:
        return x + y
    if op is Operator.SUBTRACT:
        return x - y
    if op is Operator.MULTIPLY:
        return x * y
    if y == 0.0:
        raise EvaluationError(CellError.DIVIDE_BY_ZERO)
    return x / y


def evaluate(storage: ValueSource, cell: AbsCell, expr: Expression) -> float:
    """Evaluate ``expr`` as the formula of ``cell``; raise ``EvaluationError``."""
    match expr:
        case Number(value=value):
            return float(value)
        case CellRef(cell=target):
            value = storage.get_value(target.to_abs(cell))
            if isinstance(value, CellError):
                raise EvaluationError(value)
            if isinstance(value, str):
                raise EvaluationError(CellError.DEPENDS_ON_NON_NUMERIC)
            if value is None:
                return 0.0
            return float(value)
        case BinaryOp(left=left, op=op, right=right):
            x = evaluate(storage, cell, left)
            y = evaluate(storage, cell, right)
            return _binary(op, x, y)
        case RangeCall(func=func, cell_range=cell_range):
            return _RANGE_HANDLERS[func](storage, cell, cell_range)
        case Sleep(inner=inner):
            seconds = evaluate(storage, cell, inner)
            if seconds > 0.0:
                time.sleep(seconds)
            return seconds
    raise TypeError(f"not an expression: {expr!r}")