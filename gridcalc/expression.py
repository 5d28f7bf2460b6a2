"""Formula expression trees.

Cell references inside expressions are stored relative to the cell that owns
the formula, so an expression can be copied to another cell and still refer
to the neighbouring cells. ``render`` turns an expression back into formula
text as seen from a given cell.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Union

from gridcalc.structs import AbsCell, RelCell


class Operator(Enum):
    """Binary arithmetic operators."""

    ADD = "+"
    SUBTRACT = "-"
    MULTIPLY = "*"
    DIVIDE = "/"

    def __str__(self) -> str:
        return self.value


class RangeFunction(Enum):
    """Aggregate functions over a rectangular range of cells."""

    MIN = "MIN"
    MAX = "MAX"
    AVG = "AVG"
    SUM = "SUM"
    STDEV = "STDEV"

    def __str__(self) -> str:
        return self.value


def _format_number(value: float) -> str:
    """Shortest round-trip decimal text for ``value``, never in exponent form."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


@dataclass(frozen=True)
class CellRange:
    """A rectangle of cells given by relative corners."""

    top_left: RelCell
    bottom_right: RelCell

    def render(self, cell: AbsCell) -> str:
        """The range as ``A1:B2`` text seen from ``cell``."""
        return f"{self.top_left.to_abs(cell)}:{self.bottom_right.to_abs(cell)}"


@dataclass(frozen=True)
class Number:
    """A numeric literal."""

    value: float

    def render(self, cell: AbsCell) -> str:
        """The literal as text."""
        return _format_number(self.value)


@dataclass(frozen=True)
class CellRef:
    """A reference to a single cell."""

    cell: RelCell

    def render(self, cell: AbsCell) -> str:
        """The referenced cell's name seen from ``cell``."""
        return str(self.cell.to_abs(cell))


@dataclass(frozen=True)
class BinaryOp:
    """An arithmetic operation on two sub-expressions."""

    left: Expression
    op: Operator
    right: Expression

    def render(self, cell: AbsCell) -> str:
        """Both operands and the operator, separated by spaces."""
        return f"{self.left.render(cell)} {self.op} {self.right.render(cell)}"


@dataclass(frozen=True)
class RangeCall:
    """An aggregate function applied to a range of cells."""

    func: RangeFunction
    cell_range: CellRange

    def render(self, cell: AbsCell) -> str:
        """The call as ``SUM(A1:B2)`` text."""
        return f"{self.func}({self.cell_range.render(cell)})"


@dataclass(frozen=True)
class Sleep:
    """Waits for the number of seconds its argument evaluates to."""

    inner: Expression

    def render(self, cell: AbsCell) -> str:
        """The call as ``SLEEP(...)`` text."""
        return f"SLEEP({self.inner.render(cell)})"


Expression = Union[Number, CellRef, BinaryOp, RangeCall, Sleep]