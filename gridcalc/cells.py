"""Cell values, evaluation errors and per-cell bookkeeping.

A cell value is ``None`` for an empty cell, a ``str`` or a ``float``. When
evaluating a formula fails, a :class:`CellError` is stored in place of the
value.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Union

from gridcalc.structs import AbsCell

if TYPE_CHECKING:
    from gridcalc.expression import Expression

CellValue = Union[None, str, float]


class CellError(Enum):
    """Why a cell could not be evaluated."""

    DIVIDE_BY_ZERO = "divide by zero"
    DEPENDS_ON_NON_NUMERIC = "depends on non-numeric value"
    DEPENDS_ON_ERR = "depends on error"


@dataclass
class CellData:
    """The evaluated value of a cell and the formula that produced it, if any."""

    value: CellValue | CellError = None
    formula: Expression | None = None

    def is_default(self) -> bool:
        """True for an empty cell without a formula."""
        return self.value is None and self.formula is None


@dataclass
class CellMetadata:
    """The cells whose formulas refer to a given cell."""

    dependents: set[AbsCell] = field(default_factory=set)