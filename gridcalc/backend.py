"""Front end to a sheet: formulas as text, undo and redo, CSV export.

Most calls go straight to :class:`~gridcalc.table.Storage`. This layer adds
formula parsing, an undo/redo history of user edits and CSV export.
"""

from __future__ import annotations

import csv
import math
import os
from collections.abc import Iterator
from decimal import Decimal
from typing import IO

from gridcalc.cells import CellData, CellError, CellValue
from gridcalc.formula_parser import FormulaError, FormulaParser
from gridcalc.structs import AbsCell
from gridcalc.table import (
    Action,
    CircularDependencyError,
    FormulaInput,
    InvalidCellError,
    Storage,
    ValueInput,
)

_DEFAULT_ROWS = 999
_DEFAULT_COLS = 18278


class ExpressionError(Exception):
    """A formula could not be placed in a cell."""


class InvalidExpressionError(ExpressionError):
    """The formula is malformed or refers to cells outside the sheet."""


class CircularReferenceError(ExpressionError):
    """The formula would make a cell depend on itself."""


def _csv_number(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _csv_field(value: CellValue | CellError) -> str:
    if value is None:
        return ""
    if isinstance(value, CellError):
        return "#ERROR"
    if isinstance(value, str):
        return value
    return _csv_number(float(value))


class EmbeddedBackend:
    """A sheet of ``rows`` by ``cols`` cells with an edit history."""

    def __init__(self, rows: int, cols: int) -> None:
        self._storage = Storage(rows, cols)
        self._parser = FormulaParser(rows, cols)
        self._undo_stack: list[Action] = []
        self._redo_stack: list[Action] = []

    @classmethod
    def from_file(cls, file: IO[bytes]) -> EmbeddedBackend:
        """Load a sheet saved with :meth:`save_to_file`; raise ``ValueError`` if malformed."""
        backend = cls.__new__(cls)
        backend._storage = Storage.load(file)
        backend._parser = FormulaParser(_DEFAULT_ROWS, _DEFAULT_COLS)
        backend._undo_stack = []
        backend._redo_stack = []
        return backend

    def save_to_file(self, file: IO[bytes]) -> None:
        """Write the whole sheet to the binary ``file``."""
        self._storage.save(file)

    def _record(self, action: Action) -> None:
        self._undo_stack.append(action)
        self._redo_stack.clear()

    def set_cell_empty(self, cell: AbsCell) -> None:
        """Clear ``cell``, formula included."""
        self.set_cell_value(cell, None)

    def set_cell_value(self, cell: AbsCell, value: CellValue) -> None:
        """Store a plain value in ``cell`` and record the edit."""
        old = self._storage.get_input(cell)
        self._storage.set_value(cell, value)
        self._record(Action(cell, old, ValueInput(value)))

    def get_cell_value(self, cell: AbsCell) -> CellValue | CellError:
        """The value of ``cell``; ``None`` when it is empty."""
        return self._storage.get_value(cell)

    def get_cell_formula(self, cell: AbsCell) -> str | None:
        """The formula of ``cell`` as text, or ``None``."""
        return self._storage.get_cell_formula(cell)

    def get_cell_range(
        self, top_left: AbsCell, bottom_right: AbsCell
    ) -> Iterator[tuple[AbsCell, CellData]]:
        """Every cell of the closed rectangle in row-major order."""
        return self._storage.iter_range_full(top_left, bottom_right)

    def set_cell_formula(self, cell: AbsCell, formula: str) -> None:
        """Parse ``formula`` and give it to ``cell``, recording the edit.

        Raises :class:`InvalidExpressionError` or :class:`CircularReferenceError`.
        """
        try:
            expression = self._parser.parse(formula, cell)
        except FormulaError as exc:
            raise InvalidExpressionError(str(exc)) from exc
        old = self._storage.get_input(cell)
        try:
            self._storage.set_expression(cell, expression)
        except CircularDependencyError as exc:
            raise CircularReferenceError(str(exc)) from exc
        except InvalidCellError as exc:
            raise InvalidExpressionError(str(exc)) from exc
        self._record(Action(cell, old, self._storage.get_input(cell)))

    def _apply(self, cell: AbsCell, content: ValueInput | FormulaInput) -> None:
        if isinstance(content, ValueInput):
            self._storage.set_value(cell, content.value)
        else:
            self.set_cell_formula(cell, content.formula)

    def undo(self) -> bool:
        """Revert the last edit; False when there is nothing to undo."""
        if not self._undo_stack:
            return False
        action = self._undo_stack.pop()
        self._apply(action.cell, action.old_value)
        self._redo_stack.append(action)
        return True

    def redo(self) -> bool:
        """Reapply the last undone edit; False when there is nothing to redo."""
        if not self._redo_stack:
            return False
        action = self._redo_stack.pop()
        self._apply(action.cell, action.new_value)
        self._undo_stack.append(action)
        return True

    def copy_cell_expression(self, from_cell: AbsCell, to_cell: AbsCell) -> None:
        """Copy the content of ``from_cell`` to ``to_cell``, formulas relatively."""
        try:
            self._storage.copy_cell_expression(from_cell, to_cell)
        except CircularDependencyError as exc:
            raise CircularReferenceError(str(exc)) from exc
        except InvalidCellError as exc:
            raise InvalidExpressionError(str(exc)) from exc

    def search(self, cell: AbsCell, to_search: str) -> AbsCell | None:
        """Next cell after ``cell`` whose text holds ``to_search``."""
        return self._storage.search(cell, to_search)

    def search_from_start(self, to_search: str) -> AbsCell | None:
        """First cell whose text holds ``to_search``."""
        return self._storage.search_from_start(to_search)

    def save_range_to_csv(
        self,
        top_left: AbsCell,
        bottom_right: AbsCell,
        file_path: str | os.PathLike[str],
    ) -> None:
        """Write the values of the closed rectangle to a CSV file."""
        with open(file_path, "w", newline="", encoding="utf-8") as handle:
            writer = csv.writer(handle, lineterminator="\n")
            for row in range(top_left.row, bottom_right.row + 1):
                writer.writerow(
                    _csv_field(self.get_cell_value(AbsCell(row, col)))
                    for col in range(top_left.col, bottom_right.col + 1)
                )