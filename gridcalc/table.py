"""Sheet storage: cell values, formulas and the dependency graph.

A :class:`Storage` is one sheet. Setting a value or a formula recomputes
every cell that depends on it, in dependency order. Formulas that would
create a cycle, or that refer to cells outside the sheet, are rejected.
"""

from __future__ import annotations

import json
import math
from bisect import bisect_left, bisect_right, insort
from collections.abc import Iterator
from dataclasses import dataclass
from decimal import Decimal
from typing import IO, Any, Union

from gridcalc.calc_engine import EvaluationError, evaluate
from gridcalc.cells import CellData, CellError, CellMetadata, CellValue
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
from gridcalc.structs import AbsCell, RelCell


@dataclass(frozen=True)
class ValueInput:
    """A plain value typed into a cell (``None`` for an empty cell)."""

    value: CellValue


@dataclass(frozen=True)
class FormulaInput:
    """A formula typed into a cell, as text."""

    formula: str


CellInput = Union[ValueInput, FormulaInput]


@dataclass(frozen=True)
class Action:
    """One user edit of one cell: what it held before and after."""

    cell: AbsCell
    old_value: CellInput
    new_value: CellInput


class StorageError(Exception):
    """A formula was rejected by the storage."""


class CircularDependencyError(StorageError):
    """The formula would make a cell depend on itself."""


class InvalidCellError(StorageError):
    """The formula refers to a cell outside the sheet."""


_EMPTY: frozenset[AbsCell] = frozenset()


def _number_text(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


class Storage:
    """A sparse sheet of ``rows`` by ``cols`` cells."""

    def __init__(self, rows: int, cols: int) -> None:
        self.rows = rows
        self.cols = cols
        self._values: dict[AbsCell, CellData] = {}
        self._keys: list[AbsCell] = []
        self._graph: dict[AbsCell, CellMetadata] = {}

    # -- stored cells -------------------------------------------------

    def _entry(self, cell: AbsCell) -> CellData:
        data = self._values.get(cell)
        if data is None:
            data = CellData()
            self._values[cell] = data
            insort(self._keys, cell)
        return data

    def _remove(self, cell: AbsCell) -> None:
        if self._values.pop(cell, None) is not None:
            del self._keys[bisect_left(self._keys, cell)]

    def get_value(self, cell: AbsCell) -> CellValue | CellError:
        """The value of ``cell``; ``None`` when it is empty."""
        data = self._values.get(cell)
        return None if data is None else data.value

    def get_cell_formula(self, cell: AbsCell) -> str | None:
        """The formula of ``cell`` as text, or ``None`` if it has none."""
        data = self._values.get(cell)
        if data is None or data.formula is None:
            return None
        return data.formula.render(cell)

    def set_value(self, cell: AbsCell, value: CellValue) -> None:
        """Store ``value`` in ``cell`` and recompute its dependents.

        ``None`` clears the cell, formula included.
        """
        if value is None:
            self._remove(cell)
        else:
            self._entry(cell).value = value
        self._update_cells(cell)

    def iter_range_sparse(
        self, top_left: AbsCell, bottom_right: AbsCell
    ) -> Iterator[tuple[AbsCell, CellValue | CellError]]:
        """Stored cells of the closed rectangle, in row-major order."""
        if top_left.row > bottom_right.row or top_left.col > bottom_right.col:
            return
        for row in range(top_left.row, bottom_right.row + 1):
            lo = bisect_left(self._keys, AbsCell(row, top_left.col))
            hi = bisect_right(self._keys, AbsCell(row, bottom_right.col))
            for cell in self._keys[lo:hi]:
                yield cell, self._values[cell].value

    def iter_range_full(
        self, top_left: AbsCell, bottom_right: AbsCell
    ) -> Iterator[tuple[AbsCell, CellData]]:
        """Every cell of the closed rectangle in row-major order, empty ones too."""
        if top_left.row > bottom_right.row or top_left.col > bottom_right.col:
            return
        for row in range(top_left.row, bottom_right.row + 1):
            for col in range(top_left.col, bottom_right.col + 1):
                cell = AbsCell(row, col)
                data = self._values.get(cell)
                yield cell, (data if data is not None else CellData())

    # -- dependency graph ---------------------------------------------

    def _dependents(self, cell: AbsCell) -> set[AbsCell] | frozenset[AbsCell]:
        metadata = self._graph.get(cell)
        return _EMPTY if metadata is None else metadata.dependents

    def _recalculate_cell(self, cell: AbsCell) -> None:
        data = self._values.get(cell)
        if data is None or data.formula is None:
            return
        try:
            data.value = evaluate(self, cell, data.formula)
        except EvaluationError as exc:
            data.value = exc.error

    def _update_cells(self, cell: AbsCell) -> None:
        pending: dict[AbsCell, int] = {cell: 0}
        stack = [cell]
        while stack:
            top = stack.pop()
            for dependent in self._dependents(top):
                count = pending.get(dependent, 0)
                if count == 0:
                    stack.append(dependent)
                pending[dependent] = count + 1

        stack = [cell]
        while stack:
            top = stack.pop()
            self._recalculate_cell(top)
            for dependent in self._dependents(top):
                pending[dependent] -= 1
                if pending[dependent] == 0:
                    stack.append(dependent)

    @staticmethod
    def _referenced_cells(expression: Expression, cell: AbsCell) -> set[AbsCell]:
        found: set[AbsCell] = set()
        todo: list[Expression] = [expression]
        while todo:
            match todo.pop():
                case CellRef(cell=target):
                    found.add(target.to_abs(cell))
                case BinaryOp(left=left, right=right):
                    todo.extend((left, right))
                case RangeCall(cell_range=cell_range):
                    top_left = cell_range.top_left.to_abs(cell)
                    bottom_right = cell_range.bottom_right.to_abs(cell)
                    for row in range(top_left.row, bottom_right.row + 1):
                        for col in range(top_left.col, bottom_right.col + 1):
                            found.add(AbsCell(row, col))
                case Sleep(inner=inner):
                    todo.append(inner)
        return found

    def _link(self, cell: AbsCell, referenced: set[AbsCell]) -> None:
        for target in referenced:
            self._graph.setdefault(target, CellMetadata()).dependents.add(cell)

    def _unlink(self, cell: AbsCell, referenced: set[AbsCell]) -> None:
        for target in referenced:
            metadata = self._graph.get(target)
            if metadata is not None:
                metadata.dependents.discard(cell)

    def _in_bounds(self, cell: AbsCell) -> bool:
        return 0 <= cell.row < self.rows and 0 <= cell.col < self.cols

    def set_expression(self, cell: AbsCell, expression: Expression) -> None:
        """Give ``cell`` the formula ``expression`` and recompute.

        Raises :class:`InvalidCellError` if the formula refers outside the
        sheet and :class:`CircularDependencyError` if it would form a cycle;
        the cell is left unchanged in both cases.
        """
        existing = self._values.get(cell)
        old_formula = existing.formula if existing is not None else None
        old_referenced = (
            self._referenced_cells(old_formula, cell)
            if old_formula is not None
            else set()
        )
        self._unlink(cell, old_referenced)

        referenced = self._referenced_cells(expression, cell)
        if not all(self._in_bounds(target) for target in referenced):
            self._link(cell, old_referenced)
            raise InvalidCellError(f"formula of {cell} refers outside the sheet")

        self._link(cell, referenced)
        if self.check_circular(cell):
            self._unlink(cell, referenced)
            self._link(cell, old_referenced)
            raise CircularDependencyError(f"formula of {cell} forms a cycle")

        self._entry(cell).formula = expression
        self._update_cells(cell)

    def check_circular(self, cell: AbsCell) -> bool:
        """True if ``cell`` can reach itself through its dependents."""
        stack = [cell]
        found: set[AbsCell] = set()
        while stack:
            top = stack.pop()
            for dependent in self._dependents(top):
                if dependent == cell:
                    return True
                if dependent not in found:
                    found.add(dependent)
                    stack.append(dependent)
        return False

    def get_input(self, cell: AbsCell) -> CellInput:
        """What the user put into ``cell``: its formula text or its value."""
        data = self._values.get(cell)
        if data is None:
            return ValueInput(None)
        if data.formula is not None:
            return FormulaInput(data.formula.render(cell))
        return ValueInput(data.value)

    def copy_cell_expression(self, from_cell: AbsCell, to_cell: AbsCell) -> None:
        """Copy the content of ``from_cell`` to ``to_cell``.

        Formulas are copied relatively and may be rejected with a
        :class:`StorageError` when they point outside the sheet from there.
        """
        data = self._values.get(from_cell)
        if data is None:
            self.set_value(to_cell, None)
        elif data.formula is not None:
            self.set_expression(to_cell, data.formula)
        else:
            self.set_value(to_cell, data.value)

    # -- persistence --------------------------------------------------

    def save(self, file: IO[bytes]) -> None:
        """Write the whole sheet to the binary ``file``."""
        document = {
            "rows": self.rows,
            "cols": self.cols,
            "cells": [
                {
                    "at": [cell.row, cell.col],
                    "value": _encode_value(self._values[cell].value),
                    "formula": _encode_expression(self._values[cell].formula),
                }
                for cell in self._keys
            ],
            "graph": [
                {
                    "at": [cell.row, cell.col],
                    "dependents": sorted([d.row, d.col] for d in metadata.dependents),
                }
                for cell, metadata in self._graph.items()
            ],
        }
        file.write(json.dumps(document).encode("utf-8"))

    @classmethod
    def load(cls, file: IO[bytes]) -> Storage:
        """Read a sheet written by :meth:`save`; raise ``ValueError`` if malformed."""
        raw = file.read()
        try:
            document = json.loads(raw)
            storage = cls(int(document["rows"]), int(document["cols"]))
            for item in document["cells"]:
                data = storage._entry(AbsCell(*item["at"]))
                data.value = _decode_value(item["value"])
                data.formula = _decode_expression(item["formula"])
            for item in document["graph"]:
                storage._graph[AbsCell(*item["at"])] = CellMetadata(
                    {AbsCell(*pair) for pair in item["dependents"]}
                )
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise ValueError("invalid spreadsheet file") from exc
        return storage

    # -- searching ----------------------------------------------------

    def search_from_start(self, to_search: str) -> AbsCell | None:
        """First cell, left to right and top to bottom, whose text holds ``to_search``."""
        return self.search(AbsCell(0, -1), to_search)

    def search(self, start: AbsCell, to_search: str) -> AbsCell | None:
        """Next cell after ``start`` whose text holds ``to_search``."""
        if start.col >= self.cols - 1:
            next_cell = AbsCell(start.row + 1, 0)
        else:
            next_cell = AbsCell(start.row, start.col + 1)
        if next_cell.row >= self.rows - 1:
            return None

        for cell in self._keys[bisect_left(self._keys, next_cell):]:
            value = self._values[cell].value
            if isinstance(value, str):
                if to_search in value:
                    return cell
            elif isinstance(value, float) and to_search in _number_text(value):
                return cell
        return None


def _encode_value(value: CellValue | CellError) -> Any:
    if value is None:
        return None
    if isinstance(value, CellError):
        return {"error": value.name}
    if isinstance(value, str):
        return {"string": value}
    return {"number": float(value)}


def _decode_value(encoded: Any) -> CellValue | CellError:
    if encoded is None:
        return None
    if "error" in encoded:
        return CellError[encoded["error"]]
    if "string" in encoded:
        return str(encoded["string"])
    return float(encoded["number"])


def _encode_expression(expr: Expression | None) -> Any:
    match expr:
        case None:
            return None
        case Number(value=value):
            return {"type": "number", "value": value}
        case CellRef(cell=target):
            return {"type": "cell", "at": [target.row, target.col]}
        case BinaryOp(left=left, op=op, right=right):
            return {
                "type": "binary",
                "op": op.value,
                "left": _encode_expression(left),
                "right": _encode_expression(right),
            }
        case RangeCall(func=func, cell_range=cell_range):
            return {
                "type": "range",
                "func": func.value,
                "top_left": [cell_range.top_left.row, cell_range.top_left.col],
                "bottom_right": [
                    cell_range.bottom_right.row,
                    cell_range.bottom_right.col,
                ],
            }
        case Sleep(inner=inner):
            return {"type": "sleep", "inner": _encode_expression(inner)}
    raise TypeError(f"not an expression: {expr!r}")


def _decode_expression(encoded: Any) -> Expression | None:
    if encoded is None:
        return None
    kind = encoded["type"]
    if kind == "number":
        return Number(float(encoded["value"]))
    if kind == "cell":
        return CellRef(RelCell(*encoded["at"]))
    if kind == "binary":
        return BinaryOp(
            _decode_expression(encoded["left"]),
            Operator(encoded["op"]),
            _decode_expression(encoded["right"]),
        )
    if kind == "range":
        return RangeCall(
            RangeFunction(encoded["func"]),
            CellRange(
                RelCell(*encoded["top_left"]), RelCell(*encoded["bottom_right"])
            ),
        )
    if kind == "sleep":
        return Sleep(_decode_expression(encoded["inner"]))
    raise ValueError(f"unknown expression type {kind!r}")