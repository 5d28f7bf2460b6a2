"""Parse formula text into expression trees with relative cell references.

Grammar, with spaces and tabs allowed between tokens::

    formula    := expression END
    expression := factor (("+" | "-") factor)*
    factor     := term (("*" | "/") term)*
    term       := number | function | cell | "(" expression ")"
    function   := RANGE_FN "(" cell ":" cell ")" | "SLEEP(" expression ")"
    number     := "-"? (digits ("." digits)? | "." digits)
    cell       := letters digits
"""

from __future__ import annotations

import re
from dataclasses import dataclass

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

_NUMBER = re.compile(r"-?(?:[0-9]+(?:\.[0-9]+)?|\.[0-9]+)")
_NAME = re.compile(r"[A-Za-z]+")
_CELL = re.compile(r"[A-Za-z]+[0-9]+")
_WHITESPACE = " \t"

_ADDITIVE = {"+": Operator.ADD, "-": Operator.SUBTRACT}
_MULTIPLICATIVE = {"*": Operator.MULTIPLY, "/": Operator.DIVIDE}
_SLEEP = "SLEEP"
_FUNCTION_NAMES = {f.value for f in RangeFunction} | {_SLEEP}


class FormulaError(ValueError):
    """The formula text is malformed or refers to cells outside the sheet."""


@dataclass(frozen=True)
class FormulaParser:
    """Parses formulas for a sheet of ``max_rows`` by ``max_cols`` cells."""

    max_rows: int
    max_cols: int

    def parse(self, formula: str, cell: AbsCell) -> Expression:
        """Parse ``formula`` as written in ``cell``; raise ``FormulaError``."""
        return _Reader(self, formula, cell).read_formula()


class _Reader:
    def __init__(self, parser: FormulaParser, text: str, origin: AbsCell) -> None:
        self._parser = parser
        self._text = text
        self._origin = origin
        self._pos = 0

    def _skip(self) -> None:
        while self._pos < len(self._text) and self._text[self._pos] in _WHITESPACE:
            self._pos += 1

    def _peek(self) -> str:
        self._skip()
        return self._text[self._pos] if self._pos < len(self._text) else ""

    def _error(self, message: str) -> FormulaError:
        return FormulaError(f"{message} at position {self._pos} in {self._text!r}")

    def _expect(self, char: str) -> None:
        if self._peek() != char:
            raise self._error(f"expected {char!r}")
        self._pos += 1

    def read_formula(self) -> Expression:
        expr = self._expression()
        if self._peek():
            raise self._error("unexpected input")
        return expr

    def _expression(self) -> Expression:
        left = self._factor()
        while (op := _ADDITIVE.get(self._peek())) is not None:
            self._pos += 1
            left = BinaryOp(left, op, self._factor())
        return left

    def _factor(self) -> Expression:
        left = self._term()
        while (op := _MULTIPLICATIVE.get(self._peek())) is not None:
            self._pos += 1
            left = BinaryOp(left, op, self._term())
        return left

    def _term(self) -> Expression:
        if self._peek() == "(":
            self._pos += 1
            expr = self._expression()
            self._expect(")")
            return expr

        number = _NUMBER.match(self._text, self._pos)
        if number:
            self._pos = number.end()
            return Number(float(number.group()))

        name = _NAME.match(self._text, self._pos)
        if name:
            if name.group() in _FUNCTION_NAMES:
                saved = self._pos
                self._pos = name.end()
                if self._peek() == "(":
                    return self._function(name.group())
                self._pos = saved
            return CellRef(self._cell_ref())

        raise self._error("expected a number, cell or function")

    def _function(self, name: str) -> Expression:
        self._expect("(")
        if name == _SLEEP:
            inner = self._expression()
            self._expect(")")
            return Sleep(inner)

        top_left = self._cell_ref()
        self._expect(":")
        bottom_right = self._cell_ref()
        self._expect(")")
        if not (
            top_left.row <= bottom_right.row and top_left.col <= bottom_right.col
        ):
            raise self._error("range corners are not top-left and bottom-right")
        return RangeCall(RangeFunction(name), CellRange(top_left, bottom_right))

    def _cell_ref(self) -> RelCell:
        self._skip()
        match = _CELL.match(self._text, self._pos)
        if not match:
            raise self._error("expected a cell reference")
        self._pos = match.end()
        try:
            target = AbsCell.parse(match.group())
        except ValueError as exc:
            raise self._error(f"invalid cell {match.group()!r}") from exc
        if target.row >= self._parser.max_rows or target.col >= self._parser.max_cols:
            raise self._error(f"cell {match.group()!r} is outside the sheet")
        return target.to_rel(self._origin)