"""Absolute and relative cell coordinates.

Absolute cells are 0-indexed internally and shown 1-indexed in spreadsheet
notation ("A1" is row 0, column 0). Relative cells are offsets from an
origin; formulas store relative cells so they can be copied.
"""

from __future__ import annotations

from dataclasses import dataclass

_I16_MAX = 2**15 - 1


@dataclass(frozen=True, order=True)
class AbsCell:
    """A cell at an absolute, 0-indexed position; ordered by row, then column."""

    row: int = 0
    col: int = 0

    @classmethod
    def from_rel(cls, target: RelCell, origin: AbsCell) -> AbsCell:
        """The absolute cell that ``target`` refers to when seen from ``origin``."""
        return cls(origin.row + target.row, origin.col + target.col)

    @classmethod
    def from_rel_origin(cls, target: RelCell) -> AbsCell:
        """The absolute cell that ``target`` refers to from the top-left corner."""
        return cls(target.row, target.col)

    def to_rel(self, origin: AbsCell) -> RelCell:
        """The offset of this cell from ``origin``."""
        return RelCell(self.row - origin.row, self.col - origin.col)

    @classmethod
    def parse(cls, text: str) -> AbsCell:
        """Parse a name such as ``"B2"``; raise ``ValueError`` if it is not one."""
        col = 0
        row_part = ""
        for index, char in enumerate(text):
            if char.isascii() and char.isalpha():
                col = col * 26 + (ord(char.upper()) - ord("A") + 1)
                if col > _I16_MAX:
                    raise ValueError(f"Column out of range in cell: {text}")
            elif char.isascii() and char.isdigit():
                row_part = text[index:]
                break
            else:
                raise ValueError(f"Invalid character in cell: {char}")

        if not row_part:
            raise ValueError("Missing row number")
        if not (row_part.isascii() and row_part.isdigit()):
            raise ValueError("Invalid row number")
        row = int(row_part)
        if row > _I16_MAX:
            raise ValueError("Invalid row number")
        return cls(row - 1, col - 1)

    def __str__(self) -> str:
        letters = []
        col = self.col + 1
        while col > 0:
            col, rem = divmod(col - 1, 26)
            letters.append(chr(ord("A") + rem))
        return f"{''.join(reversed(letters))}{self.row + 1}"


@dataclass(frozen=True, order=True)
class RelCell:
    """An offset of rows and columns relative to some origin cell."""

    row: int = 0
    col: int = 0

    def to_abs(self, origin: AbsCell) -> AbsCell:
        """The absolute cell this offset points to from ``origin``."""
        return AbsCell(origin.row + self.row, origin.col + self.col)