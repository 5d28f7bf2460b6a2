"""Lightweight helpers for cell names, binary expressions and range calls.

Coordinates produced here are 1-indexed ``(column, row)`` pairs.
"""

from __future__ import annotations

_U16_MASK = 0xFFFF
_U16_MAX = 0xFFFF

_RANGE_NAMES = ("MIN", "MAX", "AVG", "SUM", "STDEV", "SLEEP")
_OPERATORS = ("+", "-", "*", "/")


def _parse_u16(text: str) -> int | None:
    digits = text[1:] if text.startswith("+") else text
    if not digits or not (digits.isascii() and digits.isdigit()):
        return None
    value = int(digits)
    return value if value <= _U16_MAX else None


def cell_name_to_coord(s: str) -> tuple[int, int] | None:
    """Convert a name such as ``"AA15"`` to ``(column, row)``, or ``None``."""
    trimmed = s.strip()
    if not trimmed or not trimmed[0].isalpha():
        return None

    split = 0
    while split < len(trimmed) and trimmed[split].isalpha():
        split += 1
    letters, numbers = trimmed[:split], trimmed[split:]
    if not numbers:
        return None

    col = 0
    for char in letters:
        upper = char.upper() if char.isascii() else char
        col = (col * 26 + (ord(upper) & _U16_MASK) - ord("A") + 1) & _U16_MASK

    row = _parse_u16(numbers)
    if row is None:
        return None
    return (col, row)


def split_binary(expr: str) -> tuple[str, str, str] | None:
    """Split at the first ``+``, ``-``, ``*`` or ``/`` that has both operands.

    Operators are tried in that order; returns ``(op, lhs, rhs)`` or ``None``.
    """
    for op in _OPERATORS:
        idx = expr.find(op)
        if idx < 0:
            continue
        lhs, rhs = expr[:idx], expr[idx + 1:]
        if lhs.strip() and rhs.strip():
            return (op, lhs, rhs)
    return None


def parse_range(
    expr: str,
) -> tuple[str, tuple[int, int], tuple[int, int]] | None:
    """Parse ``FUNC(A1:B2)`` into ``(FUNC, start, end)``, or ``None``."""
    expr = expr.strip()
    for func in _RANGE_NAMES:
        opening = f"{func}("
        if not (expr.startswith(opening) and expr.endswith(")")):
            continue
        inside = expr[len(opening):-1]
        first, colon, second = inside.partition(":")
        if not colon:
            continue
        start = cell_name_to_coord(first.strip())
        end = cell_name_to_coord(second.strip())
        if start is not None and end is not None:
            return (func, start, end)
    return None