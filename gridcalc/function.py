"""Integer arithmetic and aggregate helpers over rectangular cell ranges.

Coordinates are ``(column, row)`` pairs. A ``get_val`` callback returns the
integer value of a cell, or ``None`` when the cell is in an error state; any
such ``None`` makes the whole aggregate ``None``.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable, Iterator

Coord = tuple[int, int]
Getter = Callable[[Coord], "int | None"]

I32_MAX = 2**31 - 1
I32_MIN = -(2**31)

OP_ADD = 1
OP_SUB = 2
OP_MUL = 3
OP_DIV = 5


def _trunc_div(a: int, b: int) -> int:
    """Integer division rounding toward zero."""
    quotient = abs(a) // abs(b)
    return quotient if (a >= 0) == (b >= 0) else -quotient


def eval_binary(op: int, a: int, b: int) -> int | None:
    """Apply operator code ``op`` (1 add, 2 sub, 3 mul, 5 div) to ``a`` and ``b``.

    Returns ``None`` for an unknown operator or a division by zero.
    """
    if op == OP_ADD:
        return a + b
    if op == OP_SUB:
        return a - b
    if op == OP_MUL:
        return a * b
    if op == OP_DIV:
        return None if b == 0 else _trunc_div(a, b)
    return None


def _coords(start: Coord, end: Coord) -> Iterator[Coord]:
    for c in range(start[0], end[0] + 1):
        for r in range(start[1], end[1] + 1):
            yield (c, r)


def _values(start: Coord, end: Coord, get_val: Getter) -> list[int] | None:
    values = []
    for coord in _coords(start, end):
        value = get_val(coord)
        if value is None:
            return None
        values.append(value)
    return values


def min_range(start: Coord, end: Coord, get_val: Getter) -> int | None:
    """Smallest value in the range, or ``None`` if any cell is in error."""
    values = _values(start, end, get_val)
    if values is None:
        return None
    return min(values, default=I32_MAX)


def max_range(start: Coord, end: Coord, get_val: Getter) -> int | None:
    """Largest value in the range, or ``None`` if any cell is in error."""
    values = _values(start, end, get_val)
    if values is None:
        return None
    return max(values, default=I32_MIN)


def avg_range(start: Coord, end: Coord, get_val: Getter) -> int | None:
    """Mean of the range truncated toward zero; 0 for an empty range."""
    values = _values(start, end, get_val)
    if values is None:
        return None
    if not values:
        return 0
    return _trunc_div(sum(values), len(values))


def sum_range(start: Coord, end: Coord, get_val: Getter) -> int | None:
    """Total of the range, or ``None`` if any cell is in error."""
    values = _values(start, end, get_val)
    if values is None:
        return None
    return sum(values)


def stdev_range(start: Coord, end: Coord, get_val: Getter) -> int | None:
    """Population standard deviation rounded to the nearest integer.

    Ranges of fewer than two cells give 0.
    """
    values = _values(start, end, get_val)
    if values is None:
        return None
    count = len(values)
    if count <= 1:
        return 0
    mean = sum(float(v) for v in values) / count
    variance = sum((v - mean) ** 2 for v in values) / count
    # sqrt is never negative, so this rounds half away from zero
    return int(math.floor(math.sqrt(variance) + 0.5))


_RANGE_FUNCTIONS: dict[str, Callable[[Coord, Coord, Getter], "int | None"]] = {
    "MIN": min_range,
    "MAX": max_range,
    "AVG": avg_range,
    "SUM": sum_range,
    "STDEV": stdev_range,
}


def eval_range(func: str, start: Coord, end: Coord, get_val: Getter) -> int | None:
    """Evaluate a named range function (MIN, MAX, AVG, SUM, STDEV or SLEEP).

    Names are case-insensitive. SLEEP waits for the number of seconds held in
    the start cell and returns that number. Unknown names give ``None``.
    """
    name = func.upper()
    if name == "SLEEP":
        seconds = get_val(start)
        if seconds is None:
            return None
        if seconds > 0:
            time.sleep(seconds)
        return seconds
    handler = _RANGE_FUNCTIONS.get(name)
    if handler is None:
        return None
    return handler(start, end, get_val)