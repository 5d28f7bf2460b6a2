# gridcalc

A small spreadsheet engine, used as a library. It covers:

- cell addressing in `A1` style, with absolute (`AbsCell`) and relative
  (`RelCell`) coordinates in `gridcalc.structs`;
- a formula parser (`gridcalc.formula_parser.FormulaParser`) for `+ - * /`,
  parentheses, numbers, cell references, `MIN`, `MAX`, `AVG`, `SUM`, `STDEV`
  over ranges, and `SLEEP(expr)`;
- a storage (`gridcalc.table.Storage`) that tracks dependencies between cells,
  rejects circular and out-of-bounds references, and recalculates dependents
  when an input changes;
- a front end (`gridcalc.backend.EmbeddedBackend`) with undo/redo, relative
  formula copying, text search, saving and loading, and CSV export of a range.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Usage

```python
from gridcalc.backend import EmbeddedBackend, CircularReferenceError
from gridcalc.structs import AbsCell

sheet = EmbeddedBackend(10, 10)

sheet.set_cell_value(AbsCell.parse("A1"), 42.0)
sheet.set_cell_formula(AbsCell.parse("C1"), "A1+B1")
print(sheet.get_cell_value(AbsCell.parse("C1")))    # 42.0
print(sheet.get_cell_formula(AbsCell.parse("C1")))  # A1 + B1

try:
    sheet.set_cell_formula(AbsCell.parse("A1"), "C1")
except CircularReferenceError:
    print("rejected")   # A1 keeps its value; nothing is recorded

sheet.undo()   # C1 loses its formula and is empty again
sheet.redo()   # C1 gets "A1 + B1" back and shows 42.0

sheet.save_range_to_csv(AbsCell.parse("A1"), AbsCell.parse("C3"), "out.csv")

with open("sheet.json", "wb") as handle:
    sheet.save_to_file(handle)
with open("sheet.json", "rb") as handle:
    restored = EmbeddedBackend.from_file(handle)
```

A cell value is `None` for an empty cell, a `str`, or a `float`. Setting a
value of `None` (or calling `set_cell_empty`) clears the cell, formula included.

Formulas are kept in relative form. When a formula is copied with
`copy_cell_expression`, its references shift with the target cell. A copy whose
references would fall outside the sheet raises `InvalidExpressionError`; one
that would form a cycle raises `CircularReferenceError`. Malformed formula text
also raises `InvalidExpressionError`.

A cell that cannot be evaluated holds a `gridcalc.cells.CellError`:
`DIVIDE_BY_ZERO` for a division by zero, `DEPENDS_ON_NON_NUMERIC` when a text
cell is used in arithmetic or in a range, and `DEPENDS_ON_ERR` when a range
contains a cell that is already in error. A direct reference to a cell in error
takes over that cell's error. Range functions skip empty cells and give 0 for a
range with no numbers.

In CSV export empty cells become empty fields, errors become `#ERROR`, and
numbers are written in plain decimal form (`42`, `0.5`).

`search(cell, text)` and `search_from_start(text)` look for the text in string
values and in the decimal form of numbers, left to right and top to bottom.

`save_to_file` writes the sheet as JSON bytes; `from_file` reads it back and
raises `ValueError` if the data is malformed.

`gridcalc.function` and `gridcalc.myparser` hold plain integer helpers for
binary operations, range aggregates (`eval_range`, `sum_range`, ...) and
parsing of 1-indexed cell names (`cell_name_to_coord`, `split_binary`,
`parse_range`).

## What it does not do

gridcalc is a library only. It has no command-line program, no interactive
prompt and no graphical window for viewing or editing a sheet; display and
input are left to the code that uses it.