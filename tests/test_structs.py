import pytest

from gridcalc.structs import AbsCell, RelCell


def test_parse_documented_examples():
    assert AbsCell.parse("A1") == AbsCell(0, 0)
    assert AbsCell.parse("B2") == AbsCell(1, 1)


def test_parse_is_case_insensitive():
    assert AbsCell.parse("ab12") == AbsCell.parse("AB12")


def test_display_a1():
    assert str(AbsCell(0, 0)) == "A1"


@pytest.mark.parametrize(
    "row, col", [(0, 0), (9, 25), (0, 26), (998, 18277), (41, 701), (5, 702)]
)
def test_display_parse_round_trip(row, col):
    cell = AbsCell(row, col)
    assert AbsCell.parse(str(cell)) == cell


@pytest.mark.parametrize("name", ["A1", "Z10", "AA15", "ZZZ999", "XFD100"])
def test_parse_display_round_trip(name):
    assert str(AbsCell.parse(name)) == name


@pytest.mark.parametrize("text", ["", "A", "ABC"])
def test_parse_missing_row(text):
    with pytest.raises(ValueError, match="Missing row number"):
        AbsCell.parse(text)


@pytest.mark.parametrize("text", ["A1B", "A12 ", "A99999"])
def test_parse_invalid_row(text):
    with pytest.raises(ValueError, match="Invalid row number"):
        AbsCell.parse(text)


@pytest.mark.parametrize("text", ["A-1", "$A1", " A1"])
def test_parse_invalid_character(text):
    with pytest.raises(ValueError, match="Invalid character"):
        AbsCell.parse(text)


def test_rel_abs_round_trip():
    origin = AbsCell(3, 4)
    target = AbsCell(10, 2)
    rel = target.to_rel(origin)
    assert rel.to_abs(origin) == target
    assert AbsCell.from_rel(rel, origin) == target


def test_to_rel_of_origin_is_zero_offset():
    origin = AbsCell(7, 8)
    assert origin.to_rel(origin) == RelCell(0, 0)


def test_from_rel_origin_matches_zero_origin():
    rel = RelCell(4, 6)
    assert AbsCell.from_rel_origin(rel) == rel.to_abs(AbsCell(0, 0))
    assert AbsCell.from_rel_origin(rel) == AbsCell(rel.row, rel.col)


def test_relative_offset_shifts_with_origin():
    rel = AbsCell.parse("B2").to_rel(AbsCell.parse("A1"))
    assert rel.to_abs(AbsCell.parse("C3")) == AbsCell.parse("D4")


def test_ordering_is_row_major():
    assert AbsCell(0, 5) < AbsCell(1, 0)
    assert AbsCell(2, 1) < AbsCell(2, 3)
    cells = [AbsCell(1, 0), AbsCell(0, 9), AbsCell(0, 1)]
    assert sorted(cells) == [AbsCell(0, 1), AbsCell(0, 9), AbsCell(1, 0)]


def test_cells_are_hashable_and_immutable():
    cell = AbsCell(1, 2)
    assert {cell: "x"}[AbsCell(1, 2)] == "x"
    with pytest.raises(AttributeError):
        cell.row = 5  # type: ignore[misc]