import pytest

from attendance_tracker.core.exceptions import ImportValidationError
from attendance_tracker.crud.student import list_students
from attendance_tracker.services.roster_import import build_candidates, import_roster_file, read_sheet_rows
from conftest import write_sheet

SHEET = [["Roll", "Name", "Email"], ["101", "Alice", "a@x.com"], ["102", "Bob", ""]]


def test_build_candidates_from_rows():
    candidates = build_candidates(SHEET)

    assert [(c.roll_no, c.name, c.email) for c in candidates] == [
        ("101", "Alice", "a@x.com"),
        ("102", "Bob", ""),
    ]


def test_rows_without_roll_or_name_are_skipped():
    rows = [["Name", "Roll No"], ["Alice", "1"], ["", "2"], ["Carol", ""], ["Dave"]]

    candidates = build_candidates(rows)

    assert [(c.roll_no, c.name) for c in candidates] == [("1", "Alice")]


def test_duplicate_roll_in_sheet_keeps_first():
    rows = [["Roll", "Name"], ["7", "First"], ["7", "Second"]]

    assert [c.name for c in build_candidates(rows)] == ["First"]


def test_missing_columns_reject_sheet():
    with pytest.raises(ImportValidationError):
        build_candidates([["Email", "Phone"], ["a@x.com", "123"]])


def test_empty_sheet_is_rejected():
    with pytest.raises(ImportValidationError):
        build_candidates([])


def test_read_sheet_rows_returns_text_cells(tmp_path):
    path = write_sheet(tmp_path / "roster.xlsx", [["Roll", "Name"], [101, "Alice"], [102, None]])

    rows = read_sheet_rows(path)

    assert rows[0] == ["Roll", "Name"]
    assert rows[1] == ["101", "Alice"]
    assert rows[2] == ["102", ""]


def test_read_csv_roster(tmp_path):
    path = tmp_path / "roster.csv"
    path.write_text("Roll,Name\n5,Eve\n")

    assert read_sheet_rows(str(path)) == [["Roll", "Name"], ["5", "Eve"]]


async def test_import_roster_file_inserts_and_removes_file(session, tmp_path):
    path = write_sheet(tmp_path / "roster.xlsx", SHEET)

    result = await import_roster_file(session, path)

    assert result.count == 2
    assert len(result.students) == 2
    assert not (tmp_path / "roster.xlsx").exists()
    assert [s.roll_no for s in await list_students(session)] == ["101", "102"]


async def test_reimport_ignores_existing_roll_numbers(session, tmp_path):
    rows = [["Roll", "Name"], ["101", "Alice"]]
    await import_roster_file(session, write_sheet(tmp_path / "first.xlsx", rows))

    renamed = [["Roll", "Name"], ["101", "Alicia"]]
    result = await import_roster_file(session, write_sheet(tmp_path / "second.xlsx", renamed))

    students = await list_students(session)
    assert result.count == 0
    assert [c.name for c in result.students] == ["Alicia"]
    assert [(s.roll_no, s.name) for s in students] == [("101", "Alice")]


async def test_import_removes_file_when_rejected(session, tmp_path):
    path = write_sheet(tmp_path / "bad.xlsx", [["Email"], ["a@x.com"]])

    with pytest.raises(ImportValidationError):
        await import_roster_file(session, path)

    assert not (tmp_path / "bad.xlsx").exists()


async def test_import_removes_file_when_unreadable(session, tmp_path):
    path = tmp_path / "broken.xlsx"
    path.write_bytes(b"not a spreadsheet")

    with pytest.raises(Exception):
        await import_roster_file(session, str(path))

    assert not path.exists()
