import logging
import os
from typing import List, Sequence

import pandas as pd
from sqlalchemy.ext.asyncio import AsyncSession

from attendance_tracker.core.exceptions import ImportValidationError
from attendance_tracker.crud.student import import_students
from attendance_tracker.schemas.student_schema import StudentCandidate, ImportResult
from attendance_tracker.services.column_inference import infer_columns

logger = logging.getLogger(__name__)

CSV_EXTENSIONS = (".csv",)


def _cell_text(value) -> str:
    if value is None or pd.isna(value):
        return ""
    return str(value).strip()


def read_sheet_rows(path: str) -> List[List[str]]:
    """
    Read the first worksheet of a spreadsheet as rows of text cells.

    The header row is returned as the first row; empty cells come back as "".
    """
    if path.lower().endswith(CSV_EXTENSIONS):
        df = pd.read_csv(path, header=None, dtype=str, keep_default_na=False)
    else:
        df = pd.read_excel(path, sheet_name=0, header=None, dtype=str)

    return [[_cell_text(value) for value in row] for row in df.itertuples(index=False, name=None)]


def _cell(row: Sequence, index) -> str:
    if index is None or index >= len(row):
        return ""
    return _cell_text(row[index])


def build_candidates(rows: Sequence[Sequence]) -> List[StudentCandidate]:
    """
    Turn parsed sheet rows into student candidates.

    Rows without a roll number or a name are skipped. A roll number repeated
    further down the sheet keeps its first occurrence.
    """
    if not rows:
        raise ImportValidationError("The uploaded file contains no rows.")

    columns = infer_columns(rows[0])
    missing = columns.missing_required()
    if missing:
        logger.warning(f"Roster sheet rejected, columns not found: {missing}")
        raise ImportValidationError("Required columns (Roll No, Name) not found in the Excel file.")

    candidates = []
    seen = set()
    for row in rows[1:]:
        roll_no = _cell(row, columns.roll_no)
        name = _cell(row, columns.name)
        if not roll_no or not name:
            continue
        if roll_no in seen:
            logger.debug(f"Duplicate roll number {roll_no} in sheet, keeping first row")
            continue
        seen.add(roll_no)
        candidates.append(StudentCandidate(
            roll_no=roll_no,
            name=name,
            email=_cell(row, columns.email),
        ))

    return candidates


async def import_roster_file(db: AsyncSession, path: str) -> ImportResult:
    """
    Import a roster spreadsheet saved at ``path``.

    Existing roll numbers are left untouched. The file is deleted once
    processing finishes, whether or not it succeeded.
    """
    try:
        logger.info(f"Importing roster from {path}")
        rows = read_sheet_rows(path)
        candidates = build_candidates(rows)
        inserted = await import_students(db, candidates)

        logger.info(f"Roster import finished: {inserted} new of {len(candidates)} candidates")
        return ImportResult(
            message=f"Successfully processed file. Added {inserted} new students.",
            count=inserted,
            students=candidates,
        )
    finally:
        if os.path.exists(path):
            os.remove(path)
            logger.debug(f"Removed uploaded file {path}")
