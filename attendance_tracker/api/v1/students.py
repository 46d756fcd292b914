import logging
import os
import shutil
import time
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File
from sqlalchemy.ext.asyncio import AsyncSession

from attendance_tracker.config import settings
from attendance_tracker.core.exceptions import AttendanceError, to_http_exception
from attendance_tracker.crud.attendance import student_attendance
from attendance_tracker.crud.student import add_student, delete_student, list_students
from attendance_tracker.dependencies import get_current_user, get_db
from attendance_tracker.schemas.attendance import MessageResponse
from attendance_tracker.schemas.student_schema import (
    ImportResult,
    StudentAttendanceResponse,
    StudentCreate,
    StudentResponse,
)
from attendance_tracker.services.roster_import import import_roster_file


# Setup logger
logger = logging.getLogger(__name__)

str_router = APIRouter(
    prefix="/api/students",
    tags=["students"],
    dependencies=[Depends(get_current_user)]
)


def _save_upload(upload: UploadFile) -> str:
    """Write an uploaded file into the upload directory and return its path."""
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    filename = os.path.basename(upload.filename or "roster.xlsx")
    path = os.path.join(settings.UPLOAD_DIR, f"{int(time.time() * 1000)}-{filename}")
    try:
        with open(path, "wb") as buffer:
            shutil.copyfileobj(upload.file, buffer)
    except Exception:
        if os.path.exists(path):
            os.remove(path)
        raise
    return path


@str_router.get("", response_model=List[StudentResponse])
async def get_students(db: AsyncSession = Depends(get_db)):
    """All students ordered by roll number."""
    try:
        students = await list_students(db)
        logger.debug(f"Returning {len(students)} students")
        return students
    except AttendanceError as e:
        raise to_http_exception(e)


@str_router.post("", response_model=StudentResponse)
async def create_student(
        student: StudentCreate,
        db: AsyncSession = Depends(get_db)
):
    """
    Add a single student.

    - **roll_no**: unique roll number
    - **name**: student name
    - **email**: optional contact email
    """
    try:
        return await add_student(db, student.roll_no, student.name, student.email)
    except AttendanceError as e:
        raise to_http_exception(e)


@str_router.post("/upload", response_model=ImportResult)
async def upload_students(
        excel: Optional[UploadFile] = File(None, description="Roster spreadsheet"),
        db: AsyncSession = Depends(get_db)
):
    """
    Import students from a spreadsheet.

    Columns are matched by header text (roll number, name, email). Rows
    without a roll number or name are skipped and roll numbers that already
    exist are left unchanged.
    """
    if excel is None or not excel.filename:
        logger.warning("Roster upload without a file")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No file uploaded"
        )

    try:
        path = _save_upload(excel)
        logger.info(f"Roster upload saved to {path}")
        return await import_roster_file(db, path)

    except AttendanceError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to process roster upload {excel.filename}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e) or "Failed to process file"
        )


@str_router.delete("/{student_id}", response_model=MessageResponse)
async def remove_student(
        student_id: int,
        db: AsyncSession = Depends(get_db)
):
    """Delete a student together with their attendance records."""
    try:
        await delete_student(db, student_id)
        return MessageResponse(message="Student deleted successfully")
    except AttendanceError as e:
        raise to_http_exception(e)


@str_router.get("/{student_id}/attendance", response_model=StudentAttendanceResponse)
async def get_student_attendance(
        student_id: int,
        db: AsyncSession = Depends(get_db)
):
    """Attendance history for one student with their attendance percentage."""
    try:
        return await student_attendance(db, student_id)
    except AttendanceError as e:
        raise to_http_exception(e)
