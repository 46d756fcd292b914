import logging
from datetime import date
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from attendance_tracker.core.exceptions import AttendanceError, to_http_exception
from attendance_tracker.crud.attendance import (
    attendance_for_date,
    delete_attendance,
    delete_attendance_all,
    delete_attendance_by_date,
    history,
    mark_attendance,
    mark_attendance_bulk,
    summary_for_date,
)
from attendance_tracker.dependencies import get_current_user, get_db
from attendance_tracker.schemas.attendance import (
    AttendanceHistoryEntry,
    AttendanceMarkRequest,
    AttendanceMarkResponse,
    AttendanceSummary,
    BulkAttendanceRequest,
    BulkAttendanceResponse,
    DeleteCountResponse,
    MessageResponse,
    RosterEntry,
)

# Setup logging
logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/attendance",
    tags=["attendance"],
    dependencies=[Depends(get_current_user)]
)


# Static paths are registered before the /{mark_date} and /{attendance_id} ones


@router.get("/history", response_model=List[AttendanceHistoryEntry])
async def get_attendance_history(db: AsyncSession = Depends(get_db)):
    """Per-date present/absent counts, most recent first."""
    try:
        return await history(db)
    except AttendanceError as e:
        raise to_http_exception(e)


@router.post("/bulk", response_model=BulkAttendanceResponse)
async def submit_bulk_attendance(
        payload: BulkAttendanceRequest,
        db: AsyncSession = Depends(get_db)
):
    """
    Save many marks at once.

    Records missing student_id, date or status are skipped; any other error
    rolls back the whole submission.
    """
    try:
        logger.info(f"Bulk attendance submission with {len(payload.records)} records")
        applied = await mark_attendance_bulk(db, payload.records)
        return BulkAttendanceResponse(message="Attendance submitted successfully", count=applied)
    except AttendanceError as e:
        raise to_http_exception(e)


@router.delete("/all", response_model=DeleteCountResponse)
async def clear_attendance(db: AsyncSession = Depends(get_db)):
    try:
        deleted = await delete_attendance_all(db)
        return DeleteCountResponse(message=f"Deleted {deleted} attendance records.", deletedCount=deleted)
    except AttendanceError as e:
        raise to_http_exception(e)


@router.delete("/date/{mark_date}", response_model=DeleteCountResponse)
async def clear_attendance_for_date(
        mark_date: date,
        db: AsyncSession = Depends(get_db)
):
    try:
        deleted = await delete_attendance_by_date(db, mark_date)
        return DeleteCountResponse(
            message=f"Deleted {deleted} attendance records for date {mark_date.isoformat()}",
            deletedCount=deleted
        )
    except AttendanceError as e:
        raise to_http_exception(e)


@router.get("/{mark_date}", response_model=List[RosterEntry])
async def get_attendance_for_date(
        mark_date: date,
        db: AsyncSession = Depends(get_db)
):
    """Every student with their status for the date; unmarked students have status null."""
    try:
        return await attendance_for_date(db, mark_date)
    except AttendanceError as e:
        raise to_http_exception(e)


@router.get("/{mark_date}/summary", response_model=AttendanceSummary)
async def get_attendance_summary(
        mark_date: date,
        db: AsyncSession = Depends(get_db)
):
    try:
        return await summary_for_date(db, mark_date)
    except AttendanceError as e:
        raise to_http_exception(e)


@router.post("", response_model=AttendanceMarkResponse)
async def mark_student_attendance(
        mark: AttendanceMarkRequest,
        db: AsyncSession = Depends(get_db)
):
    """Create or update the mark for one student on one date."""
    try:
        return await mark_attendance(db, mark.student_id, mark.date, mark.status)
    except AttendanceError as e:
        raise to_http_exception(e)


@router.delete("/{attendance_id}", response_model=MessageResponse)
async def remove_attendance(
        attendance_id: int,
        db: AsyncSession = Depends(get_db)
):
    try:
        await delete_attendance(db, attendance_id)
        return MessageResponse(message="Attendance record deleted successfully")
    except AttendanceError as e:
        raise to_http_exception(e)
