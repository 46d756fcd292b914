import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import and_, case, delete, func
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from attendance_tracker.config import settings
from attendance_tracker.core.exceptions import ConstraintViolation, NotFoundError, StoreError, ValidationError
from attendance_tracker.crud.student import get_student_by_id
from attendance_tracker.database import transaction
from attendance_tracker.models.attendance import AttendanceRecord, ATTENDANCE_STATUSES, PRESENT, ABSENT
from attendance_tracker.models.student import Student

logger = logging.getLogger(__name__)

BULK_FIELDS = ("student_id", "date", "status")


def validate_status(status: str) -> str:
    if status not in ATTENDANCE_STATUSES:
        raise ValidationError(f"Invalid status '{status}'. Expected one of: {', '.join(ATTENDANCE_STATUSES)}")
    return status


def _upsert_statement(student_id: int, mark_date: date, status: str):
    stmt = sqlite_insert(AttendanceRecord.__table__).values(student_id=student_id, date=mark_date, status=status)
    return stmt.on_conflict_do_update(
        index_elements=["student_id", "date"],
        set_={"status": stmt.excluded.status},
    )


def _parse_bulk_record(record: Any) -> Optional[tuple]:
    """
    Normalise one bulk record to (student_id, date, status).

    Returns None for records missing any of the three fields so the caller
    can skip them. Present but malformed values raise ValidationError.
    """
    if not isinstance(record, dict):
        return None
    if any(not record.get(field) for field in BULK_FIELDS):
        return None

    try:
        student_id = int(record["student_id"])
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid student_id '{record['student_id']}'")

    mark_date = record["date"]
    if not isinstance(mark_date, date):
        try:
            mark_date = date.fromisoformat(str(mark_date))
        except ValueError:
            raise ValidationError(f"Invalid date '{record['date']}'. Expected YYYY-MM-DD")

    return student_id, mark_date, validate_status(record["status"])


async def mark_attendance(db: AsyncSession, student_id: int, mark_date: date, status: str) -> AttendanceRecord:
    """Insert or update the single mark for (student_id, mark_date)."""
    validate_status(status)
    try:
        async with transaction(db):
            await db.execute(_upsert_statement(student_id, mark_date, status))

        result = await db.execute(
            select(AttendanceRecord).where(
                and_(
                    AttendanceRecord.student_id == student_id,
                    AttendanceRecord.date == mark_date
                )
            ).execution_options(populate_existing=True)
        )
        record = result.scalar_one()
        logger.info(f"Marked student {student_id} {status} on {mark_date}")
        return record

    except IntegrityError as e:
        logger.warning(f"Constraint violation marking student {student_id} on {mark_date}: {str(e.orig)}")
        raise ConstraintViolation(str(e.orig)) from e
    except SQLAlchemyError as e:
        logger.error(f"Database error marking attendance for {student_id}: {str(e)}", exc_info=True)
        raise StoreError(str(e)) from e


async def mark_attendance_bulk(db: AsyncSession, records: Iterable[Any]) -> int:
    """
    Apply many marks in a single transaction.

    Records missing student_id, date or status are skipped. Any other
    problem rejects the whole batch and nothing is written.

    Returns:
        Number of records applied
    """
    parsed = []
    skipped = 0
    for record in records:
        values = _parse_bulk_record(record)
        if values is None:
            skipped += 1
            continue
        parsed.append(values)

    if skipped:
        logger.warning(f"Skipped {skipped} incomplete attendance records")

    try:
        async with transaction(db):
            for student_id, mark_date, status in parsed:
                await db.execute(_upsert_statement(student_id, mark_date, status))

        logger.info(f"Bulk marked {len(parsed)} attendance records")
        return len(parsed)

    except IntegrityError as e:
        logger.warning(f"Constraint violation in bulk attendance, batch rolled back: {str(e.orig)}")
        raise ConstraintViolation(str(e.orig)) from e
    except SQLAlchemyError as e:
        logger.error(f"Database error in bulk attendance, batch rolled back: {str(e)}", exc_info=True)
        raise StoreError(str(e)) from e


async def _delete_marks(db: AsyncSession, *criteria) -> int:
    try:
        async with transaction(db):
            stmt = delete(AttendanceRecord)
            if criteria:
                stmt = stmt.where(*criteria)
            result = await db.execute(stmt)
        return result.rowcount
    except SQLAlchemyError as e:
        logger.error(f"Database error deleting attendance records: {str(e)}", exc_info=True)
        raise StoreError(str(e)) from e


async def delete_attendance(db: AsyncSession, attendance_id: int) -> int:
    deleted = await _delete_marks(db, AttendanceRecord.id == attendance_id)
    if deleted == 0:
        raise NotFoundError("Attendance record not found")
    logger.info(f"Deleted attendance record {attendance_id}")
    return deleted


async def delete_attendance_by_date(db: AsyncSession, mark_date: date) -> int:
    deleted = await _delete_marks(db, AttendanceRecord.date == mark_date)
    if deleted == 0:
        raise NotFoundError(f"No attendance records found for date {mark_date.isoformat()}")
    logger.info(f"Deleted {deleted} attendance records for {mark_date}")
    return deleted


async def delete_attendance_all(db: AsyncSession) -> int:
    deleted = await _delete_marks(db)
    logger.info(f"Deleted all attendance records ({deleted})")
    return deleted


def _status_counts():
    return (
        func.count(case((AttendanceRecord.status == PRESENT, 1))).label("present_count"),
        func.count(case((AttendanceRecord.status == ABSENT, 1))).label("absent_count"),
        func.count(AttendanceRecord.id).label("total_count"),
    )


async def attendance_for_date(db: AsyncSession, mark_date: date) -> List[Dict[str, Any]]:
    """Every student with their status on ``mark_date`` (None when unmarked)."""
    query = (
        select(Student.id, Student.roll_no, Student.name, Student.email, AttendanceRecord.status)
        .outerjoin(
            AttendanceRecord,
            and_(
                Student.id == AttendanceRecord.student_id,
                AttendanceRecord.date == mark_date
            )
        )
        .order_by(Student.roll_no)
    )
    try:
        result = await db.execute(query)
        return [dict(row) for row in result.mappings().all()]
    except SQLAlchemyError as e:
        logger.error(f"Database error loading attendance for {mark_date}: {str(e)}", exc_info=True)
        raise StoreError(str(e)) from e


async def summary_for_date(db: AsyncSession, mark_date: date) -> Dict[str, int]:
    """Present/absent/total counts over the marks stored for one date."""
    try:
        result = await db.execute(select(*_status_counts()).where(AttendanceRecord.date == mark_date))
        return dict(result.mappings().one())
    except SQLAlchemyError as e:
        logger.error(f"Database error summarising {mark_date}: {str(e)}", exc_info=True)
        raise StoreError(str(e)) from e


async def history(db: AsyncSession, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    """Per-date counts, most recent date first."""
    limit = limit or settings.HISTORY_LIMIT
    query = (
        select(AttendanceRecord.date, *_status_counts())
        .group_by(AttendanceRecord.date)
        .order_by(AttendanceRecord.date.desc())
        .limit(limit)
    )
    try:
        result = await db.execute(query)
        return [dict(row) for row in result.mappings().all()]
    except SQLAlchemyError as e:
        logger.error(f"Database error loading attendance history: {str(e)}", exc_info=True)
        raise StoreError(str(e)) from e


def calculate_percentage(present_count: int, total_count: int) -> float:
    if total_count == 0:
        return 0
    return round(present_count / total_count * 100, 2)


async def student_attendance(db: AsyncSession, student_id: int) -> Dict[str, Any]:
    """All marks for one student, newest first, with an attendance percentage."""
    student = await get_student_by_id(db, student_id)
    if not student:
        raise NotFoundError("Student not found")

    try:
        result = await db.execute(
            select(AttendanceRecord)
            .where(AttendanceRecord.student_id == student_id)
            .order_by(AttendanceRecord.date.desc())
        )
        records = result.scalars().all()
    except SQLAlchemyError as e:
        logger.error(f"Database error loading attendance for student {student_id}: {str(e)}", exc_info=True)
        raise StoreError(str(e)) from e

    present_count = sum(1 for record in records if record.status == PRESENT)
    absent_count = sum(1 for record in records if record.status == ABSENT)
    total_count = len(records)

    return {
        "student": student,
        "records": records,
        "present_count": present_count,
        "absent_count": absent_count,
        "total_count": total_count,
        "percentage": calculate_percentage(present_count, total_count),
    }
