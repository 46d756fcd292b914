import logging
from typing import Iterable, List, Optional

from sqlalchemy import delete
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from attendance_tracker.core.exceptions import ConstraintViolation, NotFoundError, StoreError
from attendance_tracker.database import transaction
from attendance_tracker.models.attendance import AttendanceRecord
from attendance_tracker.models.student import Student
from attendance_tracker.schemas.student_schema import StudentCandidate

# Setup logger
logger = logging.getLogger(__name__)


async def list_students(db: AsyncSession) -> List[Student]:
    """All students ordered by roll number."""
    try:
        result = await db.execute(select(Student).order_by(Student.roll_no))
        return result.scalars().all()
    except SQLAlchemyError as e:
        logger.error(f"Database error listing students: {str(e)}", exc_info=True)
        raise StoreError(str(e)) from e


async def get_student_by_id(db: AsyncSession, student_id: int) -> Optional[Student]:
    try:
        result = await db.execute(select(Student).where(Student.id == student_id))
        return result.scalar_one_or_none()
    except SQLAlchemyError as e:
        logger.error(f"Database error querying student {student_id}: {str(e)}", exc_info=True)
        raise StoreError(str(e)) from e


async def add_student(db: AsyncSession, roll_no: str, name: str, email: Optional[str] = None) -> Student:
    """
    Create a single student.

    Raises:
        ConstraintViolation: roll_no already exists
        StoreError: any other database failure
    """
    try:
        logger.info(f"Creating student with roll number: {roll_no}")
        db_student = Student(roll_no=roll_no, name=name, email=email)

        async with transaction(db):
            db.add(db_student)
        await db.refresh(db_student)

        logger.info(f"Student created: {roll_no} (ID: {db_student.id})")
        return db_student

    except IntegrityError as e:
        logger.warning(f"Constraint violation creating student {roll_no}: {str(e.orig)}")
        raise ConstraintViolation(str(e.orig)) from e
    except SQLAlchemyError as e:
        logger.error(f"Database error creating student {roll_no}: {str(e)}", exc_info=True)
        raise StoreError(str(e)) from e


async def import_students(db: AsyncSession, candidates: Iterable[StudentCandidate]) -> int:
    """
    Insert candidates in one transaction, ignoring roll numbers already stored.

    Returns:
        Number of rows actually inserted
    """
    inserted = 0
    try:
        async with transaction(db):
            for candidate in candidates:
                stmt = (
                    sqlite_insert(Student.__table__)
                    .values(roll_no=candidate.roll_no, name=candidate.name, email=candidate.email)
                    .on_conflict_do_nothing(index_elements=["roll_no"])
                )
                result = await db.execute(stmt)
                inserted += result.rowcount
        return inserted

    except IntegrityError as e:
        logger.error(f"Constraint violation importing students: {str(e.orig)}", exc_info=True)
        raise ConstraintViolation(str(e.orig)) from e
    except SQLAlchemyError as e:
        logger.error(f"Database error importing students: {str(e)}", exc_info=True)
        raise StoreError(str(e)) from e


async def delete_student(db: AsyncSession, student_id: int) -> None:
    """
    Delete a student and every attendance mark they own.

    Marks go first, then the student row. If no student row was removed the
    whole transaction is rolled back and NotFoundError is raised.
    """
    try:
        logger.info(f"Deleting student {student_id}")
        async with transaction(db):
            marks = await db.execute(
                delete(AttendanceRecord).where(AttendanceRecord.student_id == student_id)
            )
            result = await db.execute(delete(Student).where(Student.id == student_id))
            if result.rowcount == 0:
                raise NotFoundError("Student not found")

        logger.info(f"Deleted student {student_id} and {marks.rowcount} attendance records")

    except NotFoundError:
        logger.warning(f"Cannot delete: student not found with id {student_id}")
        raise
    except IntegrityError as e:
        logger.error(f"Constraint violation deleting student {student_id}: {str(e.orig)}", exc_info=True)
        raise ConstraintViolation(str(e.orig)) from e
    except SQLAlchemyError as e:
        logger.error(f"Database error deleting student {student_id}: {str(e)}", exc_info=True)
        raise StoreError(str(e)) from e
