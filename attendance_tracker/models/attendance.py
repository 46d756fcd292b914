from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from attendance_tracker.database import Base

PRESENT = "present"
ABSENT = "absent"
ATTENDANCE_STATUSES = (PRESENT, ABSENT)


class AttendanceRecord(Base):
    __tablename__ = "attendance"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    status = Column(String(16), nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    student = relationship("Student", back_populates="attendance_records")

    __table_args__ = (
        UniqueConstraint("student_id", "date", name="uq_attendance_student_date"),
        CheckConstraint("status IN ('present', 'absent')", name="ck_attendance_status"),
    )

    def __repr__(self):
        return f"<AttendanceRecord student={self.student_id} {self.date} {self.status}>"
