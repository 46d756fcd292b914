from datetime import date as Date
from typing import Optional, List, Any

from pydantic import BaseModel


class AttendanceMarkRequest(BaseModel):
    student_id: int
    date: Date
    status: str


class AttendanceMarkResponse(BaseModel):
    id: int
    student_id: int
    date: Date
    status: str

    class Config:
        from_attributes = True


class BulkAttendanceRequest(BaseModel):
    # Individual records are checked by the store so that incomplete ones can
    # be skipped instead of failing the whole request.
    records: List[Any]


class RosterEntry(BaseModel):
    id: int
    roll_no: str
    name: str
    email: Optional[str] = None
    status: Optional[str] = None


class AttendanceSummary(BaseModel):
    present_count: int
    absent_count: int
    total_count: int


class AttendanceHistoryEntry(AttendanceSummary):
    date: Date


class MessageResponse(BaseModel):
    message: str


class BulkAttendanceResponse(MessageResponse):
    count: int


class DeleteCountResponse(MessageResponse):
    deletedCount: int
