from datetime import datetime, date as Date
from typing import Optional, List

from pydantic import BaseModel, Field, field_validator


class StudentCreate(BaseModel):
    roll_no: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=255)
    email: Optional[str] = Field(None, max_length=255)

    @field_validator("roll_no", "name")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class StudentResponse(BaseModel):
    id: int
    roll_no: str
    name: str
    email: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StudentCandidate(BaseModel):
    """One roster row accepted from an uploaded sheet."""
    roll_no: str
    name: str
    email: str = ""


class ImportResult(BaseModel):
    message: str
    count: int
    students: List[StudentCandidate]


class StudentAttendanceRecord(BaseModel):
    id: int
    date: Date
    status: str

    class Config:
        from_attributes = True


class StudentAttendanceResponse(BaseModel):
    student: StudentResponse
    records: List[StudentAttendanceRecord]
    present_count: int
    absent_count: int
    total_count: int
    percentage: float
