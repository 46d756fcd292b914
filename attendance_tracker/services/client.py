import logging
import os
from datetime import date
from typing import Any, Dict, List, Optional

import httpx

from attendance_tracker.core.exceptions import ValidationError
from attendance_tracker.services.staging import (
    RenderedRow,
    StagingBuffer,
    apply_staged_edits,
    parse_roll_suffixes,
    stage_absentees,
    stage_all_present,
)

logger = logging.getLogger(__name__)


class AttendanceClient:
    """
    Roster controller talking to the attendance API.

    Owns a StagingBuffer: edits are staged locally and only sent by
    ``submit``. The buffer is cleared after a successful submission and kept
    as-is when the server rejects it, so the same edits can be retried.
    """

    def __init__(self, http: httpx.AsyncClient, buffer: Optional[StagingBuffer] = None):
        self.http = http
        self.buffer = buffer if buffer is not None else StagingBuffer()
        self.current_date: Optional[str] = None
        self.roster: List[Dict[str, Any]] = []

    async def _json(self, method: str, url: str, **kwargs):
        response = await self.http.request(method, url, **kwargs)
        response.raise_for_status()
        return response.json()

    async def load_date(self, mark_date) -> List[RenderedRow]:
        if isinstance(mark_date, date):
            mark_date = mark_date.isoformat()
        self.buffer.clear()
        self.roster = await self._json("GET", f"/api/attendance/{mark_date}")
        self.current_date = mark_date
        return self.rows()

    async def load_students(self) -> List[Dict[str, Any]]:
        return await self._json("GET", "/api/students")

    def rows(self) -> List[RenderedRow]:
        return apply_staged_edits(self.roster, self.buffer)

    def stage(self, student_id: int, status: str) -> None:
        self.buffer.stage(student_id, status)

    def mark_all_present(self) -> int:
        if not self.roster:
            raise ValidationError("No students loaded.")
        return stage_all_present(self.roster, self.buffer)

    def mark_absentees(self, roll_suffixes: str):
        if not self.roster:
            raise ValidationError("No students loaded.")
        return stage_absentees(self.roster, self.buffer, parse_roll_suffixes(roll_suffixes))

    async def submit(self) -> Dict[str, Any]:
        if not self.buffer:
            raise ValidationError("No changes to submit.")
        if not self.current_date:
            raise ValidationError("Please select a date first.")

        records = self.buffer.to_records(self.current_date)
        try:
            result = await self._json("POST", "/api/attendance/bulk", json={"records": records})
        except httpx.HTTPError as e:
            logger.error(f"Attendance submission failed, {len(records)} edits kept: {e}")
            raise

        self.buffer.clear()
        await self.load_date(self.current_date)
        return result

    async def summary(self, mark_date=None) -> Dict[str, int]:
        mark_date = mark_date or self.current_date
        if isinstance(mark_date, date):
            mark_date = mark_date.isoformat()
        return await self._json("GET", f"/api/attendance/{mark_date}/summary")

    async def history(self) -> List[Dict[str, Any]]:
        return await self._json("GET", "/api/attendance/history")

    async def upload_roster(self, path: str) -> Dict[str, Any]:
        with open(path, "rb") as fh:
            files = {"excel": (os.path.basename(path), fh.read())}
        return await self._json("POST", "/api/students/upload", files=files)

    async def delete_student(self, student_id: int) -> Dict[str, Any]:
        result = await self._json("DELETE", f"/api/students/{student_id}")
        self.buffer.discard(student_id)
        if self.current_date:
            await self.load_date(self.current_date)
        return result

    async def delete_attendance_for_date(self, mark_date) -> Dict[str, Any]:
        if isinstance(mark_date, date):
            mark_date = mark_date.isoformat()
        return await self._json("DELETE", f"/api/attendance/date/{mark_date}")

    async def clear_history(self) -> Dict[str, Any]:
        return await self._json("DELETE", "/api/attendance/all")
